from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Self

from pyagency.agent.agent import Agent
from pyagency.config import AgentConfig
from pyagency.cookie.types import CookieProvider
from pyagency.http import Url
from pyagency.transport import ASGITransport, HttpxTransport, Transport
from pyagency.transport.asgi import ASGIApp
from pyagency.types import HeadersType


class AgentBuilder:
    """Fluent builder for Agent instances. Every built agent gets its own, empty cookie jar."""

    def __init__(self) -> None:
        self._config: dict[str, Any] = {}
        self._default_headers: dict[str, str] = {}
        self._transport: Transport | None = None
        self._cookie_provider: CookieProvider | None = None

    def base_url(self, url: Url | str) -> Self:
        """Base URL relative request URLs are resolved against. Must end with a trailing slash '/'."""
        self._config["base_url"] = str(url)
        return self

    def redirects(self, max_redirects: int) -> Self:
        """Default redirect budget per request (default: 5). 0 disables following redirects."""
        self._config["max_redirects"] = max_redirects
        return self

    def timeout(self, timeout: timedelta | None) -> Self:
        """Default overall timeout per request chain (default: no timeout)."""
        self._config["timeout"] = timeout
        return self

    def default_header(self, name: str, value: str) -> Self:
        self._default_headers[name.lower()] = value
        return self

    def default_headers(self, headers: HeadersType) -> Self:
        pairs = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in pairs:
            self.default_header(name, value)
        return self

    def user_agent(self, user_agent: str) -> Self:
        self._config["user_agent"] = user_agent
        return self

    def error_for_status(self, enable: bool = True) -> Self:
        """Raise StatusError for 4xx/5xx final responses (default: disabled)."""
        self._config["error_for_status"] = enable
        return self

    def transport(self, transport: Transport) -> Self:
        """Transport used to send requests (default: HttpxTransport)."""
        self._transport = transport
        return self

    def asgi_app(self, app: ASGIApp) -> Self:
        """Send requests in-process to an ASGI application."""
        return self.transport(ASGITransport(app))

    def cookie_provider(self, provider: CookieProvider) -> Self:
        """Use a custom cookie provider instead of a fresh CookieJar. The provider should not be shared."""
        self._cookie_provider = provider
        return self

    def build(self) -> Agent:
        """Build the agent.

        Raises:
            BuilderError: invalid configuration.
        """
        config = AgentConfig.create(**self._config, default_headers=self._default_headers)
        return Agent(config, self._transport or HttpxTransport(), self._cookie_provider)


def agent(
    *,
    transport: Transport | None = None,
    cookie_provider: CookieProvider | None = None,
    **config: Any,
) -> Agent:
    """Create a new agent with a fresh, empty cookie jar.

    Keyword arguments are AgentConfig fields (max_redirects, timeout, base_url, default_headers, user_agent,
    error_for_status).
    """
    builder = AgentBuilder()
    if (default_headers := config.pop("default_headers", None)) is not None:
        builder.default_headers(default_headers)
    builder._config.update(config)
    if transport is not None:
        builder.transport(transport)
    if cookie_provider is not None:
        builder.cookie_provider(cookie_provider)
    return builder.build()
