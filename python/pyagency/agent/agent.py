import asyncio
import logging
from datetime import timedelta
from typing import Self

from pyagency.config import AgentConfig
from pyagency.cookie.types import CookieProvider
from pyagency.exceptions import AgentClosedError, RequestTimeoutError, TransportError
from pyagency.http import HeaderMap, Url
from pyagency.http.cookie import CookieJar, compose_cookie_header
from pyagency.redirect import RedirectController
from pyagency.request import Request, RequestBuilder
from pyagency.response import Response
from pyagency.transport.types import Transport

logger = logging.getLogger(__name__)


class Agent:
    """Stateful HTTP agent.

    An agent owns exactly one cookie jar for its whole lifetime. Every request it sends gets the jar's cookies
    for the target URL and every response (including each redirect hop) feeds its Set-Cookie headers back into
    the jar. Agents never share cookie state with each other.
    """

    def __init__(self, config: AgentConfig, transport: Transport, cookie_provider: CookieProvider | None = None):
        """Do not use directly. Instead, use agent() or AgentBuilder."""
        self._config = config
        self._transport = transport
        self._cookie_provider: CookieProvider = cookie_provider if cookie_provider is not None else CookieJar()
        self._base_url = Url(config.base_url) if config.base_url else None
        self._default_headers = HeaderMap(config.default_headers)
        if config.user_agent is not None:
            self._default_headers["user-agent"] = config.user_agent
        self._closed = False

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def cookie_provider(self) -> CookieProvider:
        return self._cookie_provider

    @property
    def jar(self) -> CookieJar:
        """The agent's cookie jar. Not available when the agent was built with a custom cookie provider."""
        if not isinstance(self._cookie_provider, CookieJar):
            raise AttributeError("agent uses a custom cookie provider, use Agent.cookie_provider")
        return self._cookie_provider

    def set(self, name: str, value: str) -> Self:
        """Set a default header sent with every request built afterwards by this agent."""
        self._default_headers[name] = value
        return self

    def unset(self, name: str) -> Self:
        self._default_headers.popall(name, None)
        return self

    def request(self, method: str, url: Url | str) -> RequestBuilder:
        return RequestBuilder(self, method, self._resolve_url(url), self._default_headers.copy())

    def get(self, url: Url | str) -> RequestBuilder:
        return self.request("GET", url)

    def head(self, url: Url | str) -> RequestBuilder:
        return self.request("HEAD", url)

    def post(self, url: Url | str) -> RequestBuilder:
        return self.request("POST", url)

    def put(self, url: Url | str) -> RequestBuilder:
        return self.request("PUT", url)

    def patch(self, url: Url | str) -> RequestBuilder:
        return self.request("PATCH", url)

    def delete(self, url: Url | str) -> RequestBuilder:
        return self.request("DELETE", url)

    def options(self, url: Url | str) -> RequestBuilder:
        return self.request("OPTIONS", url)

    async def send(
        self,
        request: Request,
        *,
        max_redirects: int | None = None,
        timeout: timedelta | None = None,
    ) -> Response:
        """Run one request chain and return its final response.

        The final response is either a non-redirect response, a redirect whose Location can not be followed,
        or the redirect received once the budget is spent. Its `redirects` lists every followed location.

        Args:
            request: First request of the chain
            max_redirects: Redirect budget for this chain (default: agent configuration)
            timeout: Overall timeout for the chain (default: agent configuration)

        Raises:
            TransportError: the transport failed; cookies stored by completed hops are kept.
            RequestTimeoutError: the chain did not complete within `timeout`.
            StatusError: final status is 4xx/5xx and the agent was built with error_for_status(True).
        """
        if self._closed:
            raise AgentClosedError("agent was closed")
        if max_redirects is None:
            max_redirects = self._config.max_redirects
        if timeout is None:
            timeout = self._config.timeout

        try:
            async with asyncio.timeout(timeout.total_seconds() if timeout is not None else None):
                response = await self._send_chain(request, max_redirects)
        except TransportError:
            raise
        except TimeoutError as e:
            raise RequestTimeoutError(
                "request timed out", {"url": str(request.url), "timeout": timeout.total_seconds() if timeout else None}
            ) from e

        if self._config.error_for_status:
            response.error_for_status()
        return response

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def _send_chain(self, request: Request, max_redirects: int) -> Response:
        controller = RedirectController(max_redirects)
        while True:
            response = await self._dispatch(request)
            next_request = controller.next_request(request, response)
            if next_request is None:
                return response.with_chain(request.url, controller.history)
            request = next_request

    async def _dispatch(self, request: Request) -> Response:
        url = str(request.url)
        outgoing = request.copy()
        literal = "; ".join(request.headers.getall("cookie")) or None
        cookie = compose_cookie_header(literal, self._cookie_provider.cookies(url))
        outgoing.headers.popall("cookie", None)
        if cookie is not None:
            outgoing.headers["cookie"] = cookie

        logger.debug("Sending %s %s", request.method, url)
        response = await self._transport.dispatch(outgoing)
        logger.debug("Received %s for %s %s", response.status, request.method, url)

        if set_cookies := response.headers.getall("set-cookie"):
            self._cookie_provider.set_cookies(set_cookies, url)
        return response

    def _resolve_url(self, url: Url | str) -> Url:
        if isinstance(url, Url):
            return url
        if self._base_url is not None:
            return self._base_url.join(url)
        return Url(url)

    def __repr__(self) -> str:
        return f"Agent(transport={type(self._transport).__name__}, max_redirects={self._config.max_redirects})"
