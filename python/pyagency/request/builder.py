import base64
from collections.abc import Generator, Mapping
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import urlencode

import orjson

from pyagency.exceptions import BuilderError
from pyagency.http import HeaderMap, Url
from pyagency.request.request import Request
from pyagency.response import Response
from pyagency.types import BodyType, HeadersType, JsonBody, QueryParams

if TYPE_CHECKING:
    from pyagency.agent import Agent


class RequestBuilder:
    """Chainable request builder bound to an agent.

    Finalize with `await builder.end()` (or simply `await builder`). Each call runs one request chain:
    cookies are attached from the agent's jar, Set-Cookie headers are stored back and redirects are
    followed up to the configured budget.
    """

    def __init__(self, agent: "Agent", method: str, url: Url, headers: HeaderMap) -> None:
        """Do not use directly. Instead, use Agent.get(), Agent.post(), ... or Agent.request()."""
        self._agent = agent
        self._method = method.upper()
        self._url = url
        self._headers = headers
        self._body: bytes | None = None
        self._json: Any = None
        self._max_redirects = agent.config.max_redirects
        self._timeout = agent.config.timeout

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> Url:
        return self._url

    @property
    def cookies(self) -> str:
        """Cookie header value the agent's jar holds for this request's URL ("" when none)."""
        return self._agent.cookie_provider.cookies(str(self._url)) or ""

    def set(self, name: str, value: str) -> Self:
        """Set a request header, replacing previous values. A literal Cookie header is sent before jar cookies."""
        self._headers[name] = value
        return self

    def header(self, name: str, value: str) -> Self:
        """Append a request header value."""
        self._headers.append(name, value)
        return self

    def headers(self, headers: HeadersType) -> Self:
        """Set several request headers, replacing previous values of the same names."""
        pairs = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in pairs:
            self._headers[name] = value
        return self

    def basic_auth(self, username: str, password: str | None = None) -> Self:
        token = base64.b64encode(f"{username}:{password or ''}".encode()).decode()
        return self.set("Authorization", f"Basic {token}")

    def bearer_auth(self, token: str) -> Self:
        return self.set("Authorization", f"Bearer {token}")

    def query(self, query: QueryParams) -> Self:
        """Append query parameters to the URL."""
        self._url = self._url.extend_query(query)
        return self

    def send(self, body: BodyType) -> Self:
        """Attach a request body.

        Mappings and lists are sent as JSON (successive mappings are merged), strings as text and bytes as is.
        """
        if isinstance(body, bytes | bytearray | memoryview):
            return self.body_bytes(body)
        if isinstance(body, str):
            return self.body_text(body)
        if isinstance(body, Mapping) and isinstance(self._json, dict):
            return self.body_json({**self._json, **body})
        return self.body_json(body)

    def body_bytes(self, body: bytes | bytearray | memoryview) -> Self:
        self._body, self._json = bytes(body), None
        return self

    def body_text(self, body: str) -> Self:
        self._body, self._json = body.encode(), None
        self._default_content_type("text/plain; charset=utf-8")
        return self

    def body_json(self, body: JsonBody | Any) -> Self:
        try:
            self._body = orjson.dumps(body)
        except TypeError as e:
            raise BuilderError.from_cause("failed to serialize JSON body", e) from e
        self._json = dict(body) if isinstance(body, Mapping) else None
        self._default_content_type("application/json")
        return self

    def form(self, form: QueryParams) -> Self:
        """Send an application/x-www-form-urlencoded body."""
        self._body, self._json = urlencode(list(form.items()) if isinstance(form, Mapping) else form).encode(), None
        self._default_content_type("application/x-www-form-urlencoded")
        return self

    def redirects(self, max_redirects: int) -> Self:
        """Maximum number of redirects to follow for this call. 0 returns the first response as is."""
        if isinstance(max_redirects, bool) or not isinstance(max_redirects, int) or max_redirects < 0:
            raise BuilderError(f"redirects must be a non-negative integer, got {max_redirects!r}")
        self._max_redirects = max_redirects
        return self

    def timeout(self, timeout: timedelta | None) -> Self:
        """Overall timeout for this call, covering every redirect hop."""
        self._timeout = timeout
        return self

    def build(self) -> Request:
        """Snapshot of the request as it will be sent on the first hop (without jar cookies)."""
        return Request(self._method, self._url, self._headers.copy(), self._body)

    async def end(self) -> Response:
        """Send the request and return the final response of the chain."""
        return await self._agent.send(self.build(), max_redirects=self._max_redirects, timeout=self._timeout)

    def __await__(self) -> Generator[Any, None, Response]:
        return self.end().__await__()

    def _default_content_type(self, content_type: str) -> None:
        if "content-type" not in self._headers:
            self._headers["content-type"] = content_type

    def __repr__(self) -> str:
        return f"RequestBuilder(method={self._method!r}, url={str(self._url)!r})"
