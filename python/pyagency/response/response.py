from collections.abc import Sequence
from typing import Any, Self

import orjson

from pyagency.exceptions import DecodeError, JSONDecodeError, StatusError
from pyagency.http import HeaderMap, Url
from pyagency.types import HeadersType


class Response:
    """A fully received HTTP response.

    `redirects` lists the absolute URLs followed to reach this response (empty when no redirect was followed)
    and `url` is the URL this response was received from.
    """

    def __init__(
        self,
        status: int,
        headers: HeadersType | None = None,
        body: bytes = b"",
        *,
        url: Url | str | None = None,
        redirects: Sequence[str] = (),
    ) -> None:
        self.status = status
        self.headers = headers.copy() if isinstance(headers, HeaderMap) else HeaderMap(headers)
        self._body = bytes(body)
        self.url = Url(url) if url is not None else None
        self.redirects: list[str] = [*redirects]

    @property
    def status(self) -> int:
        return self._status

    @status.setter
    def status(self, status: int) -> None:
        if not 100 <= status <= 999:
            raise ValueError(f"invalid status code: {status}")
        self._status = status

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def location(self) -> str | None:
        """Raw Location header value, if present."""
        return self.headers.get("location")

    @property
    def is_redirect(self) -> bool:
        """Whether this is a redirect-class response: status 3xx carrying a Location header."""
        return 300 <= self.status < 400 and "location" in self.headers

    @property
    def charset(self) -> str:
        content_type = self.headers.get("content-type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return "utf-8"

    async def bytes(self) -> bytes:
        return self._body

    async def text(self) -> str:
        """Body decoded using the charset of the Content-Type header (UTF-8 by default)."""
        try:
            return self._body.decode(self.charset)
        except (LookupError, UnicodeDecodeError) as e:
            raise DecodeError.from_cause("error decoding response body", e) from e

    async def json(self) -> Any:
        try:
            return orjson.loads(self._body)
        except orjson.JSONDecodeError as e:
            raise JSONDecodeError.from_cause("error decoding response body as JSON", e) from e

    def error_for_status(self) -> None:
        """Raise StatusError for 4xx and 5xx statuses."""
        if 400 <= self.status < 500:
            raise StatusError("HTTP status client error", self)
        if 500 <= self.status < 600:
            raise StatusError("HTTP status server error", self)

    def with_chain(self, url: Url, redirects: Sequence[str]) -> Self:
        """Copy annotated with the URL it was received from and the redirects followed to reach it."""
        return type(self)(self.status, self.headers, self._body, url=url, redirects=redirects)

    def __repr__(self) -> str:
        return f"Response(status={self.status}, url={str(self.url) if self.url else None!r})"
