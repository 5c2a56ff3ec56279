from typing import Any, Self

import orjson

from pyagency.http import HeaderMap, Url
from pyagency.response.response import Response
from pyagency.types import HeadersType


class ResponseBuilder:
    """Builds Response objects. Used by transports and for mocking."""

    def __init__(self) -> None:
        self._status = 200
        self._headers = HeaderMap()
        self._body = b""
        self._url: Url | None = None

    def status(self, status: int) -> Self:
        self._status = status
        return self

    def header(self, name: str, value: str) -> Self:
        """Append a header value. Repeated names are kept (e.g. several Set-Cookie headers)."""
        self._headers.append(name, value)
        return self

    def headers(self, headers: HeadersType) -> Self:
        self._headers.extend(headers)
        return self

    def url(self, url: Url | str) -> Self:
        self._url = Url(url)
        return self

    def body_bytes(self, body: bytes | bytearray | memoryview) -> Self:
        self._body = bytes(body)
        return self

    def body_text(self, body: str) -> Self:
        self._body = body.encode()
        if "content-type" not in self._headers:
            self._headers["content-type"] = "text/plain; charset=utf-8"
        return self

    def body_json(self, body: Any) -> Self:
        self._body = orjson.dumps(body)
        if "content-type" not in self._headers:
            self._headers["content-type"] = "application/json"
        return self

    def build(self) -> Response:
        return Response(self._status, self._headers, self._body, url=self._url)
