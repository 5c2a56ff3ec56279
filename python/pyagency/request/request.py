from dataclasses import dataclass, field
from typing import Any, Self

from pyagency.http import HeaderMap, Url


@dataclass(slots=True)
class Request:
    """A single HTTP request as handed to a transport.

    `headers` hold what the caller set. The agent composes the jar-derived Cookie header into a copy right
    before dispatch, so a Request kept by the caller never contains jar cookies.
    """

    method: str
    url: Url
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: bytes | None = None
    extensions: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> Self:
        return type(self)(self.method, self.url, self.headers.copy(), self.body, {**self.extensions})

    def __repr__(self) -> str:
        return f"Request(method={self.method!r}, url={str(self.url)!r})"

    def repr_full(self) -> str:
        """Representation including headers and body."""
        body = self.body if self.body is None or len(self.body) <= 100 else self.body[:100] + b"..."
        return (
            f"Request(method={self.method!r}, url={str(self.url)!r}, "
            f"headers={self.headers.dict_multi_value()!r}, body={body!r})"
        )
