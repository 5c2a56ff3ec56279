from collections.abc import Mapping
from typing import Any, Self
from urllib.parse import SplitResult, urlencode, urljoin, urlsplit, urlunsplit

from pyagency.exceptions import BuilderError
from pyagency.types import QueryParams

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


class Url:
    """Immutable parsed absolute URL."""

    __slots__ = ("_parts",)

    def __init__(self, url: "str | Url") -> None:
        """Parse an absolute URL from a string."""
        if isinstance(url, Url):
            self._parts: SplitResult = url._parts
            return
        try:
            parts = urlsplit(url.strip())
            parts.port  # noqa: B018  # validates the port
        except ValueError as e:
            raise BuilderError.from_cause(f"invalid URL: {url!r}", e) from e
        if not parts.scheme or not parts.hostname:
            raise BuilderError(f"URL must be absolute: {url!r}")
        self._parts = parts._replace(scheme=parts.scheme.lower(), path=parts.path or "/")

    @staticmethod
    def parse(url: str) -> "Url":
        """Parse an absolute URL from a string. Same as Url(url)."""
        return Url(url)

    def join(self, join_input: str) -> Self:
        """Resolve a (possibly relative) reference with this URL as the base.

        A trailing slash is significant: without it, the last path segment is replaced.
        """
        return type(self)(urljoin(str(self), join_input))

    @property
    def scheme(self) -> str:
        """Lower-cased scheme without the ':' delimiter."""
        return self._parts.scheme

    @property
    def host_str(self) -> str:
        """Lower-cased host (domain or IP address). IPv6 addresses are returned without brackets."""
        hostname = self._parts.hostname
        assert hostname is not None
        return hostname

    @property
    def port(self) -> int | None:
        """Explicit port number, if any."""
        return self._parts.port

    @property
    def port_or_known_default(self) -> int | None:
        return self._parts.port or _DEFAULT_PORTS.get(self.scheme)

    @property
    def origin(self) -> tuple[str, str, int | None]:
        """(scheme, host, port) tuple used for same-origin comparisons."""
        return self.scheme, self.host_str, self.port_or_known_default

    @property
    def path(self) -> str:
        """Percent-encoded path, always starting with '/'."""
        return self._parts.path

    @property
    def query_string(self) -> str | None:
        return self._parts.query or None

    @property
    def fragment(self) -> str | None:
        return self._parts.fragment or None

    def with_query(self, query: QueryParams | None) -> Self:
        """Replace the entire query with provided params (None removes query)."""
        query_string = urlencode(list(query.items()) if isinstance(query, Mapping) else query or [])
        return type(self)(urlunsplit(self._parts._replace(query=query_string)))

    def extend_query(self, query: QueryParams) -> Self:
        """Append additional key/value pairs to existing query keeping original order."""
        extra = urlencode(list(query.items()) if isinstance(query, Mapping) else query)
        if not extra:
            return self
        query_string = f"{self._parts.query}&{extra}" if self._parts.query else extra
        return type(self)(urlunsplit(self._parts._replace(query=query_string)))

    def __truediv__(self, join_input: str) -> Self:
        """Path join shorthand: url / 'segment' == url.join('segment')."""
        return self.join(join_input)

    def __str__(self) -> str:
        return urlunsplit(self._parts)

    def __repr__(self) -> str:
        return f"Url({str(self)!r})"

    def __hash__(self) -> int:
        return hash(str(self))

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Url):
            return str(self) == str(other)
        if isinstance(other, str):
            return str(self) == other
        return NotImplemented
