"""In-memory cookie jar implementing RFC 6265 storage and retrieval rules."""

import ipaddress
import itertools
import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from pyagency.exceptions import CookieParseError
from pyagency.http.cookie.codec import Cookie, SameSite, parse_set_cookie, serialize_cookie_header
from pyagency.http.url import Url

logger = logging.getLogger(__name__)

SECURE_SCHEMES = frozenset({"https", "wss"})

Clock = Callable[[], datetime]
CookieKey = tuple[str, str, str]


@dataclass(frozen=True, slots=True)
class CookieRecord:
    """A stored cookie. Unique per (domain, path, name)."""

    name: str
    value: str
    domain: str
    path: str
    host_only: bool
    secure: bool
    http_only: bool
    same_site: SameSite | None
    expires_at: datetime | None
    creation_order: int

    @property
    def key(self) -> CookieKey:
        return self.domain, self.path, self.name

    @property
    def persistent(self) -> bool:
        return self.expires_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def domain_matches(self, host: str) -> bool:
        if self.host_only:
            return host == self.domain
        return domain_match(host, self.domain)

    def path_matches(self, request_path: str) -> bool:
        return path_match(request_path, self.path)

    def stripped(self) -> str:
        return f"{self.name}={self.value}"


def domain_match(host: str, domain: str) -> bool:
    """Whether `host` equals `domain` or is a sub-domain of it on a label boundary.

    IP address hosts only ever match themselves.
    """
    if host == domain:
        return True
    return host.endswith(f".{domain}") and not _is_ip_address(host)


def path_match(request_path: str, cookie_path: str) -> bool:
    if request_path == cookie_path:
        return True
    if not request_path.startswith(cookie_path):
        return False
    return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"


def default_path(url: Url) -> str:
    """Directory of the request path (RFC 6265 section 5.1.4)."""
    path = url.path
    if not path.startswith("/") or path.count("/") == 1:
        return "/"
    return path[: path.rindex("/")]


def _is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


class CookieJar:
    """Thread-safe in-memory cookie store, domain and path aware.

    Every read and write holds the jar lock, so applying the Set-Cookie headers of one response is atomic with
    respect to concurrent `cookies_for` calls. Expired cookies are purged lazily.

    Implements the `CookieProvider` protocol (`set_cookies` and `cookies`) used by `Agent`.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        """Create an empty jar. `clock` returns the current aware UTC time (defaults to the system clock)."""
        self._clock = clock or (lambda: datetime.now(UTC))
        self._records: dict[CookieKey, CookieRecord] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def apply(self, set_cookie_values: Iterable[str], request_url: Url | str) -> None:
        """Store (or delete) the cookies of Set-Cookie header values received from `request_url`.

        Unparsable values and cookies with a Domain attribute not matching the request host are dropped.
        """
        url = Url(request_url)
        cookies: list[Cookie] = []
        for raw in set_cookie_values:
            try:
                cookies.append(parse_set_cookie(raw))
            except CookieParseError as e:
                logger.debug("Dropping unparsable Set-Cookie from %s: %s", url, e)

        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            for cookie in cookies:
                self._store(cookie, url, now)

    def insert(self, cookie: Cookie | str, request_url: Url | str) -> None:
        """Insert a cookie as if set by a response for `request_url`.

        Raises:
            CookieParseError: `cookie` is a string that can not be parsed.
        """
        if isinstance(cookie, str):
            cookie = parse_set_cookie(cookie)
        url = Url(request_url)
        with self._lock:
            self._store(cookie, url, self._clock())

    def cookies_for(self, target_url: Url | str, *, http: bool = True) -> list[CookieRecord]:
        """Unexpired cookies to send to `target_url`, longest path first then oldest first.

        With `http=False` HttpOnly cookies are hidden (non-HTTP API view).
        """
        url = Url(target_url)
        host, secure = url.host_str, url.scheme in SECURE_SCHEMES
        with self._lock:
            self._purge_expired(self._clock())
            selected = [
                record
                for record in self._records.values()
                if (secure or not record.secure)
                and (http or not record.http_only)
                and record.domain_matches(host)
                and record.path_matches(url.path)
            ]
        return sorted(selected, key=lambda record: (-len(record.path), record.creation_order))

    def clear(self, predicate: Callable[[CookieRecord], bool] | None = None) -> int:
        """Remove cookies matching `predicate` (all cookies when None). Returns the number removed."""
        with self._lock:
            keys = [key for key, record in self._records.items() if predicate is None or predicate(record)]
            for key in keys:
                del self._records[key]
        return len(keys)

    def contains(self, domain: str, path: str, name: str) -> bool:
        """Returns true if the jar holds an unexpired cookie for the specified domain, path, and name."""
        return self.get(domain, path, name) is not None

    def get(self, domain: str, path: str, name: str) -> CookieRecord | None:
        """Returns the unexpired cookie for the specified domain, path, and name."""
        with self._lock:
            record = self._records.get((domain.lower(), path, name))
            if record is None or record.is_expired(self._clock()):
                return None
            return record

    def remove(self, domain: str, path: str, name: str) -> CookieRecord | None:
        """Removes a cookie from the jar, returning it if it was in the jar."""
        with self._lock:
            return self._records.pop((domain.lower(), path, name), None)

    def get_all_unexpired(self) -> list[CookieRecord]:
        """All unexpired cookies in the order they were first set."""
        with self._lock:
            self._purge_expired(self._clock())
            return sorted(self._records.values(), key=lambda record: record.creation_order)

    def set_cookies(self, cookie_headers: list[str], url: str) -> None:
        """CookieProvider hook: apply Set-Cookie headers received from `url`."""
        self.apply(cookie_headers, url)

    def cookies(self, url: str) -> str | None:
        """CookieProvider hook: Cookie header value for `url`, or None if no cookie matches."""
        records = self.cookies_for(url)
        return serialize_cookie_header((record.name, record.value) for record in records) or None

    def __len__(self) -> int:
        return len(self.get_all_unexpired())

    def __iter__(self) -> Iterator[CookieRecord]:
        return iter(self.get_all_unexpired())

    def __repr__(self) -> str:
        return f"CookieJar({[record.stripped() for record in self]!r})"

    def _store(self, cookie: Cookie, url: Url, now: datetime) -> None:
        host = url.host_str
        if cookie.domain is None:
            domain, host_only = host, True
        elif self._domain_allowed(cookie.domain, host):
            domain, host_only = cookie.domain, False
        else:
            logger.debug("Rejecting cookie %r: domain %r does not match host %r", cookie.name, cookie.domain, host)
            return

        path = cookie.path or default_path(url)
        key = (domain, path, cookie.name)
        expires_at = cookie.expiry(now)
        if expires_at is not None and expires_at <= now:
            if self._records.pop(key, None) is not None:
                logger.debug("Deleted cookie %r for %s%s", cookie.name, domain, path)
            return

        previous = self._records.get(key)
        record = CookieRecord(
            name=cookie.name,
            value=cookie.value,
            domain=domain,
            path=path,
            host_only=host_only,
            secure=cookie.secure,
            http_only=cookie.http_only,
            same_site=cookie.same_site,
            expires_at=expires_at,
            creation_order=next(self._counter),
        )
        if previous is not None:
            record = replace(record, creation_order=previous.creation_order)
        self._records[key] = record

    @staticmethod
    def _domain_allowed(domain: str, host: str) -> bool:
        if domain == host:
            return True
        if "." not in domain:
            return False
        return domain_match(host, domain)

    def _purge_expired(self, now: datetime) -> None:
        for key in [key for key, record in self._records.items() if record.is_expired(now)]:
            del self._records[key]
