"""Set-Cookie parsing and Cookie header serialization.

Parsing follows the user agent algorithm of RFC 6265 section 5.2: the name/value pair is split on the first
'=', attributes are matched case-insensitively and an attribute with an invalid value is ignored on its own
without discarding the cookie.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime, parsedate_to_datetime
from typing import Literal, TypeAlias

from pyagency.exceptions import CookieParseError

SameSite: TypeAlias = Literal["Strict", "Lax", "None"]

_SAME_SITE_VALUES: dict[str, SameSite] = {"strict": "Strict", "lax": "Lax", "none": "None"}
_MAX_AGE_RE = re.compile(r"-?\d+")
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_FAR_FUTURE = datetime(9999, 12, 31, 23, 59, 59, tzinfo=UTC)


@dataclass(frozen=True, slots=True)
class Cookie:
    """An immutable cookie as sent by a server: name, raw value and optional attributes."""

    name: str
    value: str
    domain: str | None = None
    path: str | None = None
    secure: bool = False
    http_only: bool = False
    same_site: SameSite | None = None
    partitioned: bool = False
    max_age: timedelta | None = None
    expires_datetime: datetime | None = None

    @staticmethod
    def parse(cookie: str) -> "Cookie":
        """Parses a Cookie from the given Set-Cookie header value string."""
        return parse_set_cookie(cookie)

    def expiry(self, now: datetime) -> datetime | None:
        """Absolute expiration time relative to `now`. Max-Age takes precedence over Expires.

        Returns None for a session cookie.
        """
        if self.max_age is not None:
            if self.max_age <= timedelta(0):
                return _EPOCH
            try:
                return min(now + self.max_age, _FAR_FUTURE)
            except OverflowError:
                return _FAR_FUTURE
        return self.expires_datetime

    def stripped(self) -> str:
        """Return just the 'name=value' pair."""
        return f"{self.name}={self.value}"

    def __str__(self) -> str:
        parts = [self.stripped()]
        if self.http_only:
            parts.append("HttpOnly")
        if self.same_site is not None:
            parts.append(f"SameSite={self.same_site}")
        if self.partitioned:
            parts.append("Partitioned")
        if self.secure:
            parts.append("Secure")
        if self.path is not None:
            parts.append(f"Path={self.path}")
        if self.domain is not None:
            parts.append(f"Domain={self.domain}")
        if self.max_age is not None:
            parts.append(f"Max-Age={int(self.max_age.total_seconds())}")
        if self.expires_datetime is not None:
            parts.append(f"Expires={format_datetime(self.expires_datetime, usegmt=True)}")
        return "; ".join(parts)


def parse_set_cookie(raw: str) -> Cookie:
    """Parse one Set-Cookie header value.

    Raises:
        CookieParseError: the name/value pair has no '=' or the name is empty.
    """
    name_value, *attributes = raw.split(";")
    name, sep, value = name_value.partition("=")
    name, value = name.strip(), value.strip()
    if not sep or not name:
        raise CookieParseError(f"invalid cookie name/value pair: {name_value!r}")

    domain: str | None = None
    path: str | None = None
    secure = http_only = partitioned = False
    same_site: SameSite | None = None
    max_age: timedelta | None = None
    expires: datetime | None = None

    for attribute in attributes:
        key, _, attr_value = attribute.partition("=")
        key, attr_value = key.strip().lower(), attr_value.strip()

        if key == "domain":
            if attr_value.removeprefix("."):
                domain = attr_value.removeprefix(".").lower()
        elif key == "path":
            path = attr_value if attr_value.startswith("/") else None
        elif key == "secure":
            secure = True
        elif key == "httponly":
            http_only = True
        elif key == "partitioned":
            partitioned = True
        elif key == "samesite":
            same_site = _SAME_SITE_VALUES.get(attr_value.lower(), same_site)
        elif key == "max-age":
            if _MAX_AGE_RE.fullmatch(attr_value):
                max_age = _seconds(int(attr_value))
        elif key == "expires":
            expires = parse_http_date(attr_value) or expires

    return Cookie(
        name=name,
        value=value,
        domain=domain,
        path=path,
        secure=secure,
        http_only=http_only,
        same_site=same_site,
        partitioned=partitioned,
        max_age=max_age,
        expires_datetime=expires,
    )


def parse_http_date(value: str) -> datetime | None:
    """Parse an HTTP date (RFC 1123, RFC 850 or asctime format) into an aware UTC datetime."""
    for candidate in (value, value.replace("-", " ")):
        try:
            parsed = parsedate_to_datetime(candidate)
        except (TypeError, ValueError, IndexError):
            continue
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    return None


def serialize_cookie_header(pairs: Iterable[tuple[str, str]]) -> str:
    """Join (name, value) pairs into a Cookie header value, keeping the given order."""
    return "; ".join(f"{name}={value}" for name, value in pairs)


def compose_cookie_header(literal: str | None, jar_header: str | None) -> str | None:
    """Append the jar's Cookie header value after a caller supplied one.

    The caller's value is kept verbatim (minus surrounding whitespace and a trailing ';'). Names are not
    de-duplicated. Returns None when there is nothing to send.
    """
    parts = [part for part in (_trim(literal), _trim(jar_header)) if part]
    return "; ".join(parts) or None


def _trim(header: str | None) -> str:
    return (header or "").strip().rstrip(";").rstrip()


def _seconds(seconds: int) -> timedelta:
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        return timedelta.max if seconds > 0 else timedelta.min
