"""Cookie related classes."""

from pyagency.http.cookie.codec import (
    Cookie,
    SameSite,
    compose_cookie_header,
    parse_set_cookie,
    serialize_cookie_header,
)
from pyagency.http.cookie.jar import CookieJar, CookieRecord

__all__ = [
    "Cookie",
    "CookieJar",
    "CookieRecord",
    "SameSite",
    "compose_cookie_header",
    "parse_set_cookie",
    "serialize_cookie_header",
]
