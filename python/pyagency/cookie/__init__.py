"""Cookie provider interface."""

from pyagency.cookie.types import CookieProvider

__all__ = ["CookieProvider"]
