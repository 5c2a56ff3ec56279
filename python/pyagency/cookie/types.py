"""Cookie types and interfaces."""

from typing import Protocol


class CookieProvider(Protocol):
    """Cookie provider that allows custom cookie handling. `CookieJar` is the default implementation."""

    def set_cookies(self, cookie_headers: list[str], url: str) -> None:
        """Set cookies for a given URL.

        Called by the agent after every response (including each redirect hop) that carries Set-Cookie
        headers. Implementations must not raise for malformed header values.

        Args:
            cookie_headers: List of Set-Cookie header values received from url
            url: The URL that sent the Set-Cookie headers
        """

    def cookies(self, url: str) -> str | None:
        """Get cookies for a given URL.

        Called by the agent before dispatching every request (including each redirect hop).

        Args:
            url: The URL for which cookies are requested

        Returns:
            A string containing the Cookie header value, or None if no cookies
        """
