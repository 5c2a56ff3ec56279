"""Transport types and interfaces."""

from typing import Protocol

from pyagency.request import Request
from pyagency.response import Response


class Transport(Protocol):
    """A single request/response exchange. Implementations never follow redirects nor handle cookies."""

    async def dispatch(self, request: Request) -> Response:
        """Send `request` and return the fully received response.

        Response headers must keep every occurrence of repeated names (Set-Cookie in particular).

        Raises:
            TransportError: the exchange failed (connection refused, timeout, ...).
        """
        ...

    async def aclose(self) -> None:
        """Release resources held by the transport."""
        ...
