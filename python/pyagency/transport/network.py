from datetime import timedelta
from typing import Self

import httpx

from pyagency.exceptions import (
    ConnectError,
    ConnectTimeoutError,
    PoolTimeoutError,
    ReadTimeoutError,
    TransportError,
    WriteTimeoutError,
)
from pyagency.request import Request
from pyagency.response import Response, ResponseBuilder


class HttpxTransport:
    """Network transport backed by an httpx transport (connection pooling, TLS, HTTP/1.1 and HTTP/2).

    The httpx transport layer is used directly, below httpx's client, so httpx never follows redirects nor
    stores cookies on its own.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        *,
        timeout: timedelta | None = None,
        verify: bool = True,
        http2: bool = False,
    ) -> None:
        """Initialize the transport.

        Args:
            transport: httpx transport to send requests with (default: httpx.AsyncHTTPTransport)
            timeout: Per exchange connect/read/write/pool timeout (default: no timeout)
            verify: Verify TLS certificates
            http2: Enable HTTP/2 negotiation
        """
        self._transport = transport or httpx.AsyncHTTPTransport(verify=verify, http2=http2)
        self._timeout = httpx.Timeout(timeout.total_seconds() if timeout is not None else None)

    async def dispatch(self, request: Request) -> Response:
        httpx_request = httpx.Request(
            request.method,
            str(request.url),
            headers=request.headers.items_multi(),
            content=request.body,
            extensions={"timeout": self._timeout.as_dict()},
        )
        try:
            httpx_response = await self._transport.handle_async_request(httpx_request)
            try:
                body = await httpx_response.aread()
            finally:
                await httpx_response.aclose()
        except httpx.ConnectTimeout as e:
            raise ConnectTimeoutError.from_cause("connection timed out", e, url=str(request.url)) from e
        except httpx.ConnectError as e:
            raise ConnectError.from_cause("error connecting to host", e, url=str(request.url)) from e
        except httpx.ReadTimeout as e:
            raise ReadTimeoutError.from_cause("timed out reading response", e, url=str(request.url)) from e
        except httpx.WriteTimeout as e:
            raise WriteTimeoutError.from_cause("timed out sending request", e, url=str(request.url)) from e
        except httpx.PoolTimeout as e:
            raise PoolTimeoutError.from_cause("timed out waiting for a connection", e, url=str(request.url)) from e
        except httpx.TransportError as e:
            raise TransportError.from_cause("error sending request", e, url=str(request.url)) from e

        return (
            ResponseBuilder()
            .status(httpx_response.status_code)
            .headers([(name.decode("latin-1"), value.decode("latin-1")) for name, value in httpx_response.headers.raw])
            .body_bytes(body)
            .url(request.url)
            .build()
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
