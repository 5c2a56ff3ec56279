import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from datetime import timedelta
from typing import Any, Self
from urllib.parse import unquote

from pyagency.request import Request
from pyagency.response import Response, ResponseBuilder

ASGIApp = Callable[
    [dict[str, Any], Callable[[], Awaitable[dict[str, Any]]], Callable[[dict[str, Any]], Awaitable[None]]],
    Awaitable[None],
]


class ASGITransport:
    """Transport that routes requests into an ASGI application in-process.

    Use `async with` to run the application's lifespan startup and shutdown around the requests.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        timeout: timedelta | None = None,
        client: tuple[str, int] = ("127.0.0.1", 123),
        scope_update: Callable[[dict[str, Any], Request], Coroutine[Any, Any, None]] | None = None,
    ) -> None:
        """Initialize the ASGI transport.

        Args:
            app: ASGI application callable
            timeout: Timeout for ASGI operations (default: 5 seconds)
            client: Client address reported in the ASGI scope
            scope_update: Optional coroutine to modify the ASGI scope per request
        """
        self._app = app
        self._client = client
        self._scope_update = scope_update
        self._timeout = timeout or timedelta(seconds=5)
        self._lifespan_input_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._lifespan_output_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._lifespan_task: asyncio.Task[None] | None = None
        self._state: dict[str, Any] = {}

    async def __aenter__(self) -> Self:
        async def wrapped_lifespan() -> None:
            await self._app(
                {"type": "lifespan", "asgi": {"version": "3.0"}, "state": self._state},
                self._lifespan_input_queue.get,
                self._lifespan_output_queue.put,
            )

        self._lifespan_task = asyncio.create_task(wrapped_lifespan())
        await self._send_lifespan("startup")
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._send_lifespan("shutdown")
        self._lifespan_task = None

    async def _send_lifespan(self, action: str) -> None:
        assert self._lifespan_task

        await self._lifespan_input_queue.put({"type": f"lifespan.{action}"})
        message = await asyncio.wait_for(self._lifespan_output_queue.get(), timeout=self._timeout.total_seconds())

        if message["type"] == f"lifespan.{action}.failed":
            await asyncio.sleep(0)
            if self._lifespan_task.done() and (exc := self._lifespan_task.exception()) is not None:
                raise exc
            raise RuntimeError(message)

    async def dispatch(self, request: Request) -> Response:
        scope = await self._request_to_asgi_scope(request)
        body_parts = self._asgi_body_parts(request)

        send_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        response_complete = asyncio.Event()

        async def receive() -> dict[str, Any]:
            if part := await anext(body_parts, None):
                return part
            await response_complete.wait()
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            await send_queue.put(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                response_complete.set()

        await self._app(scope, receive, send)

        return await self._asgi_response_to_response(request, send_queue)

    async def aclose(self) -> None:
        return None

    async def _request_to_asgi_scope(self, request: Request) -> dict[str, Any]:
        url = request.url
        headers = request.headers.copy()
        if "host" not in headers:
            headers["host"] = url.host_str if url.port is None else f"{url.host_str}:{url.port}"
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": request.method.upper(),
            "scheme": url.scheme,
            "path": unquote(url.path),
            "raw_path": url.path.encode(),
            "root_path": "",
            "query_string": (url.query_string or "").encode(),
            "headers": [[name.encode(), value.encode("latin-1")] for name, value in headers.items_multi()],
            "client": self._client,
            "server": (url.host_str, url.port_or_known_default),
            "state": self._state.copy(),
        }
        if self._scope_update is not None:
            await self._scope_update(scope, request)
        return scope

    async def _asgi_body_parts(self, request: Request) -> AsyncIterator[dict[str, Any]]:
        yield {"type": "http.request", "body": request.body or b"", "more_body": False}

    async def _asgi_response_to_response(
        self, request: Request, send_queue: asyncio.Queue[dict[str, Any]]
    ) -> Response:
        response_builder = ResponseBuilder().url(request.url)
        body_parts = []

        while True:
            message = await asyncio.wait_for(send_queue.get(), timeout=self._timeout.total_seconds())

            if message["type"] == "http.response.start":
                response_builder.status(message["status"])
                headers = message.get("headers", [])
                response_builder.headers([(k.decode("latin-1"), v.decode("latin-1")) for k, v in headers])

            elif message["type"] == "http.response.body":
                if body := message.get("body"):
                    body_parts.append(body)

                if not message.get("more_body", False):
                    break

        return response_builder.body_bytes(b"".join(body_parts)).build()
