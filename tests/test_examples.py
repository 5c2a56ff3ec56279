import importlib
from pathlib import Path
from urllib.parse import parse_qsl

import orjson
import pytest
from pyagency.http import Url
from pyagency.pytest_plugin import AgentMocker
from pyagency.request import Request
from pyagency.response import Response, ResponseBuilder

from examples._utils import run_examples

HTTPBIN = Url("http://httpbin.local")

EXAMPLE_MODULES = [
    p.stem
    for p in (Path(__file__).parent.parent / "examples").iterdir()
    if p.suffix == ".py" and not p.name.startswith("_")
]

EXPECTED_OUTPUT = {
    "basic_agent": [
        "{'example': 'session_cookies', 'status': 200, 'cookies': {'flavor': 'chocolate'}, "
        "'other_agent_cookies': {}, 'redirects': 1}",
        "{'example': 'literal_cookie_header', 'cookies': {'literal': '1', 'jar': '1'}}",
        "{'example': 'redirect_budget', 'followed_status': 200, 'followed_redirects': 3, 'limited_status': 302, "
        "'limited_location': '/redirect/1'}",
        "{'example': 'post_json', 'status': 200, 'echo': {'message': 'hello'}}",
        "{'example': 'error_for_status', 'error': 'HTTP status client error', 'status': 404}",
        "{'example': 'concurrent_requests', 'count': 3, 'indices': [0, 1, 2]}",
    ],
}


async def fake_httpbin(request: Request) -> Response | None:
    """Minimal stand-in for the httpbin endpoints used by the examples."""
    path = request.url.path
    query = parse_qsl(request.url.query_string or "")

    if path == "/cookies/set":
        builder = ResponseBuilder().status(302).header("Location", "/cookies")
        for name, value in query:
            builder.header("Set-Cookie", f"{name}={value}; Path=/")
        return builder.build()
    if path == "/cookies":
        header = request.headers.get("cookie", "")
        cookies = dict(pair.partition("=")[::2] for pair in header.split("; ") if pair)
        return ResponseBuilder().body_json({"cookies": cookies}).build()
    if path.startswith("/redirect/"):
        remaining = int(path.removeprefix("/redirect/"))
        location = f"/redirect/{remaining - 1}" if remaining > 1 else "/get"
        return ResponseBuilder().status(302).header("Location", location).build()
    if path == "/get":
        return ResponseBuilder().body_json({"args": dict(query), "url": str(request.url)}).build()
    if path == "/post" and request.body is not None:
        return ResponseBuilder().body_json({"json": orjson.loads(request.body)}).build()
    if path.startswith("/status/"):
        return ResponseBuilder().status(int(path.removeprefix("/status/"))).build()
    return None


@pytest.mark.parametrize("example", EXAMPLE_MODULES)
async def test_examples(
    capsys: pytest.CaptureFixture[str],
    agent_mocker: AgentMocker,
    monkeypatch: pytest.MonkeyPatch,
    example: str,
) -> None:
    agent_mocker.strict(True).mock().match_request_with_response(fake_httpbin)
    module = importlib.import_module(f"examples.{example}")
    monkeypatch.setattr(module, "HTTPBIN", HTTPBIN)

    await run_examples(module)

    printed = [line for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
    assert printed == EXPECTED_OUTPUT[example]
