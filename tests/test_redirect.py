import pytest
from pyagency.exceptions import BuilderError
from pyagency.http import HeaderMap, Url
from pyagency.redirect import (
    RedirectController,
    RedirectMethod,
    RedirectState,
    redirect_method,
    resolve_location,
)
from pyagency.request import Request
from pyagency.response import Response, ResponseBuilder

BASE = Url("http://example.com/a/b")


def redirect(location: str | None, status: int = 302) -> Response:
    builder = ResponseBuilder().status(status)
    if location is not None:
        builder.header("Location", location)
    return builder.build()


@pytest.mark.parametrize(
    ("status", "method", "expected"),
    [
        (303, "POST", RedirectMethod("GET", keep_body=False)),
        (303, "PUT", RedirectMethod("GET", keep_body=False)),
        (303, "HEAD", RedirectMethod("GET", keep_body=False)),
        (307, "POST", RedirectMethod("POST", keep_body=True)),
        (308, "PUT", RedirectMethod("PUT", keep_body=True)),
        (301, "POST", RedirectMethod("POST", keep_body=True)),
        (302, "POST", RedirectMethod("POST", keep_body=True)),
        (302, "GET", RedirectMethod("GET", keep_body=False)),
        (301, "HEAD", RedirectMethod("HEAD", keep_body=False)),
        (300, "DELETE", RedirectMethod("DELETE", keep_body=True)),
    ],
)
def test_redirect_method(status: int, method: str, expected: RedirectMethod):
    assert redirect_method(status, method) == expected


@pytest.mark.parametrize(
    ("location", "expected"),
    [
        ("/dashboard", "http://example.com/dashboard"),
        ("c", "http://example.com/a/c"),
        ("https://other.com/x?y=1", "https://other.com/x?y=1"),
        ("  /padded  ", "http://example.com/padded"),
        ("", None),
        ("   ", None),
        ("ftp://example.com/file", None),
        ("mailto:someone@example.com", None),
    ],
)
def test_resolve_location(location: str, expected: str | None):
    target = resolve_location(redirect(location), BASE)
    assert (str(target) if target is not None else None) == expected


def test_controller_follow():
    controller = RedirectController(2)
    request = Request("GET", BASE, HeaderMap({"X-Custom": "1"}))

    next_request = controller.next_request(request, redirect("/next"))

    assert next_request is not None
    assert next_request.method == "GET"
    assert next_request.url == "http://example.com/next"
    assert next_request.headers == {"x-custom": "1"}
    assert next_request.body is None
    assert controller.remaining == 1
    assert controller.history == ["http://example.com/next"]
    assert controller.state is RedirectState.FOLLOWING


def test_controller_done_on_final_response():
    controller = RedirectController()
    assert controller.next_request(Request("GET", BASE), ResponseBuilder().status(200).build()) is None
    assert controller.state is RedirectState.DONE
    assert controller.history == []


def test_controller_done_without_location():
    controller = RedirectController()
    assert controller.next_request(Request("GET", BASE), redirect(None, 304)) is None
    assert controller.state is RedirectState.DONE


def test_controller_done_on_unusable_location():
    controller = RedirectController()
    assert controller.next_request(Request("GET", BASE), redirect("ftp://example.com/")) is None
    assert controller.state is RedirectState.DONE
    assert controller.remaining == 5


def test_controller_blocked_when_budget_spent():
    controller = RedirectController(1)
    request = Request("GET", BASE)

    request = controller.next_request(request, redirect("/one"))
    assert request is not None
    assert controller.next_request(request, redirect("/two")) is None
    assert controller.state is RedirectState.BLOCKED
    assert controller.history == ["http://example.com/one"]


def test_controller_zero_budget():
    controller = RedirectController(0)
    assert controller.next_request(Request("GET", BASE), redirect("/one")) is None
    assert controller.state is RedirectState.BLOCKED
    assert controller.history == []


def test_controller_negative_budget():
    with pytest.raises(BuilderError, match="redirects must be a non-negative integer"):
        RedirectController(-1)


def test_controller_see_other_drops_body():
    request = Request(
        "POST", BASE, HeaderMap({"Content-Type": "application/json", "Content-Length": "2", "X-Keep": "1"}), b"{}"
    )

    next_request = RedirectController().next_request(request, redirect("/result", 303))

    assert next_request is not None
    assert next_request.method == "GET"
    assert next_request.body is None
    assert next_request.headers == {"x-keep": "1"}


@pytest.mark.parametrize("status", [301, 302, 307, 308])
def test_controller_keeps_body(status: int):
    request = Request("POST", BASE, HeaderMap({"Content-Type": "application/json"}), b'{"foo":"bar"}')

    next_request = RedirectController().next_request(request, redirect("/simple", status))

    assert next_request is not None
    assert next_request.method == "POST"
    assert next_request.body == b'{"foo":"bar"}'
    assert next_request.headers == {"content-type": "application/json"}


def test_controller_strips_credentials_cross_origin():
    headers = HeaderMap({"Authorization": "Bearer t", "Cookie": "lit=1", "Host": "example.com", "X-Keep": "1"})
    request = Request("GET", BASE, headers)

    same_origin = RedirectController().next_request(request, redirect("/other"))
    cross_origin = RedirectController().next_request(request, redirect("https://example.com/other"))

    assert same_origin is not None
    assert same_origin.headers == {"authorization": "Bearer t", "cookie": "lit=1", "x-keep": "1"}
    assert cross_origin is not None
    assert cross_origin.headers == {"x-keep": "1"}


def test_controller_finished_chain():
    controller = RedirectController()
    controller.next_request(Request("GET", BASE), ResponseBuilder().build())
    with pytest.raises(RuntimeError, match=r"redirect chain already finished \(done\)"):
        controller.next_request(Request("GET", BASE), ResponseBuilder().build())
