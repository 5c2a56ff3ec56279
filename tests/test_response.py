from collections.abc import MutableMapping

import pytest
from pyagency.exceptions import DecodeError, JSONDecodeError, StatusError
from pyagency.http import HeaderMap, Url
from pyagency.response import Response, ResponseBuilder


async def test_status():
    resp = ResponseBuilder().build()
    resp.error_for_status()
    assert resp.status == 200

    resp.status = 404
    assert resp.status == 404
    with pytest.raises(StatusError, match="HTTP status client error") as e:
        resp.error_for_status()
    assert e.value.details["status"] == 404

    resp.status = 500
    with pytest.raises(StatusError, match="HTTP status server error"):
        resp.error_for_status()

    with pytest.raises(ValueError, match="invalid status code"):
        resp.status = 9999


async def test_headers():
    resp = (
        ResponseBuilder()
        .header("X-Test1", "Value1")
        .header("x-test1", "Value2")
        .headers([("X-Test2", "Value3")])
        .build()
    )

    assert type(resp.headers) is HeaderMap and isinstance(resp.headers, MutableMapping)
    assert resp.headers.getall("X-Test1") == ["Value1", "Value2"] and resp.headers["x-test1"] == "Value1"
    assert resp.headers.getall("X-Test2") == ["Value3"]

    resp.headers["X-Test2"] = "Value4"
    assert resp.headers["x-test2"] == "Value4"


async def test_body():
    resp = ResponseBuilder().body_text("héllo").build()
    assert resp.body == "héllo".encode()
    assert await resp.bytes() == "héllo".encode()
    assert await resp.text() == "héllo"
    assert resp.headers["content-type"] == "text/plain; charset=utf-8"


async def test_text_charset():
    resp = ResponseBuilder().header("content-type", 'text/plain; charset="latin-1"').body_bytes(b"caf\xe9").build()
    assert resp.charset == "latin-1"
    assert await resp.text() == "café"

    resp = ResponseBuilder().body_bytes(b"\xff\xfe").build()
    with pytest.raises(DecodeError, match="error decoding response body"):
        await resp.text()


async def test_json():
    resp = ResponseBuilder().body_json({"a": [1, 2]}).build()
    assert await resp.json() == {"a": [1, 2]}
    assert resp.headers["content-type"] == "application/json"

    resp = ResponseBuilder().body_text("not json").build()
    with pytest.raises(JSONDecodeError, match="error decoding response body as JSON") as e:
        await resp.json()
    assert isinstance(e.value, ValueError)
    assert e.value.details["causes"]


def test_redirect_properties():
    resp = ResponseBuilder().status(302).header("Location", "/next").build()
    assert resp.is_redirect
    assert resp.location == "/next"

    assert not ResponseBuilder().status(304).build().is_redirect
    assert not ResponseBuilder().status(200).header("Location", "/x").build().is_redirect


def test_with_chain():
    resp = ResponseBuilder().status(200).body_text("x").build()
    chained = resp.with_chain(Url("http://example.com/b"), ["http://example.com/b"])

    assert chained.url == "http://example.com/b"
    assert chained.redirects == ["http://example.com/b"]
    assert chained.body == b"x"
    assert resp.redirects == []
    assert resp.url is None
    assert repr(chained) == "Response(status=200, url='http://example.com/b')"


def test_response_direct():
    resp = Response(201, {"A": "1"}, b"body", url="http://example.com/")
    assert resp.headers == {"a": "1"}
    assert resp.url == Url("http://example.com/")
