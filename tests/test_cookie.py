from datetime import UTC, datetime, timedelta

import pytest
from pyagency.exceptions import CookieParseError
from pyagency.http.cookie import Cookie, compose_cookie_header, parse_set_cookie, serialize_cookie_header
from pyagency.http.cookie.codec import parse_http_date

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def test_cookie_create():
    assert str(Cookie("key", "val")) == "key=val"
    assert str(Cookie.parse("key=val")) == "key=val"
    assert str(Cookie.parse("key=val; Path=/foo; HttpOnly")) == "key=val; HttpOnly; Path=/foo"
    assert Cookie.parse("key=val; Secure").stripped() == "key=val"


def test_cookie_attributes():
    cookie = parse_set_cookie(
        "name=value; Domain=.Example.COM; Path=/docs; Secure; HttpOnly; SameSite=strict; Partitioned; Max-Age=60"
    )
    assert cookie == Cookie(
        name="name",
        value="value",
        domain="example.com",
        path="/docs",
        secure=True,
        http_only=True,
        same_site="Strict",
        partitioned=True,
        max_age=timedelta(seconds=60),
    )


def test_cookie_attribute_names_case_insensitive():
    cookie = parse_set_cookie("a=b; path=/x; secure; httponly; max-age=10; DOMAIN=example.com")
    assert (cookie.path, cookie.secure, cookie.http_only, cookie.domain) == ("/x", True, True, "example.com")
    assert cookie.max_age == timedelta(seconds=10)


def test_cookie_value_split_on_first_equals():
    cookie = parse_set_cookie(" token = abc=def== ; Path=/")
    assert (cookie.name, cookie.value) == ("token", "abc=def==")


def test_cookie_empty_value():
    assert parse_set_cookie("empty=").value == ""


@pytest.mark.parametrize("raw", ["novalue", "=value", "   ", ""])
def test_cookie_parse_error(raw: str):
    with pytest.raises(CookieParseError, match="invalid cookie name/value pair"):
        parse_set_cookie(raw)


def test_cookie_invalid_attributes_ignored():
    cookie = parse_set_cookie("a=b; Path=relative; Max-Age=soon; Expires=never; SameSite=sometimes; Domain=")
    assert cookie == Cookie("a", "b")


def test_cookie_expiry_max_age_wins():
    cookie = parse_set_cookie("a=b; Expires=Wed, 09 Jun 2021 10:18:14 GMT; Max-Age=3600")
    assert cookie.expires_datetime == datetime(2021, 6, 9, 10, 18, 14, tzinfo=UTC)
    assert cookie.expiry(NOW) == NOW + timedelta(hours=1)


def test_cookie_expiry_non_positive_max_age():
    assert parse_set_cookie("a=b; Max-Age=0").expiry(NOW) == datetime(1970, 1, 1, tzinfo=UTC)
    assert parse_set_cookie("a=b; Max-Age=-5").expiry(NOW) == datetime(1970, 1, 1, tzinfo=UTC)


def test_cookie_expiry_huge_max_age_clamped():
    expiry = parse_set_cookie("a=b; Max-Age=99999999999999999999").expiry(NOW)
    assert expiry == datetime(9999, 12, 31, 23, 59, 59, tzinfo=UTC)


def test_cookie_session():
    assert parse_set_cookie("a=b").expiry(NOW) is None
    assert parse_set_cookie("a=b; Max-Age=x; Expires=y").expiry(NOW) is None


@pytest.mark.parametrize(
    "value",
    [
        "Wed, 09 Jun 2021 10:18:14 GMT",
        "Wednesday, 09-Jun-2021 10:18:14 GMT",
        "Wed, 09-Jun-2021 10:18:14 GMT",
    ],
)
def test_parse_http_date(value: str):
    assert parse_http_date(value) == datetime(2021, 6, 9, 10, 18, 14, tzinfo=UTC)


def test_parse_http_date_invalid():
    assert parse_http_date("not a date") is None


def test_serialize_cookie_header():
    assert serialize_cookie_header([("a", "1"), ("b", "2")]) == "a=1; b=2"
    assert serialize_cookie_header([]) == ""


def test_compose_cookie_header():
    assert compose_cookie_header("first=dummy; cookie=jam", "cookie=jar; sid=1") == (
        "first=dummy; cookie=jam; cookie=jar; sid=1"
    )
    assert compose_cookie_header(" lit=1; ", None) == "lit=1"
    assert compose_cookie_header(None, "sid=1") == "sid=1"
    assert compose_cookie_header("", "") is None
    assert compose_cookie_header(None, None) is None
