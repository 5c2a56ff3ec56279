"""Types used in the pytest plugin."""

from collections.abc import Awaitable, Callable
from re import Pattern
from typing import Any

from pyagency.http import Url
from pyagency.request import Request
from pyagency.response import Response

# Plain values compare with ==, so dirty_equals matchers (IsStr, Contains, ...) are accepted as well.
Matcher = str | Pattern[str] | Any
JsonMatcher = Any

MethodMatcher = Matcher
UrlMatcher = Matcher | Url
QueryMatcher = dict[str, Matcher | list[str]] | Matcher
BodyContentMatcher = bytes | Matcher
CustomMatcher = Callable[[Request], Awaitable[bool]]
CustomHandler = Callable[[Request], Awaitable[Response | None]]
