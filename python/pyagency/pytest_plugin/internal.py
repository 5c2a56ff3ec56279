"""Matching and assertion message helpers for the mock rules."""

import re
from typing import TYPE_CHECKING, Any, Literal, assert_never

import orjson

from pyagency.http import Url
from pyagency.request import Request

if TYPE_CHECKING:
    from pyagency.pytest_plugin.mock import Mock


class InternalMatcher:
    """Wraps a user supplied matcher.

    Regex patterns must match the whole value. Url matchers compare against the full request URL. Anything
    else is compared with ==, which lets dirty_equals objects do their own matching.
    """

    def __init__(self, matcher: Any) -> None:
        self.matcher = matcher

    def matches(self, value: Any) -> bool:
        if isinstance(self.matcher, re.Pattern):
            return isinstance(value, str) and self.matcher.fullmatch(value) is not None
        return bool(self.matcher == value)

    def __str__(self) -> str:
        if isinstance(self.matcher, re.Pattern):
            return f"{self.matcher.pattern} (regex)"
        if isinstance(self.matcher, Url | str):
            return str(self.matcher)
        return repr(self.matcher)


def format_assert_called_error(
    mock: "Mock",
    *,
    count: int | None = None,
    min_count: int | None = None,
    max_count: int | None = None,
) -> str:
    actual_count = len(mock._matched_requests)
    error_parts = ["Mock was not called as expected."]

    if count is not None:
        error_parts.append(f"Expected exactly {count} request(s) but received {actual_count}.")
    else:
        expectations = []
        if min_count is not None:
            expectations.append(f"at least {min_count}")
        if max_count is not None:
            expectations.append(f"at most {max_count}")
        error_parts.append(f"Expected {' and '.join(expectations)} request(s) but received {actual_count}.")

    error_parts.append("\nMock configuration:")
    error_parts.append(_format_mock_matchers(mock))

    if mock._unmatched_requests_repr:
        error_parts.append(f"\nUnmatched requests ({len(mock._unmatched_requests_repr)}):")
        for i, request_repr in enumerate(mock._unmatched_requests_repr[-5:], 1):
            error_parts.append(f"  {i}. {request_repr}")
        if len(mock._unmatched_requests_repr) > 5:
            error_parts.append(f"  ... and {len(mock._unmatched_requests_repr) - 5} more")

    if mock._matched_requests:
        error_parts.append(f"\nMatched requests ({len(mock._matched_requests)}):")
        for i, request in enumerate(mock._matched_requests[-3:], 1):
            error_parts.append(f"  {i}. {request.repr_full()}")
        if len(mock._matched_requests) > 3:
            error_parts.append(f"  ... and {len(mock._matched_requests) - 3} more")

    return "\n".join(error_parts)


def format_unmatched_request(request: Request, unmatched: set[str]) -> str:
    """Request representation annotated with the names of the matchers it failed."""
    return f"{request.repr_full()} (mismatched: {', '.join(sorted(unmatched))})"


def _format_mock_matchers(mock: "Mock") -> str:
    parts = [
        f"  Method: {mock._method_matcher or 'Any'}",
        f"  Path: {mock._path_matcher or 'Any'}",
    ]

    if isinstance(mock._query_matcher, dict):
        parts.append(f"  Query: {', '.join(f'{k}={v}' for k, v in mock._query_matcher.items())}")
    elif mock._query_matcher is not None:
        parts.append(f"  Query: {mock._query_matcher}")

    if mock._header_matchers:
        parts.append(f"  Headers: {', '.join(f'{k}: {v}' for k, v in mock._header_matchers.items())}")

    if mock._body_matcher is not None:
        parts.append(_format_body_matcher(*mock._body_matcher))

    if mock._custom_matcher is not None:
        parts.append(f"  Custom matcher: {mock._custom_matcher.__name__}")

    if mock._custom_handler is not None:
        parts.append(f"  Custom handler: {mock._custom_handler.__name__}")

    return "\n".join(parts)


def _format_body_matcher(matcher: InternalMatcher, kind: Literal["content", "json"]) -> str:
    if kind == "json":
        try:
            return f"  Body (JSON): {orjson.dumps(matcher.matcher).decode()}"
        except TypeError:
            return f"  Body (JSON): {matcher}"
    elif kind == "content":
        if isinstance(matcher.matcher, bytes):
            return f"  Body (bytes): {matcher.matcher!r}"
        return f"  Body (text): {matcher}"
    else:
        assert_never(kind)
