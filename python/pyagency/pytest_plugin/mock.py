"""Module providing request mocking capabilities for pyagency agents in tests."""

from collections.abc import Awaitable
from functools import cached_property
from re import Pattern
from typing import Any, Literal, Self, assert_never
from urllib.parse import parse_qsl

import orjson
import pytest

from pyagency.agent import Agent, AgentBuilder
from pyagency.http import Url
from pyagency.pytest_plugin.internal import InternalMatcher, format_assert_called_error, format_unmatched_request
from pyagency.pytest_plugin.types import (
    BodyContentMatcher,
    CustomHandler,
    CustomMatcher,
    JsonMatcher,
    Matcher,
    MethodMatcher,
    QueryMatcher,
    UrlMatcher,
)
from pyagency.request import Request
from pyagency.response import Response, ResponseBuilder
from pyagency.transport import HttpxTransport, Transport


class Mock:
    """Class representing a single mock rule."""

    def __init__(self, method: MethodMatcher | None = None, path: UrlMatcher | None = None) -> None:
        """Do not use directly. Instead, use AgentMocker.mock()."""
        self._method_matcher = InternalMatcher(method) if method is not None else None
        self._path_matcher = InternalMatcher(path) if path is not None else None
        self._query_matcher: dict[str, InternalMatcher] | InternalMatcher | None = None
        self._header_matchers: dict[str, InternalMatcher] = {}
        self._body_matcher: tuple[InternalMatcher, Literal["content", "json"]] | None = None
        self._custom_matcher: CustomMatcher | None = None
        self._custom_handler: CustomHandler | None = None

        self._matched_requests: list[Request] = []
        self._unmatched_requests_repr: list[str] = []

        self._using_response_builder = False

    def assert_called(
        self,
        *,
        count: int | None = None,
        min_count: int | None = None,
        max_count: int | None = None,
    ) -> None:
        """Assert that this mock was called the expected number of times. By default, exactly once."""
        if count is None and min_count is None and max_count is None:
            count = 1

        if self._assertion_passes(count, min_count, max_count):
            return

        raise AssertionError(format_assert_called_error(self, count=count, min_count=min_count, max_count=max_count))

    def _assertion_passes(self, count: int | None, min_count: int | None, max_count: int | None) -> bool:
        actual_count = len(self._matched_requests)
        if count is not None:
            return actual_count == count

        min_satisfied = min_count is None or actual_count >= min_count
        max_satisfied = max_count is None or actual_count <= max_count

        return min_satisfied and max_satisfied

    def get_requests(self) -> list[Request]:
        """Get all captured requests by this mock. Each redirect hop is a separate request."""
        return [*self._matched_requests]

    def get_call_count(self) -> int:
        """Get the total number of calls to this mock."""
        return len(self._matched_requests)

    def reset_requests(self) -> None:
        """Reset all captured requests for this mock."""
        self._matched_requests.clear()
        self._unmatched_requests_repr.clear()

    def match_query(self, query: QueryMatcher) -> Self:
        """Set a matcher to match the entire query string or specific query parameters."""
        if isinstance(query, dict):
            self._query_matcher = {k: InternalMatcher(v) for k, v in query.items()}
        else:
            self._query_matcher = InternalMatcher(query)
        return self

    def match_query_param(self, name: str, value: Matcher) -> Self:
        """Set a matcher to match a specific query parameter."""
        if not isinstance(self._query_matcher, dict):
            self._query_matcher = {}
        self._query_matcher[name] = InternalMatcher(value)
        return self

    def match_header(self, name: str, value: Matcher) -> Self:
        """Set a matcher to match a specific request header. The Cookie header includes the jar's cookies."""
        self._header_matchers[name.lower()] = InternalMatcher(value)
        return self

    def match_body(self, matcher: BodyContentMatcher) -> Self:
        """Set a matcher to match request bodies as raw content (text or bytes)."""
        self._body_matcher = (InternalMatcher(matcher), "content")
        return self

    def match_body_json(self, matcher: JsonMatcher) -> Self:
        """Set a matcher to match JSON request bodies."""
        self._body_matcher = (InternalMatcher(matcher), "json")
        return self

    def match_request(self, matcher: CustomMatcher) -> Self:
        """Set a custom matcher to match requests."""
        self._custom_matcher = matcher
        return self

    def match_request_with_response(self, handler: CustomHandler) -> Self:
        """Set a custom handler to generate the response for matched requests. Returning None means no match."""
        assert not self._using_response_builder, "Cannot use response builder and custom handler together"
        self._custom_handler = handler
        return self

    def with_status(self, status: int) -> Self:
        """Set the mocked response status code."""
        self._response_builder.status(status)
        return self

    def with_header(self, name: str, value: str) -> Self:
        """Add a header to the mocked response. Can be repeated, e.g. for several Set-Cookie headers."""
        self._response_builder.header(name, value)
        return self

    def with_redirect(self, location: str, status: int = 302) -> Self:
        """Respond with a redirect to `location`."""
        return self.with_status(status).with_header("location", location)

    def with_body_bytes(self, body: bytes | bytearray | memoryview) -> Self:
        """Set the mocked response body to the given bytes."""
        self._response_builder.body_bytes(body)
        return self

    def with_body_text(self, body: str) -> Self:
        """Set the mocked response body to the given text."""
        self._response_builder.body_text(body)
        return self

    def with_body_json(self, json_body: Any) -> Self:
        """Set the mocked response body to the given JSON-serializable object."""
        self._response_builder.body_json(json_body)
        return self

    async def _handle(self, request: Request) -> Response | None:
        matches = {
            "method": self._matches_method(request),
            "path": self._matches_path(request),
            "query": self._match_query(request),
            "headers": self._match_headers(request),
            "body": self._match_body(request),
            "custom": await self._matches_custom(request),
        }

        response: Response | None = None
        if all(matches.values()):
            if self._custom_handler is not None:
                response = await self._handle_custom_handler(request)
                matches["handler"] = response is not None
            else:
                response = self._response_builder.build()

        if response is not None:
            self._matched_requests.append(request)
            return response

        self._unmatched_requests_repr.append(
            format_unmatched_request(request, {name for name, matched in matches.items() if not matched})
        )
        return None

    @cached_property
    def _response_builder(self) -> ResponseBuilder:
        assert self._custom_handler is None, "Cannot use response builder and custom handler together"
        self._using_response_builder = True
        return ResponseBuilder()

    def _matches_method(self, request: Request) -> bool:
        return self._method_matcher is None or self._method_matcher.matches(request.method)

    def _matches_path(self, request: Request) -> bool:
        if self._path_matcher is None:
            return True
        if isinstance(self._path_matcher.matcher, Url):
            return self._path_matcher.matches(request.url)
        return self._path_matcher.matches(request.url.path)

    def _match_headers(self, request: Request) -> bool:
        for header_name, expected_value in self._header_matchers.items():
            actual_value = request.headers.get(header_name)
            if actual_value is None or not expected_value.matches(actual_value):
                return False
        return True

    def _match_body(self, request: Request) -> bool:
        if self._body_matcher is None:
            return True

        if request.body is None:
            return False

        matcher, kind = self._body_matcher
        if kind == "json":
            try:
                return matcher.matches(orjson.loads(request.body))
            except orjson.JSONDecodeError:
                return False
        elif kind == "content":
            if isinstance(matcher.matcher, bytes):
                return matcher.matches(request.body)
            try:
                return matcher.matches(request.body.decode())
            except UnicodeDecodeError:
                return False
        else:
            assert_never(kind)

    def _match_query(self, request: Request) -> bool:
        if self._query_matcher is None:
            return True

        query_str = request.url.query_string or ""
        query_dict: dict[str, str | list[str]] = {}
        for key, value in parse_qsl(query_str, keep_blank_values=True):
            if key not in query_dict:
                query_dict[key] = value
            elif isinstance(existing := query_dict[key], list):
                existing.append(value)
            else:
                query_dict[key] = [existing, value]

        if isinstance(self._query_matcher, dict):
            for key, expected_value in self._query_matcher.items():
                actual_value = query_dict.get(key)
                if actual_value is None or not expected_value.matches(actual_value):
                    return False
            return True
        if isinstance(self._query_matcher.matcher, str | Pattern):
            return self._query_matcher.matches(query_str)
        return self._query_matcher.matches(query_dict)

    async def _matches_custom(self, request: Request) -> bool:
        if self._custom_matcher is None:
            return True
        res = self._custom_matcher(request)
        assert isinstance(res, Awaitable)
        return await res

    async def _handle_custom_handler(self, request: Request) -> Response | None:
        assert self._custom_handler
        res = self._custom_handler(request)
        assert isinstance(res, Awaitable)
        return await res


class MockTransport:
    """Transport answering from the mock rules, falling through to the agent's own transport."""

    def __init__(self, mocker: "AgentMocker", transport: Transport | None) -> None:
        self._mocker = mocker
        self._transport = transport

    async def dispatch(self, request: Request) -> Response:
        for mock in self._mocker._mocks:
            if (response := await mock._handle(request)) is not None:
                return response

        # No rule matched
        if self._mocker._strict:
            msg = f"No mock rule matched request: {request.method} {request.url}"
            raise AssertionError(msg)
        if self._transport is None:
            self._transport = HttpxTransport()
        return await self._transport.dispatch(request)  # Proceed normally

    async def aclose(self) -> None:
        if self._transport is not None:
            await self._transport.aclose()


class AgentMocker:
    """Main class for mocking agent requests.

    Mocks sit below the agent: cookies and redirects are handled by the agent as usual, so every redirect hop
    is matched separately and Set-Cookie headers of mocked responses end up in the agent's jar.
    """

    def __init__(self) -> None:
        """Initialize the AgentMocker."""
        self._mocks: list[Mock] = []
        self._strict = False

    def mock(self, method: MethodMatcher | None = None, path: UrlMatcher | None = None) -> Mock:
        """Add a mock rule for requests matching the given criteria."""
        mock = Mock(method, path)
        self._mocks.append(mock)
        return mock

    def get(self, path: UrlMatcher | None = None) -> Mock:
        """Mock GET requests to the given URL."""
        return self.mock("GET", path)

    def post(self, path: UrlMatcher | None = None) -> Mock:
        """Mock POST requests to the given URL."""
        return self.mock("POST", path)

    def put(self, path: UrlMatcher | None = None) -> Mock:
        """Mock PUT requests to the given URL."""
        return self.mock("PUT", path)

    def patch(self, path: UrlMatcher | None = None) -> Mock:
        """Mock PATCH requests to the given URL."""
        return self.mock("PATCH", path)

    def delete(self, path: UrlMatcher | None = None) -> Mock:
        """Mock DELETE requests to the given URL."""
        return self.mock("DELETE", path)

    def head(self, path: UrlMatcher | None = None) -> Mock:
        """Mock HEAD requests to the given URL."""
        return self.mock("HEAD", path)

    def options(self, path: UrlMatcher | None = None) -> Mock:
        """Mock OPTIONS requests to the given URL."""
        return self.mock("OPTIONS", path)

    def strict(self, enabled: bool = True) -> Self:
        """Enable strict mode - unmatched requests will raise an error."""
        self._strict = enabled
        return self

    def get_requests(self) -> list[Request]:
        """Get all captured requests in all mocks."""
        return [request for mock in self._mocks for request in mock.get_requests()]

    def get_call_count(self) -> int:
        """Get the total number of calls in all mocks."""
        return sum(mock.get_call_count() for mock in self._mocks)

    def clear(self) -> None:
        """Remove all mocks."""
        self._mocks.clear()

    def reset_requests(self) -> None:
        """Reset all captured requests in all mocks."""
        for mock in self._mocks:
            mock.reset_requests()

    def _create_transport(self, transport: Transport | None) -> MockTransport:
        return MockTransport(self, transport)


@pytest.fixture
def agent_mocker(monkeypatch: pytest.MonkeyPatch) -> AgentMocker:
    """Fixture that provides an AgentMocker for mocking agent requests in tests."""
    mocker = AgentMocker()
    orig_build = AgentBuilder.build

    def build_patch(self: AgentBuilder) -> Agent:
        orig_transport = self._transport
        self._transport = mocker._create_transport(orig_transport)
        try:
            return orig_build(self)
        finally:
            self._transport = orig_transport

    monkeypatch.setattr(AgentBuilder, "build", build_patch)

    return mocker
