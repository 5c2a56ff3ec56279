"""Redirect following.

The method/body policy is a pure lookup on the status code. `RedirectController` holds the per-chain state:
remaining budget, history of followed locations and the FOLLOWING -> {FOLLOWING, DONE, BLOCKED} state.
"""

import logging
from enum import Enum
from typing import NamedTuple

from pyagency.exceptions import BuilderError
from pyagency.http import Url
from pyagency.request import Request
from pyagency.response import Response

logger = logging.getLogger(__name__)

DEFAULT_MAX_REDIRECTS = 5
FOLLOWABLE_SCHEMES = frozenset({"http", "https"})
BODY_HEADERS = ("content-type", "content-length", "transfer-encoding")
ORIGIN_BOUND_HEADERS = ("authorization", "cookie", "proxy-authorization")


class RedirectState(Enum):
    FOLLOWING = "following"
    DONE = "done"
    BLOCKED = "blocked"


class RedirectRule(Enum):
    SEE_OTHER = "see_other"
    PRESERVE = "preserve"
    LEGACY = "legacy"


class RedirectMethod(NamedTuple):
    method: str
    keep_body: bool


REDIRECT_RULES: dict[int, RedirectRule] = {
    303: RedirectRule.SEE_OTHER,
    307: RedirectRule.PRESERVE,
    308: RedirectRule.PRESERVE,
}


def redirect_method(status: int, method: str) -> RedirectMethod:
    """Method and body handling for the next hop.

    303 switches to GET without a body. 307 and 308 keep method and body. Any other redirect status keeps the
    method and resends the body, except for GET and HEAD which never carry one.
    """
    rule = REDIRECT_RULES.get(status, RedirectRule.LEGACY)
    if rule is RedirectRule.SEE_OTHER:
        return RedirectMethod("GET", keep_body=False)
    if rule is RedirectRule.PRESERVE:
        return RedirectMethod(method, keep_body=True)
    return RedirectMethod(method, keep_body=method not in ("GET", "HEAD"))


def resolve_location(response: Response, base: Url) -> Url | None:
    """Absolute target of a redirect response, or None when Location is missing or unusable."""
    location = (response.location or "").strip()
    if not location:
        return None
    try:
        target = base.join(location)
    except BuilderError:
        return None
    if target.scheme not in FOLLOWABLE_SCHEMES:
        return None
    return target


class RedirectController:
    """Decides, hop by hop, whether and where a request chain continues."""

    def __init__(self, max_redirects: int = DEFAULT_MAX_REDIRECTS) -> None:
        if max_redirects < 0:
            raise BuilderError(f"redirects must be a non-negative integer, got {max_redirects!r}")
        self.remaining = max_redirects
        self.history: list[str] = []
        self.state = RedirectState.FOLLOWING

    def next_request(self, request: Request, response: Response) -> Request | None:
        """Request for the next hop, or None when `response` ends the chain.

        The chain ends (DONE) on a non-redirect response or an unusable Location, and is BLOCKED when a
        redirect arrives after the budget is spent. The returned request carries the caller's headers only;
        cookies are recomputed from the jar when it is dispatched.
        """
        if self.state is not RedirectState.FOLLOWING:
            raise RuntimeError(f"redirect chain already finished ({self.state.value})")

        if not response.is_redirect:
            self.state = RedirectState.DONE
            return None

        target = resolve_location(response, request.url)
        if target is None:
            logger.debug(
                "Not following %s from %s: unusable Location %r", response.status, request.url, response.location
            )
            self.state = RedirectState.DONE
            return None

        if self.remaining == 0:
            logger.debug(
                "Not following %s from %s to %s: redirect limit reached", response.status, request.url, target
            )
            self.state = RedirectState.BLOCKED
            return None

        self.remaining -= 1
        self.history.append(str(target))
        logger.debug("Following %s redirect from %s to %s", response.status, request.url, target)
        return self._redirected(request, response.status, target)

    @staticmethod
    def _redirected(request: Request, status: int, target: Url) -> Request:
        method, keep_body = redirect_method(status, request.method)
        headers = request.headers.copy()
        headers.popall("host", None)
        if not keep_body:
            for name in BODY_HEADERS:
                headers.popall(name, None)
        if target.origin != request.url.origin:
            for name in ORIGIN_BOUND_HEADERS:
                headers.popall(name, None)
        return Request(method, target, headers, request.body if keep_body else None, {**request.extensions})
