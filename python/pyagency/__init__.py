"""pyagency - Stateful asyncio HTTP agents with their own cookie jar.

Inspired by superagent's `agent()`: an agent remembers the cookies servers set on it and follows redirects.

Features:
- Per-agent RFC 6265 cookie jar (domain, path, secure, host-only and expiry rules)
- Redirect following with a per-request budget (303 switches to GET, 307/308 preserve method and body)
- Cookies set by intermediate redirect responses are applied to the next hop
- Pluggable transports: httpx for the network, ASGI for in-process applications
- Typed configuration validated with pydantic
- Mocking utilities for pytest
"""

from pyagency.agent import Agent, AgentBuilder, agent

__all__ = [  # noqa: RUF022
    "agent",
    "Agent",
    "AgentBuilder",
]
