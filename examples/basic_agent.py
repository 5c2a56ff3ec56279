"""Basic usage examples for pyagency.

Run directly:
    python -m examples.basic_agent

Set HTTPBIN env var to point elsewhere if needed.
"""

import asyncio
import os
import sys
from datetime import timedelta
from typing import Any

from pyagency import AgentBuilder, agent
from pyagency.exceptions import StatusError
from pyagency.http import Url

HTTPBIN = Url(os.environ.get("HTTPBIN", "https://httpbin.org"))


async def example_session_cookies() -> None:
    """Example 1: Cookies persist within an agent"""
    async with agent() as first, agent() as second:
        resp = await first.get(HTTPBIN / "cookies/set").query({"flavor": "chocolate"})
        data = await resp.json()
        other = await (await second.get(HTTPBIN / "cookies")).json()
        print(
            {
                "example": "session_cookies",
                "status": resp.status,
                "cookies": data.get("cookies"),
                "other_agent_cookies": other.get("cookies"),
                "redirects": len(resp.redirects),
            }
        )


async def example_literal_cookie_header() -> None:
    """Example 2: Caller supplied Cookie header is sent before jar cookies"""
    async with agent() as a:
        await a.get(HTTPBIN / "cookies/set").query({"jar": "1"})
        resp = await a.get(HTTPBIN / "cookies").set("Cookie", "literal=1")
        data = await resp.json()
        print({"example": "literal_cookie_header", "cookies": data.get("cookies")})


async def example_redirect_budget() -> None:
    """Example 3: Redirect budget"""
    async with agent(max_redirects=5) as a:
        followed = await a.get(HTTPBIN / "redirect/3")
        limited = await a.get(HTTPBIN / "redirect/3").redirects(1)
        print(
            {
                "example": "redirect_budget",
                "followed_status": followed.status,
                "followed_redirects": len(followed.redirects),
                "limited_status": limited.status,
                "limited_location": limited.headers.get("location"),
            }
        )


async def example_post_json() -> None:
    """Example 4: POST JSON"""
    async with AgentBuilder().error_for_status(True).build() as a:
        resp = await a.post(HTTPBIN / "post").send({"message": "hello"})
        data = await resp.json()
        print({"example": "post_json", "status": resp.status, "echo": data.get("json")})


async def example_error_for_status() -> None:
    """Example 5: Error statuses"""
    async with AgentBuilder().error_for_status(True).timeout(timedelta(seconds=10)).build() as a:
        try:
            await a.get(HTTPBIN / "status/404")
            raise RuntimeError("should have raised")
        except StatusError as e:
            print({"example": "error_for_status", "error": str(e), "status": e.details["status"]})


async def example_concurrent_requests() -> None:
    """Example 6: Concurrency"""
    async with AgentBuilder().error_for_status(True).build() as a:

        async def fetch(i: int) -> Any:
            r = await a.get(HTTPBIN / "get").query({"i": i})
            return await r.json()

        results = await asyncio.gather(*(fetch(i) for i in range(3)))
        print(
            {
                "example": "concurrent_requests",
                "count": len(results),
                "indices": sorted(int(r["args"]["i"]) for r in results),
            }
        )


if __name__ == "__main__":  # pragma: no cover
    from ._utils import run_examples

    asyncio.run(run_examples(sys.modules[__name__]))
