from collections.abc import AsyncGenerator, Callable
from datetime import timedelta

import pytest
from pyagency import Agent, AgentBuilder
from pyagency.transport import ASGITransport
from starlette.applications import Starlette

from .servers.echo_app import EchoApp
from .servers.session_app import create_session_app

BASE_URL = "http://localhost"


@pytest.fixture
def session_app() -> Starlette:
    return create_session_app()


@pytest.fixture
def echo_app() -> EchoApp:
    return EchoApp()


@pytest.fixture
async def session_transport(session_app: Starlette) -> AsyncGenerator[ASGITransport]:
    async with ASGITransport(session_app) as transport:
        yield transport


@pytest.fixture
def make_agent(session_transport: ASGITransport) -> Callable[[], Agent]:
    """Factory for agents talking to the same session application. Each agent has its own jar."""

    def factory() -> Agent:
        return AgentBuilder().transport(session_transport).timeout(timedelta(seconds=5)).build()

    return factory


@pytest.fixture
async def echo_agent(echo_app: EchoApp) -> AsyncGenerator[Agent]:
    async with AgentBuilder().asgi_app(echo_app).base_url("http://localhost/").build() as agent:
        yield agent
