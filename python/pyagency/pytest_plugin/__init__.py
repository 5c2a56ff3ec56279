"""pyagency pytest plugin for agent request mocking."""

from .mock import AgentMocker, Mock, agent_mocker

__all__ = [  # noqa: RUF022
    "agent_mocker",
    "AgentMocker",
    "Mock",
]
