"""Agent classes and builders."""

from pyagency.agent.agent import Agent
from pyagency.agent.builder import AgentBuilder, agent

__all__ = [  # noqa: RUF022
    "agent",
    "Agent",
    "AgentBuilder",
]
