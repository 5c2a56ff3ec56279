import pytest

from .mock import agent_mocker  # noqa: F401  # load the agent_mocker fixture


def pytest_configure(config: pytest.Config) -> None:
    """Configure the pytest plugin."""
    config.addinivalue_line("markers", "pyagency: mark test to use pyagency agent mocking")
