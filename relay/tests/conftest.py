"""Pytest fixtures and config."""

import pytest

from relay.core.sink import CollectingSink


@pytest.fixture(autouse=True)
def env_cleanup(monkeypatch):
    """Avoid picking up real keys or endpoints from the environment."""
    for name in (
        "API_KEY",
        "OPENAI_API_KEY",
        "API_ENDPOINT",
        "API_MODEL",
        "REDIS_URL",
        "RELAY_ENV_PREFIX",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def sink():
    return CollectingSink()
