"""Shared pytest fixtures for DevBuddy tests.

Fixture Organization:
    - HTTP fixtures: httpx.MockTransport routers standing in for a Jira Server
    - Isolation fixtures: environment and config singleton reset

References:
    - pytest fixtures docs: https://docs.pytest.org/en/stable/how-to/fixtures.html
    - httpx mock transports: https://www.python-httpx.org/advanced/transports/#mock-transports
"""

import os

import pytest

from src.devbuddy.config import reset_config
from tests.jira_fixtures import JiraRouter, jira_server

# =============================================================================
# HTTP fixtures
# =============================================================================


@pytest.fixture
def router() -> JiraRouter:
    """Empty router; tests add their own routes."""
    return JiraRouter()


@pytest.fixture
def server_router() -> JiraRouter:
    """Jira 9.12 that accepts both Bearer and Basic auth."""
    return jira_server()


# =============================================================================
# Isolation fixtures
# =============================================================================


@pytest.fixture
def isolated_config(monkeypatch, tmp_path):
    """Config singleton reset with no .env file and no JIRA_* variables."""
    for key in list(os.environ):
        if key.upper().startswith(("JIRA_", "HTTP_", "CACHE_", "LOG_")):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()
