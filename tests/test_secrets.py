"""Tests for the secret stores."""

import pytest

from src.devbuddy.secrets import EnvSecretStore, MemorySecretStore, SecretStore, secret_env_name


@pytest.mark.parametrize(
    "key,expected",
    [
        ("jiraServerPassword", "JIRA_SERVER_PASSWORD"),
        ("jiraCloudApiToken", "JIRA_CLOUD_API_TOKEN"),
        ("token", "TOKEN"),
        ("jira.server-token", "JIRA_SERVER_TOKEN"),
    ],
)
def test_secret_env_name(key, expected):
    assert secret_env_name(key) == expected


@pytest.mark.asyncio
async def test_memory_store_round_trip():
    store = MemorySecretStore({"a": "1"})

    assert await store.get("a") == "1"
    await store.store("b", "2")
    await store.delete("a")

    assert await store.get("a") is None
    assert await store.get("b") == "2"


@pytest.mark.asyncio
async def test_env_store_reads_mapped_variable():
    environ = {"JIRA_SERVER_PASSWORD": "s3cret", "JIRA_CLOUD_API_TOKEN": ""}
    store = EnvSecretStore(environ)

    assert await store.get("jiraServerPassword") == "s3cret"
    assert await store.get("jiraCloudApiToken") is None

    await store.delete("jiraServerPassword")
    assert "JIRA_SERVER_PASSWORD" not in environ


def test_stores_satisfy_protocol():
    assert isinstance(MemorySecretStore(), SecretStore)
    assert isinstance(EnvSecretStore({}), SecretStore)
