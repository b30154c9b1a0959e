"""Secret store contract for tracker credentials.

The editor host owns secret persistence (an OS keychain, a secrets API, ...).
Clients only ever read from a SecretStore handed to them at construction time;
they never persist credentials themselves and never look them up globally.
"""

import logging
import os
from typing import Protocol, runtime_checkable

logger = logging.getLogger("devbuddy.secrets")

__all__ = [
    "EnvSecretStore",
    "MemorySecretStore",
    "SecretStore",
    "secret_env_name",
]


@runtime_checkable
class SecretStore(Protocol):
    """Async key/value store for credential material."""

    async def get(self, key: str) -> str | None: ...

    async def store(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemorySecretStore:
    """Dict-backed secret store for tests and embedding hosts."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def store(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)


def secret_env_name(key: str) -> str:
    """Map a camelCase secret key to its environment variable name.

    Example:
        >>> secret_env_name("jiraServerPassword")
        'JIRA_SERVER_PASSWORD'
    """
    chars: list[str] = []
    for index, char in enumerate(key):
        if char.isupper() and index > 0 and not key[index - 1].isupper():
            chars.append("_")
        chars.append(char.upper())
    return "".join(chars).replace("-", "_").replace(".", "_")


class EnvSecretStore:
    """Secret store backed by process environment variables.

    Used by the CLI scripts. ``store`` and ``delete`` only affect the current
    process environment.
    """

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    async def get(self, key: str) -> str | None:
        value = self._environ.get(secret_env_name(key))
        return value or None

    async def store(self, key: str, value: str) -> None:
        self._environ[secret_env_name(key)] = value
        logger.debug("secret_stored", extra={"secret_key": key})

    async def delete(self, key: str) -> None:
        self._environ.pop(secret_env_name(key), None)
        logger.debug("secret_deleted", extra={"secret_key": key})
