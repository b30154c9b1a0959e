"""Server identity and version-derived feature flags for self-hosted Jira.

Capabilities are a pure function of ServerInfo. Each version-gated flag is a
minimum (major, minor) comparison from CAPABILITY_REQUIREMENTS; dialect flags
are constants for the deployment family and never depend on the version.

Reference: https://docs.atlassian.com/software/jira/docs/api/REST/9.12.0/#api/2/serverInfo
"""

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, fields, replace
from typing import Any

logger = logging.getLogger("devbuddy.jira.capabilities")

__all__ = [
    "CAPABILITY_REQUIREMENTS",
    "FALLBACK_OVERRIDES",
    "MIN_SUPPORTED_VERSION",
    "Capabilities",
    "CapabilityDetector",
    "ServerInfo",
    "check_version",
    "derive_capabilities",
]

# Oldest release with the full feature set the client relies on
MIN_SUPPORTED_VERSION = (8, 0)

# flag -> minimum (major, minor)
CAPABILITY_REQUIREMENTS: dict[str, tuple[int, int]] = {
    "personal_access_tokens": (8, 14),
    "bulk_operations": (8, 5),
    "advanced_jql": (8, 0),
    "custom_field_schemas": (9, 0),
    "workflow_properties": (8, 20),
    "agile_api": (8, 0),
}

# Applied on top of the oldest supported feature set when the version is
# unknown or below MIN_SUPPORTED_VERSION
FALLBACK_OVERRIDES: dict[str, bool] = {"bulk_operations": True}

# Deployment-wide constants. The self-hosted REST API v2 only carries wiki
# markup, so structured rich text is never accepted regardless of version.
DIALECT_FLAGS: dict[str, bool] = {
    "basic_auth": True,
    "issue_search": True,
    "issue_create": True,
    "issue_update": True,
    "comments": True,
    "rich_text_editor": False,
    "sprint": True,
    "epic": True,
}

_VERSION_RE = re.compile(r"\d+")


def check_version(major: int, minor: int, required_major: int, required_minor: int) -> bool:
    """True iff (major, minor) >= (required_major, required_minor) lexicographically.

    Example:
        >>> check_version(8, 13, 8, 14)
        False
        >>> check_version(9, 0, 8, 14)
        True
    """
    return (major, minor) >= (required_major, required_minor)


@dataclass(frozen=True)
class ServerInfo:
    """Identity of a tracker instance as reported by /serverInfo."""

    version: str
    version_numbers: tuple[int, ...]
    build_number: int = 0
    deployment_type: str = "Server"
    base_url: str = ""
    server_title: str = ""

    @property
    def major(self) -> int:
        return self.version_numbers[0] if self.version_numbers else 0

    @property
    def minor(self) -> int:
        return self.version_numbers[1] if len(self.version_numbers) > 1 else 0

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ServerInfo":
        """Build from a /serverInfo response.

        versionNumbers is preferred; when absent it is parsed from the version
        string ("9.12.0-SNAPSHOT" -> (9, 12, 0)).
        """
        version = str(payload.get("version") or "")
        numbers = payload.get("versionNumbers")
        if numbers:
            parsed = tuple(int(n) for n in numbers)
        else:
            parsed = tuple(int(n) for n in _VERSION_RE.findall(version)[:3])
        return cls(
            version=version,
            version_numbers=parsed,
            build_number=int(payload.get("buildNumber") or 0),
            deployment_type=str(payload.get("deploymentType") or "Server"),
            base_url=str(payload.get("baseUrl") or ""),
            server_title=str(payload.get("serverTitle") or ""),
        )


@dataclass(frozen=True)
class Capabilities:
    """Feature flags for one deployment. Build with derive_capabilities()."""

    basic_auth: bool
    issue_search: bool
    issue_create: bool
    issue_update: bool
    comments: bool
    personal_access_tokens: bool
    rich_text_editor: bool
    bulk_operations: bool
    advanced_jql: bool
    custom_field_schemas: bool
    workflow_properties: bool
    agile_api: bool
    sprint: bool
    epic: bool

    def as_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _capabilities_for(major: int, minor: int) -> Capabilities:
    gated = {
        flag: check_version(major, minor, *required)
        for flag, required in CAPABILITY_REQUIREMENTS.items()
    }
    return Capabilities(**DIALECT_FLAGS, **gated)


def derive_capabilities(server_info: ServerInfo | None) -> Capabilities:
    """Map server identity to capabilities.

    Unknown or unsupported (< 8.0) servers get the oldest supported feature
    set with FALLBACK_OVERRIDES applied.
    """
    if server_info is None or not is_supported(server_info):
        return replace(_capabilities_for(*MIN_SUPPORTED_VERSION), **FALLBACK_OVERRIDES)
    return _capabilities_for(server_info.major, server_info.minor)


def is_supported(server_info: ServerInfo) -> bool:
    return check_version(server_info.major, server_info.minor, *MIN_SUPPORTED_VERSION)


class CapabilityDetector:
    """Fetches ServerInfo once and derives Capabilities from it.

    Args:
        fetch: Coroutine factory returning the raw /serverInfo payload
        on_warning: Called with a message when the server is below the
            minimum supported version
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[dict[str, Any]]],
        on_warning: Callable[[str], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._on_warning = on_warning
        self._server_info: ServerInfo | None = None
        self._capabilities: Capabilities | None = None

    @property
    def server_info(self) -> ServerInfo | None:
        return self._server_info

    @property
    def capabilities(self) -> Capabilities | None:
        return self._capabilities

    @property
    def detected(self) -> bool:
        return self._server_info is not None

    async def detect(self) -> ServerInfo:
        """Return ServerInfo, fetching it only on the first call after construction or reset.

        Raises:
            TrackerClientError: The identity call failed; nothing is stored
        """
        if self._server_info is not None:
            return self._server_info

        payload = await self._fetch()
        server_info = ServerInfo.from_payload(payload or {})
        self._server_info = server_info
        self._capabilities = derive_capabilities(server_info)

        logger.info(
            "jira_server_detected",
            extra={
                "version": server_info.version,
                "build_number": server_info.build_number,
                "deployment_type": server_info.deployment_type,
            },
        )

        if not is_supported(server_info):
            message = (
                f"Jira Server {server_info.version or 'unknown'} is not fully supported. "
                f"Version {MIN_SUPPORTED_VERSION[0]}.{MIN_SUPPORTED_VERSION[1]} or later is "
                "required for all features; some features may not work correctly."
            )
            logger.warning("jira_server_version_unsupported", extra={"version": server_info.version})
            if self._on_warning is not None:
                self._on_warning(message)

        return server_info

    def reset(self) -> None:
        self._server_info = None
        self._capabilities = None
