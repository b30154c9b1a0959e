"""Select and build the TicketClient for the configured deployment.

Builders are registered per deployment type. The self-hosted builder is
registered here; the hosted client lives elsewhere and registers itself.
A configuration change is applied by discarding the old client and calling
create_ticket_client again.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ...config import DEPLOYMENT_SERVER, JIRA_SERVER_PASSWORD_KEY, DevBuddyConfig
from ...logging_config import configure_logging_from_config
from ...secrets import SecretStore
from .base import TicketClient
from .server_client import JiraServerClient

logger = logging.getLogger("devbuddy.jira.factory")

__all__ = [
    "ClientBuilder",
    "create_ticket_client",
    "register_client_builder",
    "registered_deployment_types",
]

ClientBuilder = Callable[..., Awaitable[TicketClient | None]]

_BUILDERS: dict[str, ClientBuilder] = {}


def register_client_builder(deployment_type: str, builder: ClientBuilder) -> None:
    """Register (or replace) the builder for a deployment type."""
    _BUILDERS[deployment_type.lower()] = builder


def registered_deployment_types() -> list[str]:
    return sorted(_BUILDERS)


async def _build_server_client(
    config: DevBuddyConfig,
    secrets: SecretStore,
    **kwargs: Any,
) -> JiraServerClient | None:
    secret = await secrets.get(JIRA_SERVER_PASSWORD_KEY)
    client = JiraServerClient.from_config(config, secret or "", **kwargs)
    if not client.is_configured():
        logger.info(
            "jira_server_not_configured",
            extra={
                "has_base_url": bool(config.jira_server_base_url),
                "has_username": bool(config.jira_server_username),
                "has_secret": bool(secret),
            },
        )
        await client.close()
        return None
    return client


register_client_builder(DEPLOYMENT_SERVER, _build_server_client)


async def create_ticket_client(
    config: DevBuddyConfig,
    secrets: SecretStore,
    **kwargs: Any,
) -> TicketClient | None:
    """Build the client for ``config.jira_type``.

    The config's log level and format are applied before the build.

    Args:
        config: Loaded settings
        secrets: Store holding the deployment's credential material
        **kwargs: Passed to the builder (e.g., http_client, on_warning)

    Returns:
        A ready-to-use client, or None when the selected deployment is not
        configured or has no registered builder.
    """
    configure_logging_from_config(config)
    builder = _BUILDERS.get(config.jira_type)
    if builder is None:
        logger.warning("jira_client_builder_missing", extra={"deployment_type": config.jira_type})
        return None
    return await builder(config, secrets, **kwargs)
