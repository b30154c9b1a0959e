"""Configuration management with pydantic-settings for DevBuddy.

- pydantic-settings v2 for type-safe configuration
- Automatic .env file loading with proper precedence
- Validation with clear error messages
- Frozen config (immutable after load)

Secret material (passwords, personal access tokens) is deliberately NOT part of
this model. It is read through a SecretStore (see devbuddy.secrets) so the
client never persists or logs it.

References:
- Pydantic Settings: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("devbuddy.config")

__all__ = [
    "DEPLOYMENT_CLOUD",
    "DEPLOYMENT_SERVER",
    "JIRA_SERVER_PASSWORD_KEY",
    "DevBuddyConfig",
    "get_config",
    "reset_config",
]

DEPLOYMENT_CLOUD = "cloud"
DEPLOYMENT_SERVER = "server"

# Secret store key holding the self-hosted password or personal access token
JIRA_SERVER_PASSWORD_KEY = "jiraServerPassword"


class DevBuddyConfig(BaseSettings):
    """Configuration for the DevBuddy tracker connectors.

    Loads from (in order of precedence):
    1. Environment variables (highest priority)
    2. .env file in the working directory
    3. Default values (lowest priority)

    Attributes:
        jira_type: Deployment flavour to talk to ("cloud" or "server")
        jira_server_base_url: Self-hosted instance URL (e.g., https://jira.company.com)
        jira_server_username: Username for the self-hosted instance
        http_timeout_seconds: Read timeout for tracker API calls
        http_max_retries: Retry attempts for idempotent calls
        http_base_delay_ms: First backoff delay
        http_max_delay_ms: Backoff ceiling
        cache_default_ttl_ms: TTL for cached GET responses when a call gives none
        cache_max_size: Maximum cached responses before LRU eviction
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json for production, text for development)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    # Deployment selection
    jira_type: Literal["cloud", "server"] = Field(
        default=DEPLOYMENT_CLOUD,
        description="Jira deployment type: cloud (hosted) or server (self-hosted / Data Center)",
    )

    # Self-hosted deployment
    jira_server_base_url: str = Field(
        default="",
        description="Self-hosted Jira base URL (e.g., https://jira.company.com)",
    )

    jira_server_username: str = Field(
        default="",
        description="Username for the self-hosted instance (Basic Auth fallback)",
    )

    # HTTP behaviour
    http_timeout_seconds: float = Field(
        default=15.0,
        ge=1.0,
        le=120.0,
        description="Read timeout in seconds for tracker API calls",
    )

    http_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retry attempts for idempotent calls on transient failures",
    )

    http_base_delay_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Base delay for exponential backoff in milliseconds",
    )

    http_max_delay_ms: int = Field(
        default=30000,
        ge=0,
        le=300000,
        description="Maximum backoff delay in milliseconds (tracker rate limits can need long waits)",
    )

    # Response cache
    cache_default_ttl_ms: int = Field(
        default=2 * 60 * 1000,
        ge=0,
        description="Default TTL for cached GET responses in milliseconds",
    )

    cache_max_size: int = Field(
        default=200,
        ge=1,
        le=100000,
        description="Maximum cached responses before least-recently-used eviction",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    log_format: str = Field(
        default="json",
        pattern="^(json|text)$",
        description="Log format: json (production), text (development)",
    )

    @field_validator("jira_server_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Remove surrounding whitespace and trailing slashes from the URL."""
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator("jira_type", mode="before")
    @classmethod
    def normalize_jira_type(cls, v):
        """Accept JIRA_TYPE=Server / SERVER etc."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_http_delays(self) -> "DevBuddyConfig":
        """Validate backoff delays are ordered."""
        if self.http_base_delay_ms > self.http_max_delay_ms:
            raise ValueError(
                f"HTTP_BASE_DELAY_MS ({self.http_base_delay_ms}) "
                f"must be <= HTTP_MAX_DELAY_MS ({self.http_max_delay_ms})"
            )
        return self

    @model_validator(mode="after")
    def validate_server_config(self) -> "DevBuddyConfig":
        """Warn if the self-hosted deployment is selected but incomplete.

        Does NOT raise: an incomplete deployment is reported as "not configured"
        by the client factory so setup flows can still load the config.
        """
        if self.jira_type == DEPLOYMENT_SERVER and not self.jira_server_base_url:
            logger.warning(
                "JIRA_TYPE=server but JIRA_SERVER_BASE_URL is not set; "
                "the Jira Server client will report as not configured"
            )
        return self

    @property
    def is_server(self) -> bool:
        """True when the self-hosted deployment is selected."""
        return self.jira_type == DEPLOYMENT_SERVER


@lru_cache(maxsize=1)
def get_config() -> DevBuddyConfig:
    """Get global configuration singleton.

    First call loads from environment + .env file, subsequent calls return the
    cached instance. A configuration change is applied by calling
    reset_config() and building a new client through the factory.

    Returns:
        DevBuddyConfig singleton instance.

    Raises:
        ValidationError: If configuration values are invalid.

    Example:
        >>> config = get_config()
        >>> config.http_max_retries
        3
        >>> get_config() is config
        True
    """
    return DevBuddyConfig()


def reset_config() -> None:
    """Reset configuration singleton.

    Clears the cached configuration so the next get_config() call reloads
    from the environment.

    Example:
        >>> reset_config()
        >>> os.environ["JIRA_TYPE"] = "server"
        >>> get_config().jira_type
        'server'
    """
    get_config.cache_clear()
