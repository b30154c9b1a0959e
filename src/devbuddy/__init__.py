"""DevBuddy - issue tracker connectors for developer tooling.

Provides an adaptive client for self-hosted Jira through:
- Configuration management with environment overrides
- Resilient HTTP layer (transport, retry, TTL cache)
- Capability detection and auth negotiation per server
- Rich-text and wiki markup conversion

Python Version: 3.10+ required
"""

# Configure before other imports
from .logging_config import StructuredFormatter, configure_logging, configure_logging_from_config

# Initialize structured logging on module import
configure_logging()

from .__version__ import __version__  # noqa: E402
from .config import DevBuddyConfig, get_config, reset_config  # noqa: E402
from .secrets import EnvSecretStore, MemorySecretStore, SecretStore  # noqa: E402

__all__ = [
    "DevBuddyConfig",
    "EnvSecretStore",
    "MemorySecretStore",
    "SecretStore",
    "StructuredFormatter",
    "__version__",
    "configure_logging",
    "configure_logging_from_config",
    "get_config",
    "reset_config",
]
