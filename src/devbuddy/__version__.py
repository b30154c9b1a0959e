"""Version information for DevBuddy.

Single source of truth for version number.
Follows PEP 440 and semantic versioning principles.
"""

__version__ = "1.4.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))

# Version history:
# 1.4.0 - Jira Server client: capability detection, auth negotiation, wiki markup
# 1.3.0 - Shared retrying HTTP layer and TTL response cache
# 1.0.0 - Initial release
