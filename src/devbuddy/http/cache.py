"""In-memory TTL cache for tracker GET responses.

Entries expire after their TTL and are then treated as absent. The cache is
bounded: when full, expired entries are purged first, then the least recently
used entries are evicted.
"""

import logging
import re
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("devbuddy.http.cache")

__all__ = ["TTL", "CacheEntry", "TTLCache", "generate_cache_key"]

DEFAULT_MAX_SIZE = 200


class TTL:
    """TTL tiers in milliseconds."""

    NONE = 0
    SHORT = 60 * 1000
    MEDIUM = 2 * 60 * 1000
    DEFAULT = 5 * 60 * 1000
    LONG = 15 * 60 * 1000
    VERY_LONG = 30 * 60 * 1000


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def generate_cache_key(*parts: Any) -> str:
    """Join key parts with ':'; None renders as '_null_'.

    Example:
        >>> generate_cache_key("jira-server", "/rest/api/2/project")
        'jira-server:/rest/api/2/project'
    """
    return ":".join("_null_" if part is None else str(part) for part in parts)


class TTLCache:
    """Bounded LRU cache with per-entry expiry.

    Args:
        default_ttl_ms: TTL used when set() is called without one
        max_size: Maximum number of live entries
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        default_ttl_ms: int = TTL.MEDIUM,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.default_ttl_ms = default_ttl_ms
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return default
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._misses += 1
            return default
        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return False
        return True

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def set(self, key: str, value: Any, ttl_ms: int | None = None) -> None:
        """Store ``value`` under ``key``.

        A TTL of 0 means "do not cache": the call is a no-op and any existing
        entry for the key is dropped.
        """
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            self._entries.pop(key, None)
            return

        now = self._clock()
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            self.purge_expired()
            while len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("cache_evicted", extra={"cache_key": evicted})

        self._entries[key] = CacheEntry(key, value, now + ttl / 1000)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_by_pattern(self, pattern: str | re.Pattern[str]) -> int:
        """Remove every key containing ``pattern`` (substring or compiled regex).

        Returns:
            Number of entries removed
        """
        if isinstance(pattern, re.Pattern):
            doomed = [key for key in self._entries if pattern.search(key)]
        else:
            doomed = [key for key in self._entries if pattern in key]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug(
                "cache_invalidated",
                extra={"pattern": str(getattr(pattern, "pattern", pattern)), "removed": len(doomed)},
            )
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }
