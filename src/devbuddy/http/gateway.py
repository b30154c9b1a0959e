"""Cache -> Retry -> Transport pipeline for one tracker namespace.

Reads go through the response cache and the retry policy. Writes must state
whether they are idempotent; only idempotent writes are retried. After a write
succeeds, ``invalidate_after_mutation`` drops the list, issue and resource
entries the write may have changed.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

import httpx

from .cache import TTLCache, generate_cache_key
from .retry import NO_RETRY, RetryConfig, with_retry
from .transport import Transport

logger = logging.getLogger("devbuddy.http.gateway")

__all__ = ["ApiGateway", "with_query"]

# Key fragments dropped after every successful mutation
MUTATION_PATTERNS = ("search", "/issue")


def with_query(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """Append encoded query parameters to an endpoint. None values are skipped."""
    if not params:
        return endpoint
    clean = {k: v for k, v in params.items() if v is not None}
    if not clean:
        return endpoint
    query = str(httpx.QueryParams(clean))
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{query}"


class ApiGateway:
    """Request pipeline bound to one cache namespace.

    Args:
        transport: Single-request transport
        cache: Response cache (may be shared between namespaces)
        namespace: Cache key prefix, e.g. "jira-server"
        retry_config: Policy for idempotent calls
    """

    def __init__(
        self,
        transport: Transport,
        cache: TTLCache,
        namespace: str,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.transport = transport
        self.cache = cache
        self.namespace = namespace
        self.retry_config = retry_config or RetryConfig()

    def cache_key(self, endpoint: str) -> str:
        return generate_cache_key(self.namespace, endpoint)

    async def get(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        *,
        ttl_ms: int | None = None,
        skip_cache: bool = False,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Cached, retried GET.

        Args:
            endpoint: Path relative to the transport base URL
            params: Query parameters
            ttl_ms: Cache TTL (cache default when None, 0 = fetch but don't store)
            skip_cache: Bypass the cache for both lookup and store
            headers: Extra request headers
        """
        endpoint = with_query(endpoint, params)
        key = self.cache_key(endpoint)

        if not skip_cache and self.cache.has(key):
            logger.debug("cache_hit", extra={"cache_key": key})
            return self.cache.get(key)

        result = await with_retry(
            lambda: self.transport.request(endpoint, method="GET", headers=headers),
            self.retry_config,
            label=f"GET {endpoint}",
        )

        if not skip_cache:
            self.cache.set(key, result, ttl_ms)
        return result

    async def send(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        *,
        idempotent: bool,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Uncached request. Retried only when ``idempotent`` is True."""
        endpoint = with_query(endpoint, params)
        config = self.retry_config if idempotent else NO_RETRY
        return await with_retry(
            lambda: self.transport.request(endpoint, method=method, body=body, headers=headers),
            config,
            label=f"{method.upper()} {endpoint}",
        )

    async def mutate(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        *,
        resource_ids: tuple[str, ...] = (),
        idempotent: bool = False,
    ) -> Any:
        """Send a write, then invalidate affected cache entries.

        Invalidation only runs once the write has succeeded; a failed write
        leaves the cache untouched.
        """
        result = await self.send(method, endpoint, body, idempotent=idempotent)
        self.invalidate_after_mutation(*resource_ids)
        return result

    def invalidate_after_mutation(self, *resource_ids: str) -> int:
        """Drop list, issue and per-resource entries in this namespace."""
        return sum(
            self.invalidate(fragment) for fragment in (*MUTATION_PATTERNS, *resource_ids) if fragment
        )

    def invalidate(self, fragment: str) -> int:
        """Drop entries in this namespace whose endpoint contains ``fragment``."""
        prefix = re.escape(generate_cache_key(self.namespace, ""))
        return self.cache.invalidate_by_pattern(re.compile(f"^{prefix}.*{re.escape(fragment)}"))

    def clear(self) -> int:
        """Drop every entry in this namespace."""
        return self.cache.invalidate_by_pattern(
            re.compile(f"^{re.escape(generate_cache_key(self.namespace, ''))}")
        )
