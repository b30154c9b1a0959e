"""Bounded exponential backoff for transient tracker failures.

Retries run on tenacity's AsyncRetrying. Retry n (1-based) waits
``min(base_delay_ms * 2 ** (n - 1), max_delay_ms)``. A Retry-After header on a
429/503 replaces the computed delay, still capped at ``max_delay_ms``. Only
idempotent calls are wrapped; the gateway decides that, not this module.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from .errors import HttpFailure, NetworkFailure

logger = logging.getLogger("devbuddy.http.retry")

T = TypeVar("T")

DEFAULT_RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy parameters.

    Attributes:
        max_retries: Retries after the first attempt (total calls = max_retries + 1)
        base_delay_ms: Delay before the first retry
        max_delay_ms: Ceiling for any single delay
        retryable_statuses: HTTP statuses that trigger a retry
        retry_on_network_error: Whether NetworkFailure triggers a retry
    """

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    retryable_statuses: frozenset[int] = field(default=DEFAULT_RETRYABLE_STATUSES)
    retry_on_network_error: bool = True

    def backoff_delay_ms(self, attempt: int) -> int:
        """Delay before retry number ``attempt`` (1-based)."""
        if attempt < 1:
            return 0
        return min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, NetworkFailure):
            return self.retry_on_network_error
        if isinstance(error, HttpFailure):
            return error.status in self.retryable_statuses
        return False


NO_RETRY = RetryConfig(max_retries=0)


def parse_retry_after_ms(value: str | None, now: datetime | None = None) -> int | None:
    """Parse a Retry-After header (delta-seconds or HTTP-date) into milliseconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0, int(float(value) * 1000))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0, int((when - now).total_seconds() * 1000))


def delay_for(config: RetryConfig, error: BaseException, attempt: int) -> int:
    """Delay in milliseconds before retry ``attempt``, honouring Retry-After."""
    if isinstance(error, HttpFailure) and error.retry_after:
        hinted = parse_retry_after_ms(error.retry_after)
        if hinted is not None:
            return min(hinted, config.max_delay_ms)
    return config.backoff_delay_ms(attempt)


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    *,
    label: str = "",
) -> T:
    """Run ``operation`` until it succeeds or the policy gives up.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        config: Retry policy
        label: Request description for log lines (e.g. "GET /rest/api/2/myself")

    Returns:
        The operation's result

    Raises:
        TrackerClientError: The last failure, once it is non-retryable or
            retries are exhausted
    """

    def wait(retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception()
        return delay_for(config, error, retry_state.attempt_number) / 1000

    def log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.warning(
            "request_retry",
            extra={
                "request": label,
                "status": getattr(error, "status", None),
                "attempt": retry_state.attempt_number,
                "max_retries": config.max_retries,
                "delay_ms": int(retry_state.next_action.sleep * 1000),
            },
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(config.max_retries + 1),
        wait=wait,
        retry=retry_if_exception(config.is_retryable),
        before_sleep=log_retry,
        sleep=_sleep,
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            return await operation()
