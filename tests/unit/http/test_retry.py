"""Unit tests for bounded exponential backoff.

asyncio.sleep is patched in every async test so the suite never waits.
"""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from unittest.mock import AsyncMock, patch

import pytest

from src.devbuddy.http.errors import NetworkFailure, http_failure_for
from src.devbuddy.http.retry import (
    NO_RETRY,
    RetryConfig,
    delay_for,
    parse_retry_after_ms,
    with_retry,
)


class TestBackoffDelay:
    def test_exponential_growth(self):
        config = RetryConfig(base_delay_ms=1000, max_delay_ms=30000)
        assert [config.backoff_delay_ms(n) for n in range(1, 6)] == [1000, 2000, 4000, 8000, 16000]

    def test_capped_at_max(self):
        config = RetryConfig(base_delay_ms=1000, max_delay_ms=30000)
        assert config.backoff_delay_ms(6) == 30000
        assert config.backoff_delay_ms(20) == 30000

    def test_attempt_zero(self):
        assert RetryConfig().backoff_delay_ms(0) == 0


class TestIsRetryable:
    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_transient_statuses(self, status):
        assert RetryConfig().is_retryable(http_failure_for("GET", "/x", status))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409])
    def test_client_errors_not_retried(self, status):
        assert not RetryConfig().is_retryable(http_failure_for("GET", "/x", status))

    def test_network_failure(self):
        error = NetworkFailure("GET", "/x", "refused")
        assert RetryConfig().is_retryable(error)
        assert not RetryConfig(retry_on_network_error=False).is_retryable(error)

    def test_other_exceptions(self):
        assert not RetryConfig().is_retryable(ValueError("nope"))


class TestRetryAfter:
    def test_seconds(self):
        assert parse_retry_after_ms("5") == 5000
        assert parse_retry_after_ms(" 1.5 ") == 1500

    def test_http_date(self):
        now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now + timedelta(seconds=10), usegmt=True)
        assert parse_retry_after_ms(header, now=now) == 10000

    def test_past_date_is_zero(self):
        now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now - timedelta(seconds=10), usegmt=True)
        assert parse_retry_after_ms(header, now=now) == 0

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_unparseable(self, value):
        assert parse_retry_after_ms(value) is None

    def test_delay_uses_retry_after_capped(self):
        config = RetryConfig(max_delay_ms=30000)
        assert delay_for(config, http_failure_for("GET", "/x", 429, retry_after="7"), 1) == 7000
        assert delay_for(config, http_failure_for("GET", "/x", 429, retry_after="3600"), 1) == 30000

    def test_delay_without_hint_uses_backoff(self):
        config = RetryConfig(base_delay_ms=100)
        assert delay_for(config, http_failure_for("GET", "/x", 503), 3) == 400


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        operation = AsyncMock(return_value={"ok": True})

        with patch("src.devbuddy.http.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await with_retry(operation, RetryConfig())

        assert result == {"ok": True}
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self):
        operation = AsyncMock(
            side_effect=[
                http_failure_for("GET", "/x", 503),
                NetworkFailure("GET", "/x", "reset"),
                "done",
            ]
        )

        with patch("src.devbuddy.http.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await with_retry(operation, RetryConfig(base_delay_ms=100))

        assert result == "done"
        assert operation.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        """Total attempts = max_retries + 1; the last failure surfaces."""
        operation = AsyncMock(side_effect=http_failure_for("GET", "/x", 500))

        with patch("src.devbuddy.http.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(Exception) as exc_info:
                await with_retry(operation, RetryConfig(max_retries=2))

        assert exc_info.value.status == 500
        assert operation.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self):
        operation = AsyncMock(side_effect=http_failure_for("GET", "/x", 404))

        with patch("src.devbuddy.http.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(Exception) as exc_info:
                await with_retry(operation, RetryConfig())

        assert exc_info.value.status == 404
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_retry_policy(self):
        operation = AsyncMock(side_effect=http_failure_for("POST", "/x", 503))

        with patch("src.devbuddy.http.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(Exception):
                await with_retry(operation, NO_RETRY)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_after_honoured(self):
        operation = AsyncMock(side_effect=[http_failure_for("GET", "/x", 429, retry_after="2"), "ok"])

        with patch("src.devbuddy.http.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await with_retry(operation, RetryConfig())

        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_foreign_exceptions_not_retried(self):
        operation = AsyncMock(side_effect=KeyError("boom"))

        with patch("src.devbuddy.http.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(KeyError):
                await with_retry(operation, RetryConfig())

        assert operation.await_count == 1
