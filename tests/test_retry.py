"""Tests for the retry policy used by cleanup cycles."""

import pytest

from pricekeeper.core.exceptions import PriceKeeperError, StorageError, ValidationError
from pricekeeper.core.patterns import BackoffRetry, RetryConfig
from pricekeeper.core.patterns.retry import RetryState


class TestRetryConfig:
    def test_default_config(self):
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.base_delay == 30.0
        assert config.multiplier == 1.0
        assert config.jitter is False
        assert PriceKeeperError in config.retry_on_exceptions
        assert config.skip_on_exceptions == []


class TestBackoffRetry:
    @pytest.fixture
    def retry_instance(self):
        return BackoffRetry(RetryConfig(max_attempts=3, base_delay=0.0))

    @pytest.mark.asyncio
    async def test_successful_execution(self, retry_instance):
        async def success_func():
            return "success"

        assert await retry_instance.execute(success_func) == "success"
        assert retry_instance.state == RetryState.COMPLETED
        assert retry_instance.attempt_count == 1

    @pytest.mark.asyncio
    async def test_retry_then_success(self, retry_instance):
        call_count = 0

        async def flaky_func():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise StorageError("database is locked")
            return call_count

        assert await retry_instance.execute(flaky_func) == 3
        assert retry_instance.attempt_count == 3

    @pytest.mark.asyncio
    async def test_max_attempts_exceeded(self, retry_instance):
        async def failing_func():
            raise StorageError("disk full")

        with pytest.raises(StorageError):
            await retry_instance.execute(failing_func)

        assert retry_instance.attempt_count == 3
        assert retry_instance.state == RetryState.FAILED
        assert retry_instance.get_stats()["last_exception"] == "disk full"

    @pytest.mark.asyncio
    async def test_non_retryable_exception(self, retry_instance):
        async def failing_func():
            raise ValueError("not a storage problem")

        with pytest.raises(ValueError):
            await retry_instance.execute(failing_func)

        assert retry_instance.attempt_count == 1

    @pytest.mark.asyncio
    async def test_skip_exception_fails_immediately(self):
        retry = BackoffRetry(RetryConfig(base_delay=0.0, skip_on_exceptions=[ValidationError]))

        async def failing_func():
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            await retry.execute(failing_func)

        assert retry.attempt_count == 1

    def test_fixed_delay_by_default(self):
        retry = BackoffRetry(RetryConfig(base_delay=30.0))

        assert [retry._calculate_delay(n) for n in range(3)] == [30.0, 30.0, 30.0]

    def test_exponential_delay_is_capped(self):
        retry = BackoffRetry(RetryConfig(base_delay=1.0, multiplier=2.0, max_delay=5.0))

        assert [retry._calculate_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_reset(self, retry_instance):
        retry_instance.attempt_count = 2
        retry_instance.state = RetryState.FAILED

        retry_instance.reset()

        assert retry_instance.attempt_count == 0
        assert retry_instance.state == RetryState.READY
