"""Tests for retry with backoff."""

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from marketfeed.core.retry import STORAGE_RETRY, RetryConfig, retry_with_backoff


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_default_config(self) -> None:
        """Test default retry configuration."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.initial_delay == 0.1
        assert config.max_delay == 2.0

    def test_storage_config_retries_transient_errors_once(self) -> None:
        """Storage reads get one retry on connection-level errors."""
        assert STORAGE_RETRY.max_attempts == 2
        assert OperationalError in STORAGE_RETRY.retry_exceptions
        assert ProgrammingError not in STORAGE_RETRY.retry_exceptions


class TestRetryDecorator:
    """Tests for retry_with_backoff decorator."""

    @pytest.mark.asyncio
    async def test_successful_call_no_retry(self) -> None:
        """Test that successful calls don't trigger retries."""
        call_count = 0

        @retry_with_backoff(config=RetryConfig(max_attempts=3))
        async def success_func() -> str:
            nonlocal call_count
            call_count += 1
            return "success"

        assert await success_func() == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_failure(self) -> None:
        """Test that failures trigger retries."""
        call_count = 0

        @retry_with_backoff(config=RetryConfig(max_attempts=3, initial_delay=0.01, max_delay=0.05))
        async def flaky_func() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError("temporary error")
            return "success"

        assert await flaky_func() == "success"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_last_exception_is_reraised(self) -> None:
        """Exhausted retries surface the original exception."""
        call_count = 0

        @retry_with_backoff(config=RetryConfig(max_attempts=2, initial_delay=0.01, max_delay=0.05))
        async def always_fails() -> None:
            nonlocal call_count
            call_count += 1
            raise ValueError("persistent error")

        with pytest.raises(ValueError, match="persistent error"):
            await always_fails()

        assert call_count == 2

    @pytest.mark.asyncio
    async def test_only_retries_specified_exceptions(self) -> None:
        """Test that only specified exceptions trigger retries."""
        call_count = 0

        @retry_with_backoff(
            config=RetryConfig(
                max_attempts=3,
                initial_delay=0.01,
                retry_exceptions=(ValueError,),
            )
        )
        async def specific_error() -> None:
            nonlocal call_count
            call_count += 1
            raise TypeError("wrong error type")

        with pytest.raises(TypeError):
            await specific_error()

        assert call_count == 1
