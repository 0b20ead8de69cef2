"""Retries with exponential backoff and jitter, built on tenacity.

Storage reads are wrapped with ``STORAGE_RETRY`` so a dropped pooled
connection or a database failover costs one quick retry instead of a failed
feed. Only the configured exception types are retried; the last exception is
re-raised unchanged once attempts run out.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from marketfeed.core.logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy.

    Attributes:
        max_attempts: Attempts including the first call.
        initial_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound of any single delay.
        jitter_max: Random jitter added to each delay.
        retry_exceptions: Exception types worth retrying.
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    max_delay: float = 2.0
    jitter_max: float = 0.1
    retry_exceptions: tuple[type[BaseException], ...] = (Exception,)


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome is not None else None
    logger.warning(
        "retrying_call",
        function=getattr(retry_state.fn, "__name__", None),
        attempt=retry_state.attempt_number,
        error_type=type(error).__name__ if error else None,
        error=str(error) if error else None,
    )


def retry_with_backoff(
    config: RetryConfig | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorate a coroutine function with ``config``'s retry policy.

    Examples:
        >>> @retry_with_backoff(STORAGE_RETRY)
        ... async def load(session):
        ...     return await session.execute(stmt)
    """
    config = config or RetryConfig()

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            retrying = AsyncRetrying(
                stop=stop_after_attempt(config.max_attempts),
                wait=wait_exponential_jitter(
                    initial=config.initial_delay,
                    max=config.max_delay,
                    jitter=config.jitter_max,
                ),
                retry=retry_if_exception_type(config.retry_exceptions),
                before_sleep=_log_retry,
                reraise=True,
            )
            return await retrying(func, *args, **kwargs)

        return wrapper

    return decorator


# Connection-level failures only; query errors will not fix themselves
STORAGE_RETRY = RetryConfig(
    max_attempts=2,
    initial_delay=0.05,
    max_delay=0.5,
    jitter_max=0.05,
    retry_exceptions=(OperationalError, InterfaceError),
)
