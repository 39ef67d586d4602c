"""Exponential-backoff retry helper for async operations."""

import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar
from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_exponential

T = TypeVar("T")


async def _sleep(seconds: float):
    await asyncio.sleep(seconds)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    label: Optional[str] = None,
) -> T:
    """
    Await ``operation()`` until it succeeds or ``max_retries`` attempts are used.

    The wait after attempt ``n`` (0-based) is ``base_delay * 2 ** n``.
    Exceptions outside ``retry_on`` propagate immediately; the last
    retryable exception is re-raised once the attempts are exhausted.

    Args:
        operation: Zero-argument coroutine factory
        max_retries: Total number of attempts (>= 1)
        base_delay: First backoff in seconds
        retry_on: Exception types that trigger another attempt
        label: Name used in log messages
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    name = label or getattr(operation, "__name__", "operation")

    def log_retry(retry_state: RetryCallState):
        error = retry_state.outcome.exception()
        wait_time = retry_state.next_action.sleep
        logger.debug(
            f"🔁 {name} failed ({error}), retry {retry_state.attempt_number}/{max_retries - 1} in {wait_time:.1f}s"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=base_delay, exp_base=2),
        retry=retry_if_exception_type(retry_on),
        before_sleep=log_retry,
        sleep=_sleep,
        reraise=True,
    )

    try:
        return await retrying(operation)
    except retry_on as e:
        logger.warning(f"{name} failed after {max_retries} attempts: {e}")
        raise
