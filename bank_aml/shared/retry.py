"""Bounded retry with linear back-off for store operations."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 0.05


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    retry_on_exception: Callable[[BaseException], bool] = lambda exc: False,
    retry_on_result: Callable[[Any], bool] | None = None,
    operation_name: str = "operation",
) -> T:
    """Run ``operation`` up to ``max_attempts`` times.

    The delay before attempt ``n + 1`` is ``base_delay * n``. When the
    exception predicate keeps matching, the last exception is re-raised. When
    the result predicate keeps matching, the last result is returned.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    result: T
    for attempt in range(1, max_attempts + 1):
        last_attempt = attempt == max_attempts
        try:
            result = await operation()
        except Exception as exc:
            if last_attempt or not retry_on_exception(exc):
                raise
            logger.debug(
                "store_operation_retry",
                operation=operation_name,
                attempt=attempt,
                reason="exception",
                error=str(exc),
            )
            await asyncio.sleep(base_delay * attempt)
            continue

        if retry_on_result is None or last_attempt or not retry_on_result(result):
            return result

        logger.debug(
            "store_operation_retry",
            operation=operation_name,
            attempt=attempt,
            reason="result",
        )
        await asyncio.sleep(base_delay * attempt)

    return result
