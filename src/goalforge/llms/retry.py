"""Retry with exponential backoff for language backend calls.

Both the goal planner and the task executor delegate their transient-error
handling to ``call_with_retry`` so the behaviour is identical and maintained
in one place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from goalforge.errors import BackendTransientError

T = TypeVar("T")

RetryCallback = Callable[[int, BackendTransientError], None]


async def call_with_retry(
    api_call: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 0,
    backoff: float = 0.0,
    logger: logging.Logger | None = None,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    """Await *api_call*, retrying on ``BackendTransientError``.

    Args:
        api_call: Zero-arg coroutine factory that performs the backend call.
        max_retries: Maximum number of retries after the first attempt.
        backoff: Base delay in seconds; attempt *n* waits ``backoff * 2**(n-1)``.
        logger: Logger instance for warning/error messages.
        on_retry: Called with ``(retry_number, error)`` before each retry.

    Returns:
        Whatever *api_call* returns.

    ``BackendFatalError`` and any other exception propagate immediately.
    """
    logger = logger or logging.getLogger(__name__)
    attempt = 0
    while True:
        try:
            return await api_call()
        except BackendTransientError as e:
            attempt += 1
            if attempt > max_retries:
                if max_retries:
                    logger.error("Backend still failing after %d retries: %s", max_retries, e)
                raise
            delay = backoff * 2 ** (attempt - 1)
            logger.warning(
                "Transient backend error (%s); retry %d/%d in %.1fs",
                e,
                attempt,
                max_retries,
                delay,
            )
            if on_retry is not None:
                on_retry(attempt, e)
            if delay > 0:
                await asyncio.sleep(delay)
