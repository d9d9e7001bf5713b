"""Bounded async retry for single mutating calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    min_delay: float = 1.0,
    max_delay: float = 2.0,
    factor: float = 2.0,
    retryable: Callable[[BaseException], bool] | None = None,
    op: str = "request",
) -> T:
    """Await ``func()`` up to ``attempts`` times.

    Waits ``min(max_delay, min_delay * factor ** n)`` seconds between
    attempts. When ``retryable`` returns False for an error, or attempts are
    exhausted, the error is re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            attempt += 1
            if attempt >= attempts or (retryable is not None and not retryable(e)):
                raise
            delay = min(max_delay, min_delay * factor ** (attempt - 1))
            logger.warning(
                "%s failed (attempt=%s/%s): %r; retrying in %.2fs",
                op,
                attempt,
                attempts,
                e,
                delay,
            )
            await asyncio.sleep(delay)
