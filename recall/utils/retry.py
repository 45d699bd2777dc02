"""
Retry helper for durable storage writes.

A snapshot write is retried a few times with doubling, jittered delays
before the failure is handed back to the card store.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Tuple, Type

from ..domain.errors import StorageError

logger = logging.getLogger(__name__)

STORAGE_ERRORS: Tuple[Type[BaseException], ...] = (StorageError, OSError)


def backoff_delay(attempt: int, base_delay: float, max_delay: float = 30.0) -> float:
    """Delay before retry number *attempt* (1-based), capped at *max_delay*.

    Up to a quarter of the delay is added as jitter.
    """
    delay = min(base_delay * 2 ** (attempt - 1), max_delay)
    return delay + delay * random.uniform(0, 0.25)


async def with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    attempts: int = 3,
    base_delay: float = 0.5,
    retry_on: Tuple[Type[BaseException], ...] = STORAGE_ERRORS,
    **kwargs: Any,
) -> Any:
    """Await ``func(*args, **kwargs)``, retrying on *retry_on* errors.

    Other exceptions propagate immediately. After the last attempt the
    final error is re-raised.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt == attempts:
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                f"Storage call failed ({attempt}/{attempts}), "
                f"retrying in {delay:.2f}s: {e}"
            )
            await asyncio.sleep(delay)
