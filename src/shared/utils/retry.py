# /src/shared/utils/retry.py
"""
Async retry with exponential backoff + jitter.

- async def retry(fn, *, attempts=3, base_ms=50, max_ms=2000, jitter_ms=50, retry_on=(Exception,))

Used for optimistic-concurrency writes: ``fn`` must re-read whatever state it
depends on, since every attempt starts from scratch.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Iterable, Tuple, Type, TypeVar

from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
ExcTuple = Tuple[Type[BaseException], ...]


async def retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_ms: int = 50,
    max_ms: int = 2000,
    jitter_ms: int = 50,
    retry_on: Iterable[Type[BaseException]] = (Exception,),
    operation: str = "operation",
) -> T:
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    exc_types: ExcTuple = tuple(retry_on)
    delay = base_ms
    for i in range(attempts):
        try:
            return await fn()
        except exc_types as e:
            if i == attempts - 1:
                logger.warning("retry_exhausted", operation=operation, attempts=attempts, error=str(e))
                raise
            jitter = random.randint(0, jitter_ms)
            sleep_s = min((delay + jitter) / 1000.0, max_ms / 1000.0)
            logger.debug("retrying", operation=operation, attempt=i + 1, sleep_s=sleep_s, error=str(e))
            await asyncio.sleep(sleep_s)
            delay = min(delay * 2, max_ms)
    raise AssertionError("unreachable")
