# src/dual_limit/resilience.py
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import httpx
import structlog

from src.exceptions import FeedError, ResolutionUnavailableError

logger = structlog.get_logger()
T = TypeVar("T")

RETRYABLE = (httpx.TimeoutException, httpx.HTTPStatusError, httpx.ConnectError, FeedError)
NON_RETRYABLE = (ResolutionUnavailableError,)


async def clob_retry(
    coro_factory: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    operation: str = "",
) -> T:
    """Retry an async CLOB/REST call with exponential backoff."""
    last_exc: Exception = RuntimeError("no attempts")
    for attempt in range(max_attempts):
        try:
            return await coro_factory()
        except NON_RETRYABLE:
            raise
        except RETRYABLE as e:
            last_exc = e
            if attempt == max_attempts - 1:
                logger.error("clob_failed", op=operation, error=str(e),
                             attempts=attempt + 1)
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning("clob_retry", op=operation, attempt=attempt + 1,
                           delay=delay, error=str(e))
            await asyncio.sleep(delay)
    raise last_exc
