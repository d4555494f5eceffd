"""Caller-side retry helper for transient API failures.

The request pipeline never retries on its own; views that offer a retry
affordance use :func:`call_with_retry`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from handson.clients.errors import NetworkError, ServerError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 1.0) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    retry_config: RetryConfig | None = None,
) -> T:
    """Await ``func()``, retrying only on :class:`NetworkError` and :class:`ServerError`."""
    config = retry_config or RetryConfig()
    attempt = 0

    while True:
        try:
            return await func()
        except (NetworkError, ServerError) as exc:
            attempt += 1
            if attempt >= config.attempts:
                raise
            logger.info("Transient API failure (%s); retry %s/%s", exc, attempt, config.attempts - 1)
            await asyncio.sleep(config.backoff_seconds * attempt)


__all__ = ["RetryConfig", "call_with_retry"]
