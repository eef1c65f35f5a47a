"""Fetch throttling and retry with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import FetchError

logger = logging.getLogger("sitesnap")

T = TypeVar("T")

RetryHook = Callable[[int, FetchError, float], None]


class RateLimiter:
    """Caps in-flight fetches and spaces out their start times.

    Use as ``async with limiter:`` around a single fetch attempt.
    """

    def __init__(
        self,
        max_concurrent: int,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._slots = asyncio.Semaphore(max_concurrent)
        self._start_lock = asyncio.Lock()
        self._next_start: Optional[float] = None

    def widen_interval(self, seconds: float) -> None:
        """Raise the minimum spacing; never lowers it."""
        self.min_interval = max(self.min_interval, seconds)

    async def __aenter__(self) -> "RateLimiter":
        await self._slots.acquire()
        try:
            async with self._start_lock:
                now = self._clock()
                if self._next_start is not None and now < self._next_start:
                    await self._sleep(self._next_start - now)
                    now = self._next_start
                self._next_start = now + self.min_interval
        except BaseException:
            self._slots.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._slots.release()


@dataclass
class RetryPolicy:
    """Attempt budget and backoff schedule for page fetches."""

    max_attempts: int = 3
    base_delay: float = 1.0

    def delay_for(self, retries_used: int) -> float:
        return self.base_delay * (2 ** retries_used)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    on_retry: Optional[RetryHook] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying retryable ``FetchError`` failures.

    Terminal failures, and the last retryable one, are re-raised.
    """
    attempts = max(1, policy.max_attempts)
    for attempt in range(attempts):
        try:
            return await operation()
        except FetchError as exc:
            if not exc.retryable or attempt + 1 >= attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                "Retrying %s in %.1fs (attempt %d/%d): %s",
                exc.url,
                delay,
                attempt + 2,
                attempts,
                exc,
            )
            if on_retry is not None:
                on_retry(attempt + 1, exc, delay)
            await sleep(delay)
    raise AssertionError("unreachable")
