"""
rolesync.services.rate_limit

Async token-bucket limiter used to pace bulk resets against platform rate limits.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable


class AsyncTokenBucket:
    """Single-process token bucket; `acquire` waits instead of refusing."""

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            rate: Tokens added per second (calls-per-second budget).
            burst: Maximum tokens held at once.
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        self._rate = rate
        self._burst = burst
        self._tokens = float(burst)
        self._clock = clock
        self._sleep = sleep
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self._burst, self._tokens + (now - self._last_refill) * self._rate)
        self._last_refill = now

    async def acquire(self) -> float:
        """Take one token, sleeping until one is available. Returns seconds waited."""
        async with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0

            wait = (1.0 - self._tokens) / self._rate
            await self._sleep(wait)
            # The token that accrued during the wait is spent by this caller.
            self._tokens = 0.0
            self._last_refill = self._clock()
            return wait
