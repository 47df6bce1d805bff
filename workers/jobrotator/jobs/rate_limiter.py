"""Token-bucket admission control for provider calls.

Tokens refill continuously in proportion to elapsed time and the bucket
holds at most ``requests_per_second`` tokens, so a fresh limiter admits one
second's worth of calls immediately and then settles to the sustained rate.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

__all__ = ["RateLimiter"]

# Floor for a single wait so float rounding near a whole token cannot spin.
MIN_WAIT_SECONDS = 0.001


class RateLimiter:
    """Asyncio token bucket shared by every concurrent synthesize call.

    Waiters queue on an ``asyncio.Lock``, which wakes them in arrival order.
    There is no timeout here; callers that need one wrap ``acquire`` in
    ``asyncio.wait_for``.
    """

    def __init__(
        self,
        requests_per_second: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.rate = float(requests_per_second)
        self.capacity = max(1.0, self.rate)
        self.tokens = self.capacity
        self._clock = clock
        self._sleep = sleep
        self.last_refill = clock()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until a whole token is available and consume it."""
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= 1:
                    self.tokens -= 1
                    return
                await self._sleep(max((1 - self.tokens) / self.rate, MIN_WAIT_SECONDS))

    def try_acquire(self) -> bool:
        if self._lock.locked():
            return False
        self._refill()
        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now
