"""
Concurrency Limiter - FIFO admission control for batch jobs

A counting semaphore that grants permits strictly in request order. On
release, a free permit is handed directly to the longest-waiting caller
instead of being returned to the pool, so a newly arriving caller can never
overtake a queued one.
"""
import asyncio
import logging
from collections import deque
from typing import Deque

logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """
    FIFO hand-off semaphore

    Example:
        limiter = ConcurrencyLimiter(2)
        async with limiter:
            await run_job()
    """

    def __init__(self, max_concurrent: int):
        """
        Initialize limiter

        Args:
            max_concurrent: Number of permits (at least 1)
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")

        self.max_concurrent = max_concurrent
        self._permits = max_concurrent
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def available(self) -> int:
        """Free permits"""
        return self._permits

    @property
    def waiting(self) -> int:
        """Callers queued for a permit"""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        """Wait for a permit"""
        if self._permits > 0 and not self._waiters:
            self._permits -= 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)

        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Permit was handed over before the cancellation landed
                self.release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def release(self) -> None:
        """Hand the permit to the next waiter, or return it to the pool"""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return

        if self._permits >= self.max_concurrent:
            raise ValueError("ConcurrencyLimiter released too many times")
        self._permits += 1

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
