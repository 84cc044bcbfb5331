"""Sliding-window rate limiting shared by every remote call in a run."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Protocol


class Clock(Protocol):
    """Source of time and suspension; swapped for a virtual clock in tests."""

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class AsyncioClock:
    """Wall clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class RateLimiter:
    """Admit at most ``limit`` acquisitions in any window of ``interval`` seconds.

    Admission decisions are serialised by an ``asyncio.Lock`` so concurrent callers
    queue in FIFO order; ``acquire`` never rejects, it only waits.
    """

    def __init__(self, limit: int, interval: float, clock: Clock | None = None) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.limit = limit
        self.interval = interval
        self.clock = clock or AsyncioClock()
        self._admitted: deque[float] = deque()
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait until a slot is free and return the admission timestamp."""

        async with self._lock:
            while True:
                now = self.clock.monotonic()
                # admissions at t occupy the half-open window [t, t + interval)
                while self._admitted and self._admitted[0] + self.interval <= now:
                    self._admitted.popleft()
                if len(self._admitted) < self.limit:
                    self._admitted.append(now)
                    return now
                await self.clock.sleep(self._admitted[0] + self.interval - now)

    @property
    def in_window(self) -> int:
        return len(self._admitted)


__all__ = ["AsyncioClock", "Clock", "RateLimiter"]
