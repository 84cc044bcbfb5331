from __future__ import annotations

import asyncio
import random

import pytest

from bgm_archive.engine.ratelimit import RateLimiter


def _max_in_any_window(times: list[float], interval: float) -> int:
    ordered = sorted(times)
    worst = 0
    for i, start in enumerate(ordered):
        count = sum(1 for t in ordered[i:] if t < start + interval)
        worst = max(worst, count)
    return worst


def test_limiter_admits_burst_then_waits(fake_clock) -> None:
    async def scenario() -> list[float]:
        limiter = RateLimiter(5, 1.0, clock=fake_clock)
        return list(await asyncio.gather(*(limiter.acquire() for _ in range(12))))

    admitted = asyncio.run(scenario())
    assert admitted[:5] == [0.0] * 5
    assert admitted[5:10] == [1.0] * 5
    assert admitted[10:] == [2.0] * 2
    assert _max_in_any_window(admitted, 1.0) == 5


@pytest.mark.parametrize("seed", [1, 7, 42, 1234])
@pytest.mark.parametrize(("limit", "interval"), [(5, 1.0), (1, 0.25), (3, 2.5)])
def test_limiter_never_exceeds_limit_under_concurrent_demand(fake_clock, seed, limit, interval) -> None:
    rng = random.Random(seed)
    offsets = [rng.uniform(0, interval * 4) for _ in range(40)]

    async def scenario() -> list[float]:
        limiter = RateLimiter(limit, interval, clock=fake_clock)

        async def worker(offset: float) -> float:
            await fake_clock.sleep(offset)
            return await limiter.acquire()

        return list(await asyncio.gather(*(worker(offset) for offset in offsets)))

    admitted = asyncio.run(scenario())
    assert len(admitted) == len(offsets)
    assert _max_in_any_window(admitted, interval) <= limit


def test_limiter_frees_slots_after_interval(fake_clock) -> None:
    async def scenario() -> tuple[float, float]:
        limiter = RateLimiter(2, 1.0, clock=fake_clock)
        await limiter.acquire()
        await limiter.acquire()
        fake_clock.now = 5.0
        first = await limiter.acquire()
        return first, limiter.in_window

    first, in_window = asyncio.run(scenario())
    assert first == 5.0
    assert in_window == 1
    assert fake_clock.sleeps == []


@pytest.mark.parametrize(("limit", "interval"), [(0, 1.0), (1, 0.0), (3, -1.0)])
def test_limiter_rejects_invalid_configuration(limit, interval) -> None:
    with pytest.raises(ValueError):
        RateLimiter(limit, interval)
