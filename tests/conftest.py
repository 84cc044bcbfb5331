"""Shared fixtures: virtual clock, config builder and mock transports."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from bgm_archive.config import (
    ApiConfig,
    CollectConfig,
    FetchConfig,
    HarvestConfig,
    RateLimitConfig,
)


class FakeClock:
    """Virtual clock: ``sleep`` yields once, then jumps time forward instead of waiting."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        wake_at = self.now + max(0.0, seconds)
        await asyncio.sleep(0)
        self.now = max(self.now, wake_at)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], Any]) -> None:
        self.requests: list[httpx.Request] = []

        async def _wrapped(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            result = handler(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        super().__init__(_wrapped)

    def subject_ids(self) -> list[int]:
        return [int(request.url.path.rsplit("/", 1)[-1]) for request in self.requests]


def subject_payload(subject_id: int, **extra: Any) -> dict[str, Any]:
    payload = {"id": subject_id, "name": f"Subject {subject_id}", "name_cn": "", "summary": ""}
    payload.update(extra)
    return payload


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def harvest_config(tmp_path: Path) -> Callable[..., HarvestConfig]:
    def _builder(**fetch_overrides: Any) -> HarvestConfig:
        fetch = {"retry_base_delay_ms": 1000, "rate_limited_delay_ms": 5000}
        fetch.update(fetch_overrides)
        return HarvestConfig(
            api=ApiConfig(host="https://api.example.test"),
            rate_limit=RateLimitConfig(count=100, interval_ms=1000),
            fetch=FetchConfig(**fetch),
            collect=CollectConfig(
                listing_url="https://bgm.example.test/anime/browser?sort=rank&page={page}",
                max_pages=3,
            ),
            ids_dir=tmp_path / "ids",
            records_dir=tmp_path / "data",
        )

    return _builder


@pytest.fixture
def recording_transport() -> Callable[[Callable[[httpx.Request], Any]], RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def make_subject() -> Callable[..., dict[str, Any]]:
    return subject_payload
