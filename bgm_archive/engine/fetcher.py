"""Subject detail fetching with timeout, outcome classification and bounded retries."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import httpx
import structlog

from ..config import ApiConfig, FetchConfig
from .parser import decode_record
from .ratelimit import Clock, RateLimiter


class OutcomeKind(str, Enum):
    """Result of one fetch attempt, or the terminal result of a whole fetch."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    TRANSIENT_ERROR = "transient_error"
    TIMEOUT = "timeout"
    PERMANENT_FAILURE = "permanent_failure"


RETRYABLE = frozenset({OutcomeKind.RATE_LIMITED, OutcomeKind.TRANSIENT_ERROR, OutcomeKind.TIMEOUT})


@dataclass(slots=True)
class FetchOutcome:
    """Tagged outcome; ``record`` is set only for ``SUCCESS``."""

    subject_id: int
    kind: OutcomeKind
    record: dict[str, Any] | None = field(default=None, repr=False)
    reason: str | None = None
    attempts: int = 0

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE

    @property
    def is_terminal(self) -> bool:
        return not self.is_retryable


@dataclass(slots=True)
class RetryPolicy:
    """Backoff schedule: flat delay after a 429, linear ``base * attempt`` otherwise."""

    max_retries: int = 3
    base_delay: float = 1.0
    rate_limited_delay: float = 5.0

    @classmethod
    def from_config(cls, config: FetchConfig) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay_ms / 1000.0,
            rate_limited_delay=config.rate_limited_delay_ms / 1000.0,
        )

    def delay_for(self, outcome: FetchOutcome, attempt: int) -> float:
        """Delay before the retry that follows attempt number ``attempt`` (1-based)."""

        if outcome.kind is OutcomeKind.RATE_LIMITED:
            return self.rate_limited_delay
        return self.base_delay * attempt


def create_client(
    api: ApiConfig, timeout: float, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Build the shared async client carrying the configured header set.

    ``timeout`` applies to every httpx phase in place of httpx's 5 s default.
    """

    return httpx.AsyncClient(
        headers=api.headers(),
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        transport=transport,
    )


class SubjectFetcher:
    """Fetch one subject per call, gated by the shared :class:`RateLimiter`."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        limiter: RateLimiter,
        api: ApiConfig,
        policy: RetryPolicy | None = None,
        timeout: float = 5.0,
        skip_check: Callable[[int], bool] | None = None,
        clock: Clock | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.api = api
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.skip_check = skip_check
        self.clock = clock or limiter.clock
        self.logger = logger or structlog.get_logger("bgm_archive.fetcher")

    async def fetch(self, subject_id: int, index: int = 0, total: int = 0) -> FetchOutcome:
        """Fetch ``subject_id`` until a terminal outcome is reached."""

        if self.skip_check is not None and self.skip_check(subject_id):
            self.logger.debug(
                "subject_skipped", subject_id=subject_id, attempt=0, index=index, total=total, reason="exists"
            )
            return FetchOutcome(subject_id, OutcomeKind.SKIPPED, reason="exists")

        max_attempts = self.policy.max_retries + 1
        attempt = 0
        while True:
            attempt += 1
            await self.limiter.acquire()
            outcome = await self._attempt(subject_id)
            outcome.attempts = attempt

            if outcome.kind is OutcomeKind.SUCCESS:
                return outcome
            if outcome.kind is OutcomeKind.NOT_FOUND:
                self.logger.info(
                    "subject_not_found",
                    subject_id=subject_id,
                    attempt=attempt,
                    index=index,
                    total=total,
                    reason=outcome.reason,
                )
                return outcome
            if attempt >= max_attempts:
                self.logger.error(
                    "subject_failed",
                    subject_id=subject_id,
                    attempt=attempt,
                    index=index,
                    total=total,
                    reason=outcome.reason or outcome.kind.value,
                )
                return FetchOutcome(
                    subject_id,
                    OutcomeKind.PERMANENT_FAILURE,
                    reason=outcome.reason or outcome.kind.value,
                    attempts=attempt,
                )

            delay = self.policy.delay_for(outcome, attempt)
            self.logger.warning(
                "subject_retry",
                subject_id=subject_id,
                attempt=attempt,
                index=index,
                total=total,
                max_retries=self.policy.max_retries,
                reason=outcome.reason or outcome.kind.value,
                delay=delay,
            )
            await self.clock.sleep(delay)

    async def _attempt(self, subject_id: int) -> FetchOutcome:
        url = self.api.subject_url(subject_id)
        try:
            # wait_for cancels only this request on expiry
            response = await asyncio.wait_for(self.client.get(url), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return FetchOutcome(subject_id, OutcomeKind.TIMEOUT, reason="Timeout")
        except httpx.HTTPError as exc:
            return FetchOutcome(
                subject_id, OutcomeKind.TRANSIENT_ERROR, reason=f"{type(exc).__name__}: {exc}"
            )

        status = response.status_code
        if status == 404:
            return FetchOutcome(subject_id, OutcomeKind.NOT_FOUND, reason="HTTP 404")
        if status == 429:
            return FetchOutcome(subject_id, OutcomeKind.RATE_LIMITED, reason="HTTP 429")
        if not response.is_success:
            return FetchOutcome(subject_id, OutcomeKind.TRANSIENT_ERROR, reason=f"HTTP {status}")
        try:
            payload = response.json()
        except ValueError as exc:
            return FetchOutcome(subject_id, OutcomeKind.TRANSIENT_ERROR, reason=f"invalid JSON: {exc}")
        if not isinstance(payload, dict):
            return FetchOutcome(subject_id, OutcomeKind.TRANSIENT_ERROR, reason="unexpected payload")
        return FetchOutcome(subject_id, OutcomeKind.SUCCESS, record=decode_record(payload))


__all__ = [
    "FetchOutcome",
    "OutcomeKind",
    "RETRYABLE",
    "RetryPolicy",
    "SubjectFetcher",
    "create_client",
]
