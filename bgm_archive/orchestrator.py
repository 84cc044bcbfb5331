"""Pipeline orchestrator wiring sources, id storage, rate limiting, fetching and writing."""

from __future__ import annotations

import asyncio
from contextlib import nullcontext
from dataclasses import asdict, dataclass
from typing import Iterable, Sequence

import httpx
import structlog

from .config import HarvestConfig, SourceName
from .engine import (
    AsyncioClock,
    Clock,
    FetchOutcome,
    OutcomeKind,
    RateLimiter,
    RecordWriter,
    RetryPolicy,
    SubjectFetcher,
    create_client,
)
from .errors import SourceUnavailable
from .infra import IdentifierStore
from .sources import CalendarSource, CatalogSource, IdentifierSource, RankListingSource
from .ui import ProgressReporter


@dataclass(slots=True)
class RunSummary:
    """Aggregate counters for one fetch run."""

    total: int = 0
    skipped_prefix: int = 0
    success: int = 0
    skipped: int = 0
    not_found: int = 0
    failed: int = 0
    cancelled: int = 0

    def record(self, outcome: FetchOutcome) -> None:
        if outcome.kind is OutcomeKind.SUCCESS:
            self.success += 1
        elif outcome.kind is OutcomeKind.SKIPPED:
            self.skipped += 1
        elif outcome.kind is OutcomeKind.NOT_FOUND:
            self.not_found += 1
        else:
            self.failed += 1

    @property
    def processed(self) -> int:
        return self.success + self.skipped + self.not_found + self.failed

    def as_dict(self) -> dict[str, int]:
        data = asdict(self)
        data["processed"] = self.processed
        return data


def merge_backlog(id_sets: Iterable[Sequence[int]]) -> list[int]:
    """Union of ``id_sets`` keeping first-seen order, so resume offsets stay stable."""

    seen: set[int] = set()
    merged: list[int] = []
    for ids in id_sets:
        for subject_id in ids:
            if subject_id not in seen:
                seen.add(subject_id)
                merged.append(subject_id)
    return merged


class Orchestrator:
    """Central coordinator for the collect and fetch stages."""

    def __init__(
        self,
        config: HarvestConfig,
        id_store: IdentifierStore | None = None,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        limiter: RateLimiter | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.id_store = id_store or IdentifierStore(config.ids_dir)
        self.clock = clock or AsyncioClock()
        self.transport = transport
        # an injected limiter must only be used from one event loop
        self.limiter = limiter
        self.logger = logger or structlog.get_logger("bgm_archive.orchestrator")

    # ------------------------------------------------------------------
    # Collect stage
    # ------------------------------------------------------------------
    def build_sources(
        self, client: httpx.AsyncClient, names: Iterable[SourceName] | None = None
    ) -> list[IdentifierSource]:
        selected = list(names) if names is not None else list(self.config.collect.sources)
        sources: list[IdentifierSource] = []
        for name in selected:
            if name is SourceName.BANGUMI_DATA:
                sources.append(CatalogSource(client, self.config.collect, logger=self.logger))
            elif name is SourceName.RANK:
                sources.append(
                    RankListingSource(client, self.config.collect, clock=self.clock, logger=self.logger)
                )
            elif name is SourceName.CALENDAR:
                sources.append(CalendarSource(client, self.config.api, logger=self.logger))
        return sources

    async def collect(self, names: Iterable[SourceName] | None = None) -> dict[str, int]:
        """Run each selected source in turn and persist its identifier set."""

        counts: dict[str, int] = {}
        async with create_client(self.config.api, self.config.fetch.timeout, self.transport) as client:
            for source in self.build_sources(client, names):
                self.logger.info("collect_started", source=source.name.value)
                # on failure the previous file for this source is kept
                try:
                    ids = await source.collect()
                except SourceUnavailable as exc:
                    self.logger.warning("collect_failed", source=source.name.value, reason=exc.reason)
                    continue
                except Exception as exc:  # noqa: BLE001
                    self.logger.error(
                        "collect_failed", source=source.name.value, reason=f"{type(exc).__name__}: {exc}"
                    )
                    continue
                saved = self.id_store.save(source.name, ids)
                counts[source.name.value] = len(saved)
        self.logger.info("collect_finished", counts=counts)
        return counts

    # ------------------------------------------------------------------
    # Fetch stage
    # ------------------------------------------------------------------
    def load_backlog(self, names: Iterable[SourceName] | None = None) -> list[int]:
        selected = list(names) if names is not None else list(SourceName)
        return merge_backlog(self.id_store.load(name) for name in selected)

    def build_writer(self) -> RecordWriter:
        fetch_cfg = self.config.fetch
        max_age = fetch_cfg.max_age_days * 86400 if fetch_cfg.max_age_days else None
        return RecordWriter(
            self.config.records_dir,
            rewrite=fetch_cfg.rewrite,
            max_age=max_age,
            logger=self.logger,
        )

    async def fetch(
        self,
        backlog: Sequence[int] | None = None,
        progress: ProgressReporter | None = None,
        writer: RecordWriter | None = None,
    ) -> RunSummary:
        """Fetch every backlog subject from ``start_index`` on; never raises per subject."""

        fetch_cfg = self.config.fetch
        backlog = list(backlog) if backlog is not None else self.load_backlog()
        total = len(backlog)
        start = min(fetch_cfg.start_index, total)
        pending = backlog[start:]
        summary = RunSummary(total=total, skipped_prefix=start)

        writer = writer or self.build_writer()
        writer.base_dir.mkdir(parents=True, exist_ok=True)
        progress = progress or ProgressReporter(enabled=False)
        progress.start(len(pending))

        limiter = self.limiter or RateLimiter(
            self.config.rate_limit.count, self.config.rate_limit.interval, clock=self.clock
        )
        semaphore = (
            asyncio.Semaphore(fetch_cfg.max_concurrency) if fetch_cfg.max_concurrency else None
        )
        self.logger.info(
            "run_started",
            total=total,
            start_index=start,
            pending=len(pending),
            rate_limit=self.config.rate_limit.count,
            interval_ms=self.config.rate_limit.interval_ms,
        )

        try:
            async with create_client(self.config.api, fetch_cfg.timeout, self.transport) as client:
                fetcher = SubjectFetcher(
                    client,
                    limiter,
                    self.config.api,
                    policy=RetryPolicy.from_config(fetch_cfg),
                    timeout=fetch_cfg.timeout,
                    skip_check=writer.should_skip,
                    clock=self.clock,
                    logger=self.logger,
                )
                tasks = [
                    asyncio.create_task(
                        self._process(fetcher, writer, subject_id, index, total, semaphore, summary, progress)
                    )
                    for index, subject_id in enumerate(pending, start=start)
                ]
                if tasks:
                    _, not_done = await asyncio.wait(tasks, timeout=fetch_cfg.run_deadline_s)
                    if not_done:
                        for task in not_done:
                            task.cancel()
                        await asyncio.gather(*not_done, return_exceptions=True)
                        summary.cancelled = len(not_done)
                        self.logger.warning(
                            "run_deadline_exceeded",
                            deadline_s=fetch_cfg.run_deadline_s,
                            cancelled=summary.cancelled,
                        )
        finally:
            progress.close()

        self.logger.info("run_finished", **summary.as_dict())
        return summary

    async def _process(
        self,
        fetcher: SubjectFetcher,
        writer: RecordWriter,
        subject_id: int,
        index: int,
        total: int,
        semaphore: asyncio.Semaphore | None,
        summary: RunSummary,
        progress: ProgressReporter,
    ) -> FetchOutcome:
        try:
            async with semaphore or nullcontext():
                outcome = await fetcher.fetch(subject_id, index, total)
                if outcome.kind is OutcomeKind.SUCCESS and outcome.record is not None:
                    await asyncio.to_thread(writer.write, subject_id, outcome.record, outcome.attempts)
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "subject_failed",
                subject_id=subject_id,
                index=index,
                total=total,
                reason=f"{type(exc).__name__}: {exc}",
            )
            outcome = FetchOutcome(subject_id, OutcomeKind.PERMANENT_FAILURE, reason=str(exc))
        summary.record(outcome)
        progress.advance(
            success=outcome.kind is OutcomeKind.SUCCESS,
            not_found=outcome.kind is OutcomeKind.NOT_FOUND,
            skipped=outcome.kind is OutcomeKind.SKIPPED,
            failed=outcome.kind is OutcomeKind.PERMANENT_FAILURE,
            current_id=subject_id,
        )
        return outcome

    # ------------------------------------------------------------------
    # Sync entry points
    # ------------------------------------------------------------------
    def run_collect(self, names: Iterable[SourceName] | None = None) -> dict[str, int]:
        return asyncio.run(self.collect(names))

    def run_fetch(self, progress: ProgressReporter | None = None) -> RunSummary:
        return asyncio.run(self.fetch(progress=progress))


__all__ = ["Orchestrator", "RunSummary", "merge_backlog"]
