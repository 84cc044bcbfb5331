"""Sharded JSON record writer with an idempotence check."""

from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable

import structlog

SHARD_SIZE = 100


def shard_for(subject_id: int) -> int:
    return subject_id // SHARD_SIZE


class RecordWriter:
    """Persist subject records to ``<base_dir>/<id // 100>/<id>.json``.

    ``is_current`` decides whether an existing record may be kept; by default a record
    is current when the file exists and, if ``max_age`` (seconds) is set, is younger
    than that.
    """

    def __init__(
        self,
        base_dir: Path,
        rewrite: bool = False,
        max_age: float | None = None,
        is_current: Callable[[Path], bool] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.base_dir = base_dir
        self.rewrite = rewrite
        self.max_age = max_age
        self._is_current = is_current or self._exists_and_fresh
        self.logger = logger or structlog.get_logger("bgm_archive.writer")

    def path_for(self, subject_id: int) -> Path:
        return self.base_dir / str(shard_for(subject_id)) / f"{subject_id}.json"

    def should_skip(self, subject_id: int) -> bool:
        """True when a prior record makes a fetch unnecessary."""

        if self.rewrite:
            return False
        return self._is_current(self.path_for(subject_id))

    def write(self, subject_id: int, record: dict[str, Any], attempt: int | None = None) -> Path:
        """Atomically replace the record file; ``attempt`` is the fetch attempt that produced it."""

        path = self.path_for(subject_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(record, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{subject_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                stream.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self.logger.info(
            "subject_written", subject_id=subject_id, attempt=attempt, title=self.title_of(record)
        )
        return path

    @staticmethod
    def title_of(record: dict[str, Any]) -> str:
        title = record.get("name_cn") or record.get("name")
        return str(title) if title else "No Name"

    def _exists_and_fresh(self, path: Path) -> bool:
        try:
            stat = path.stat()
        except FileNotFoundError:
            return False
        if self.max_age is None:
            return True
        return (time.time() - stat.st_mtime) < self.max_age


__all__ = ["SHARD_SIZE", "RecordWriter", "shard_for"]
