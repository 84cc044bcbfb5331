from __future__ import annotations

import json
import os
import time
from pathlib import Path

from structlog.testing import capture_logs

from bgm_archive.engine.writer import RecordWriter, shard_for


def test_record_lands_in_shard_directory(tmp_path: Path) -> None:
    writer = RecordWriter(tmp_path)

    with capture_logs() as logs:
        path = writer.write(12345, {"id": 12345, "name": "Cowboy Bebop", "name_cn": "星际牛仔"})

    assert path == tmp_path / "123" / "12345.json"
    assert json.loads(path.read_text(encoding="utf-8"))["name_cn"] == "星际牛仔"
    assert logs[0]["event"] == "subject_written"
    assert logs[0]["subject_id"] == 12345
    assert logs[0]["title"] == "星际牛仔"
    assert not list(path.parent.glob("*.tmp"))


def test_small_ids_share_bucket_zero(tmp_path: Path) -> None:
    writer = RecordWriter(tmp_path)
    assert shard_for(1) == 0
    assert shard_for(99) == 0
    assert shard_for(100) == 1
    assert writer.path_for(7) == tmp_path / "0" / "7.json"


def test_write_replaces_previous_record(tmp_path: Path) -> None:
    writer = RecordWriter(tmp_path)
    writer.write(5, {"name": "old"})
    writer.write(5, {"name": "new"})
    assert json.loads(writer.path_for(5).read_text(encoding="utf-8")) == {"name": "new"}


def test_title_falls_back_to_placeholder() -> None:
    assert RecordWriter.title_of({"name": "Original"}) == "Original"
    assert RecordWriter.title_of({}) == "No Name"


def test_should_skip_existing_record_unless_rewrite(tmp_path: Path) -> None:
    writer = RecordWriter(tmp_path)
    assert not writer.should_skip(42)
    writer.write(42, {"name": "x"})
    assert writer.should_skip(42)

    rewriting = RecordWriter(tmp_path, rewrite=True)
    assert not rewriting.should_skip(42)


def test_should_skip_uses_injected_predicate(tmp_path: Path) -> None:
    seen: list[Path] = []

    def is_current(path: Path) -> bool:
        seen.append(path)
        return path.name == "1.json"

    writer = RecordWriter(tmp_path / "nowhere", is_current=is_current)
    assert writer.should_skip(1)
    assert not writer.should_skip(2)
    assert seen == [tmp_path / "nowhere" / "0" / "1.json", tmp_path / "nowhere" / "0" / "2.json"]


def test_stale_record_is_refetched_when_max_age_set(tmp_path: Path) -> None:
    writer = RecordWriter(tmp_path, max_age=3600)
    path = writer.write(300, {"name": "stale"})
    assert writer.should_skip(300)

    two_hours_ago = time.time() - 7200
    os.utime(path, (two_hours_ago, two_hours_ago))
    assert not writer.should_skip(300)
