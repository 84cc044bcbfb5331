"""Durable storage of deduplicated, ascending identifier sets."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Iterable

import structlog

from ..config import SourceName
from ..errors import SourceUnavailable


class IdentifierStore:
    """Persist one identifier set per source as a JSON array under ``ids_dir``."""

    def __init__(self, ids_dir: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.ids_dir = ids_dir
        self.logger = logger or structlog.get_logger("bgm_archive.id_store")

    def path_for(self, name: SourceName | str) -> Path:
        stem = name.value if isinstance(name, SourceName) else str(name)
        return self.ids_dir / f"{stem}.json"

    def save(self, name: SourceName | str, identifiers: Iterable[int]) -> list[int]:
        """Deduplicate, sort ascending and overwrite the set for ``name``."""

        unique = sorted(set(identifiers))
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                json.dump(unique, stream, separators=(",", ":"))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self.logger.info("ids_saved", source=path.stem, path=str(path), count=len(unique))
        return unique

    def load(self, name: SourceName | str) -> list[int]:
        """Return the stored set, or ``[]`` with a warning when missing or corrupt."""

        try:
            return self.read(name)
        except SourceUnavailable as exc:
            self.logger.warning("ids_unavailable", source=exc.name, reason=exc.reason)
            return []

    def read(self, name: SourceName | str) -> list[int]:
        """Strict variant of :meth:`load` raising :class:`SourceUnavailable`."""

        path = self.path_for(name)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise SourceUnavailable(path.stem, "missing") from exc
        except (OSError, ValueError) as exc:
            raise SourceUnavailable(path.stem, f"unreadable: {exc}") from exc
        if not isinstance(payload, list) or not all(
            isinstance(item, int) and not isinstance(item, bool) for item in payload
        ):
            raise SourceUnavailable(path.stem, "not a JSON array of integers")
        return sorted(set(payload))


__all__ = ["IdentifierStore"]
