"""Identifier source contract."""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from ..config import SourceName


class IdentifierSource(ABC):
    """Produce raw (possibly duplicate) subject ids from one origin.

    Partial failures, such as one listing page, are logged and skipped. When the
    whole origin is unreachable or malformed, ``collect`` raises
    :class:`~bgm_archive.errors.SourceUnavailable` so the caller keeps the previous set.
    """

    name: SourceName

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = (logger or structlog.get_logger("bgm_archive.sources")).bind(
            source=self.name.value
        )

    @abstractmethod
    async def collect(self) -> list[int]:
        """Return every identifier this source can currently see."""


__all__ = ["IdentifierSource"]
