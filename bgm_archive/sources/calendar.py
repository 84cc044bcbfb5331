"""Identifiers from the broadcast calendar API."""

from __future__ import annotations

import httpx
import structlog

from ..config import ApiConfig, SourceName
from ..engine.parser import parse_calendar_ids
from ..errors import SourceUnavailable
from .base import IdentifierSource


class CalendarSource(IdentifierSource):
    name = SourceName.CALENDAR

    def __init__(
        self,
        client: httpx.AsyncClient,
        api: ApiConfig,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        super().__init__(logger)
        self.client = client
        self.api = api

    async def collect(self) -> list[int]:
        url = self.api.calendar_url()
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            ids = parse_calendar_ids(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise SourceUnavailable(self.name.value, f"{type(exc).__name__}: {exc}") from exc
        self.logger.info("calendar_collected", count=len(ids))
        return ids


__all__ = ["CalendarSource"]
