"""Identifiers scraped from the paginated rank listing."""

from __future__ import annotations

import httpx
import structlog

from ..config import CollectConfig, SourceName
from ..engine.parser import parse_listing_ids
from ..engine.ratelimit import AsyncioClock, Clock
from ..errors import ListingPageError
from .base import IdentifierSource


class RankListingSource(IdentifierSource):
    """Walk pages ``1..max_pages`` strictly in order with a fixed delay before each.

    The page count is fixed; pages past the end of the catalog simply yield nothing.
    """

    name = SourceName.RANK

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: CollectConfig,
        clock: Clock | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        super().__init__(logger)
        self.client = client
        self.config = config
        self.clock = clock or AsyncioClock()
        self.failed_pages: list[int] = []

    async def collect(self) -> list[int]:
        ids: list[int] = []
        max_pages = self.config.max_pages
        delay = self.config.page_delay_ms / 1000.0
        self.failed_pages = []
        for page in range(1, max_pages + 1):
            await self.clock.sleep(delay)
            try:
                page_ids = await self.fetch_page(page)
            except ListingPageError as exc:
                self.failed_pages.append(page)
                self.logger.warning("listing_page_failed", page=page, reason=exc.reason)
                continue
            if not page_ids:
                self.logger.info("listing_page_empty", page=page)
            ids.extend(page_ids)
            if page % self.config.progress_every == 0:
                self.logger.info("listing_progress", page=page, max_pages=max_pages, count=len(ids))
        self.logger.info(
            "listing_collected", pages=max_pages, failed_pages=len(self.failed_pages), count=len(ids)
        )
        return ids

    async def fetch_page(self, page: int) -> list[int]:
        url = self.config.listing_url.format(page=page)
        self.logger.debug("listing_fetch", page=page, url=url)
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as exc:
            raise ListingPageError(page, f"{type(exc).__name__}: {exc}") from exc
        if not response.is_success:
            raise ListingPageError(page, f"HTTP {response.status_code}")
        return parse_listing_ids(response.text)


__all__ = ["RankListingSource"]
