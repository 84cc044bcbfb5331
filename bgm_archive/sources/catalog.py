"""Identifiers from the static bangumi-data catalog."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import httpx
import structlog

from ..config import CollectConfig, SourceName
from ..engine.parser import extract_catalog_ids
from ..errors import SourceUnavailable
from .base import IdentifierSource


async def load_catalog_dataset(
    client: httpx.AsyncClient, url: str, path: Path | None = None
) -> Mapping[str, Any]:
    """Read the dataset from ``path`` when given, otherwise download it from ``url``."""

    if path is not None:
        return json.loads(path.read_text(encoding="utf-8"))
    response = await client.get(url)
    response.raise_for_status()
    return response.json()


class CatalogSource(IdentifierSource):
    """Map each catalog item to the id it carries under ``site``."""

    name = SourceName.BANGUMI_DATA

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: CollectConfig,
        dataset: Mapping[str, Any] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        super().__init__(logger)
        self.client = client
        self.config = config
        self.dataset = dataset

    async def collect(self) -> list[int]:
        dataset = self.dataset
        if dataset is None:
            try:
                dataset = await load_catalog_dataset(
                    self.client, self.config.catalog_url, self.config.catalog_path
                )
            except (httpx.HTTPError, OSError, ValueError) as exc:
                raise SourceUnavailable(self.name.value, f"{type(exc).__name__}: {exc}") from exc
        items = dataset.get("items") if isinstance(dataset, Mapping) else None
        if not isinstance(items, list):
            raise SourceUnavailable(self.name.value, "dataset has no items array")
        ids = extract_catalog_ids(items, site=self.config.catalog_site)
        self.logger.info("catalog_extracted", items=len(items), count=len(ids))
        return ids


__all__ = ["CatalogSource", "load_catalog_dataset"]
