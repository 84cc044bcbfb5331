"""Exception hierarchy shared across bgm-archive."""

from __future__ import annotations


class HarvestError(Exception):
    """Base class for all bgm-archive errors."""


class ConfigError(HarvestError):
    """Configuration could not be loaded or validated; fatal for the run."""


class SourceUnavailable(HarvestError):
    """An identifier source, or its persisted set, produced nothing usable."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Identifier set '{name}' unavailable: {reason}")
        self.name = name
        self.reason = reason


class ListingPageError(HarvestError):
    """A single listing page could not be fetched or parsed."""

    def __init__(self, page: int, reason: str) -> None:
        super().__init__(f"Listing page {page} failed: {reason}")
        self.page = page
        self.reason = reason


__all__ = ["ConfigError", "HarvestError", "ListingPageError", "SourceUnavailable"]
