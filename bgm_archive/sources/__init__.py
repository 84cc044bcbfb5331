"""Identifier sources feeding the collect stage."""

from .base import IdentifierSource
from .calendar import CalendarSource
from .catalog import CatalogSource, load_catalog_dataset
from .listing import RankListingSource

__all__ = [
    "CalendarSource",
    "CatalogSource",
    "IdentifierSource",
    "RankListingSource",
    "load_catalog_dataset",
]
