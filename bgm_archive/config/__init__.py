"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    ApiConfig,
    CollectConfig,
    FetchConfig,
    HarvestConfig,
    RateLimitConfig,
    SourceName,
)

__all__ = [
    "ApiConfig",
    "CollectConfig",
    "ConfigLocator",
    "ConfigRepository",
    "FetchConfig",
    "HarvestConfig",
    "RateLimitConfig",
    "SourceName",
]
