"""Pydantic models used across the bgm-archive configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/83.0.4103.116 Safari/537.36"
)


class SourceName(str, Enum):
    """Fixed set of identifier origins; the value doubles as the file stem."""

    BANGUMI_DATA = "anime-bangumi-data"
    RANK = "rank-bangumi"
    CALENDAR = "calendar"


class ApiConfig(BaseModel):
    """Remote endpoints and the request header set."""

    host: str = "https://api.bgm.tv"
    subject_path: str = "/v0/subjects/{subject_id}"
    calendar_path: str = "/calendar"
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("host")
    @classmethod
    def _strip_host(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("host must be an http(s) URL")
        return value

    @model_validator(mode="after")
    def _validate_subject_path(self) -> "ApiConfig":
        if "{subject_id}" not in self.subject_path:
            raise ValueError("subject_path must contain a {subject_id} placeholder")
        return self

    def headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        headers.update(self.extra_headers)
        return headers

    def subject_url(self, subject_id: int) -> str:
        return self.host + self.subject_path.format(subject_id=subject_id)

    def calendar_url(self) -> str:
        return self.host + self.calendar_path


class RateLimitConfig(BaseModel):
    """At most ``count`` requests per ``interval_ms`` window."""

    count: int = 5
    interval_ms: int = 1000

    @model_validator(mode="after")
    def _validate_positive(self) -> "RateLimitConfig":
        if self.count < 1:
            raise ValueError("rate_limit.count must be >= 1")
        if self.interval_ms <= 0:
            raise ValueError("rate_limit.interval_ms must be > 0")
        return self

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000.0


class FetchConfig(BaseModel):
    """Per-subject fetch behaviour."""

    rewrite: bool = False
    start_index: int = 0
    max_retries: int = 3
    timeout_ms: int = 5000
    retry_base_delay_ms: int = 1000
    rate_limited_delay_ms: int = 5000
    # None: an existing record is always current
    max_age_days: float | None = None
    max_concurrency: int | None = None
    run_deadline_s: float | None = None

    @model_validator(mode="after")
    def _validate_bounds(self) -> "FetchConfig":
        if self.start_index < 0:
            raise ValueError("start_index must be >= 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        if self.retry_base_delay_ms < 0 or self.rate_limited_delay_ms < 0:
            raise ValueError("retry delays must be >= 0")
        if self.max_age_days is not None and self.max_age_days <= 0:
            raise ValueError("max_age_days must be > 0 when set")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1 when set")
        if self.run_deadline_s is not None and self.run_deadline_s <= 0:
            raise ValueError("run_deadline_s must be > 0 when set")
        return self

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0


class CollectConfig(BaseModel):
    """Identifier collection settings."""

    listing_url: str = "https://bgm.tv/anime/browser?sort=rank&page={page}"
    max_pages: int = 300
    page_delay_ms: int = 500
    progress_every: int = 10
    catalog_url: str = "https://unpkg.com/bangumi-data@0.3/dist/data.json"
    catalog_path: Path | None = None
    catalog_site: str = "bangumi"
    sources: list[SourceName] = Field(default_factory=lambda: list(SourceName))

    @field_validator("catalog_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @model_validator(mode="after")
    def _validate_listing(self) -> "CollectConfig":
        if "{page}" not in self.listing_url:
            raise ValueError("listing_url must contain a {page} placeholder")
        if self.max_pages < 0:
            raise ValueError("max_pages must be >= 0")
        if self.page_delay_ms < 0:
            raise ValueError("page_delay_ms must be >= 0")
        if self.progress_every < 1:
            raise ValueError("progress_every must be >= 1")
        return self


class HarvestConfig(BaseModel):
    """Root configuration shared by the collect and fetch stages."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    collect: CollectConfig = Field(default_factory=CollectConfig)
    ids_dir: Path = Field(default=Path("ids"))
    records_dir: Path = Field(default=Path("data"))

    @field_validator("ids_dir", "records_dir", mode="before")
    @classmethod
    def _coerce_dirs(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError("directory must be a non-empty path string")
        return Path(value)

    def resolve_dirs(self, base_dir: Path) -> "HarvestConfig":
        """Return a copy whose relative directories are anchored at ``base_dir``."""

        updates: dict[str, Path] = {}
        for name in ("ids_dir", "records_dir"):
            path: Path = getattr(self, name)
            if not path.is_absolute():
                updates[name] = (base_dir / path).resolve()
        return self.model_copy(update=updates) if updates else self


__all__ = [
    "DEFAULT_USER_AGENT",
    "ApiConfig",
    "CollectConfig",
    "FetchConfig",
    "HarvestConfig",
    "RateLimitConfig",
    "SourceName",
]
