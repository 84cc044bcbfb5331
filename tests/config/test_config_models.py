from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from bgm_archive.config import ApiConfig, CollectConfig, FetchConfig, HarvestConfig, RateLimitConfig, SourceName
from bgm_archive.config.models import DEFAULT_USER_AGENT


def test_defaults_match_documented_options() -> None:
    config = HarvestConfig()
    assert config.fetch.rewrite is False
    assert config.fetch.start_index == 0
    assert config.fetch.max_retries == 3
    assert config.fetch.timeout == 5.0
    assert config.rate_limit.count == 5
    assert config.rate_limit.interval == 1.0
    assert config.collect.max_pages == 300
    assert config.collect.sources == list(SourceName)
    assert config.api.headers() == {"User-Agent": DEFAULT_USER_AGENT}


def test_api_urls() -> None:
    api = ApiConfig(host="https://api.bgm.tv/", extra_headers={"Accept": "application/json"})
    assert api.subject_url(12) == "https://api.bgm.tv/v0/subjects/12"
    assert api.calendar_url() == "https://api.bgm.tv/calendar"
    assert api.headers()["Accept"] == "application/json"


@pytest.mark.parametrize(
    ("model", "kwargs"),
    [
        (RateLimitConfig, {"count": 0}),
        (RateLimitConfig, {"interval_ms": 0}),
        (FetchConfig, {"start_index": -1}),
        (FetchConfig, {"max_retries": -1}),
        (FetchConfig, {"timeout_ms": 0}),
        (FetchConfig, {"max_concurrency": 0}),
        (FetchConfig, {"max_age_days": 0}),
        (CollectConfig, {"listing_url": "https://bgm.tv/anime/browser"}),
        (ApiConfig, {"host": "ftp://api"}),
        (ApiConfig, {"subject_path": "/v0/subjects"}),
    ],
)
def test_invalid_values_are_rejected(model, kwargs) -> None:
    with pytest.raises(ValidationError):
        model(**kwargs)


def test_resolve_dirs_anchors_relative_paths(tmp_path: Path) -> None:
    config = HarvestConfig(ids_dir="ids", records_dir=tmp_path / "abs")
    resolved = config.resolve_dirs(tmp_path)
    assert resolved.ids_dir == (tmp_path / "ids").resolve()
    assert resolved.records_dir == tmp_path / "abs"


@pytest.mark.parametrize("value", [None, "", "  ", 42])
def test_directories_must_be_paths(value) -> None:
    with pytest.raises(ValidationError):
        HarvestConfig(ids_dir=value)
