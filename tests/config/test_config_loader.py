from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from bgm_archive.config import ConfigLocator, ConfigRepository, HarvestConfig
from bgm_archive.config.loader import CONFIG_FILENAME, HOME_ENV
from bgm_archive.errors import ConfigError


def test_locator_prefers_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(HOME_ENV, str(tmp_path))
    locator = ConfigLocator(project_root=Path("/somewhere/else"))
    assert locator.project_root == tmp_path.resolve()
    assert locator.config_path == tmp_path.resolve() / CONFIG_FILENAME
    assert locator.logs_dir == tmp_path.resolve() / "logs"


def test_first_load_writes_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = repo.load_config()
    assert (tmp_path / CONFIG_FILENAME).exists()
    assert config.ids_dir == (tmp_path / "ids").resolve()
    assert config.records_dir == (tmp_path / "data").resolve()


def test_yaml_overrides_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    (tmp_path / CONFIG_FILENAME).write_text(
        yaml.safe_dump({"fetch": {"rewrite": True, "start_index": 20}, "rate_limit": {"count": 2}}),
        encoding="utf-8",
    )
    config = ConfigRepository(ConfigLocator(project_root=tmp_path)).load_config()
    assert config.fetch.rewrite is True
    assert config.fetch.start_index == 20
    assert config.rate_limit.count == 2
    assert config.rate_limit.interval_ms == 1000


def test_save_roundtrip(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    repo.save_config(HarvestConfig(fetch={"max_retries": 5}))
    assert repo.load_config().fetch.max_retries == 5


@pytest.mark.parametrize("content", ["fetch: [unclosed", "- just\n- a list\n", "rate_limit:\n  count: 0\n"])
def test_bad_config_is_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, content: str) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    (tmp_path / CONFIG_FILENAME).write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigRepository(ConfigLocator(project_root=tmp_path)).load_config()


def test_ensure_directories_creates_outputs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = repo.load_config()
    repo.locator.ensure_directories(config)
    assert config.ids_dir.is_dir()
    assert config.records_dir.is_dir()
    assert repo.locator.logs_dir.is_dir()


def test_null_directory_is_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    (tmp_path / CONFIG_FILENAME).write_text("ids_dir: null\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="ids_dir"):
        ConfigRepository(ConfigLocator(project_root=tmp_path)).load_config()
