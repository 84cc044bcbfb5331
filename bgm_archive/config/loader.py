"""Configuration loading helpers for bgm-archive."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import HarvestConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "harvest_config.yaml"
HOME_ENV = "BGM_ARCHIVE_HOME"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot parse configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    config_path: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        if self.config_path is None:
            self.config_path = root / CONFIG_FILENAME
        self.logs_dir = (root / "logs").resolve()

    def ensure_directories(self, config: HarvestConfig) -> None:
        """Create every output directory; an ``OSError`` here is fatal for the run."""

        for directory in (self.logs_dir, config.ids_dir, config.records_dir):
            directory.mkdir(parents=True, exist_ok=True)


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: HarvestConfig | None = None

    def load_config(self) -> HarvestConfig:
        """Load the config file, creating it with defaults on first use.

        Relative ``ids_dir``/``records_dir`` are resolved against the project root.
        """

        if self._cache is not None:
            return self._cache
        path = self.locator.config_path
        if path.exists():
            payload = _read_file(path)
            try:
                config = HarvestConfig.model_validate(payload)
            except ValidationError as exc:
                raise ConfigError(f"Invalid configuration in {path}:\n{exc}") from exc
        else:
            config = HarvestConfig()
            self.save_config(config)
        config = config.resolve_dirs(self.locator.project_root)
        self._cache = config
        return config

    def save_config(self, config: HarvestConfig) -> Path:
        path = self.locator.config_path
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._cache = None
        return path


__all__ = ["CONFIG_EXTENSIONS", "CONFIG_FILENAME", "HOME_ENV", "ConfigLocator", "ConfigRepository"]
