"""structlog setup: JSON log files per run and per stage under the project's ``logs/`` directory."""

from __future__ import annotations

import logging
import logging.config
from collections import deque
from pathlib import Path
from typing import Any

import structlog

ROOT_LOGGER = "bgm_archive"
JSON_FORMATTER = "pythonjsonlogger.jsonlogger.JsonFormatter"
# handler name -> (file name, minimum level)
FILE_HANDLERS = {
    "harvest_file": ("harvest.log", "INFO"),
    "error_file": ("error.log", "ERROR"),
}

_log_dir: Path | None = None


def build_logging_config(log_dir: Path, verbose: bool = False) -> dict[str, Any]:
    """Return the ``dictConfig`` mapping for the console and the run-wide log files."""

    level = "DEBUG" if verbose else "INFO"
    handlers: dict[str, dict[str, Any]] = {
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
    }
    for name, (filename, file_level) in FILE_HANDLERS.items():
        handlers[name] = {
            "class": "logging.FileHandler",
            "level": file_level,
            "filename": str(log_dir / filename),
            "formatter": "json",
            "encoding": "utf-8",
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSON_FORMATTER, "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s"}
        },
        "handlers": handlers,
        "loggers": {ROOT_LOGGER: {"handlers": list(handlers), "level": level, "propagate": False}},
    }


def configure_logging(log_dir: Path, verbose: bool = False) -> None:
    """Route structlog through stdlib handlers writing JSON lines into ``log_dir``.

    Only the first call takes effect; later calls keep the existing handlers.
    """

    global _log_dir
    if _log_dir is not None:
        return
    (log_dir / "stages").mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, verbose))
    # event dicts become JsonFormatter "extra" fields
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _log_dir = log_dir


def stage_logger(stage: str) -> structlog.BoundLogger:
    """Logger bound to ``stage`` that also writes to ``logs/stages/<stage>.log``.

    Before :func:`configure_logging` has run no stage file is attached.
    """

    logger_name = f"{ROOT_LOGGER}.stage.{stage}"
    if _log_dir is not None:
        path = _log_dir / "stages" / f"{stage}.log"
        py_logger = logging.getLogger(logger_name)
        if not any(getattr(h, "baseFilename", None) == str(path) for h in py_logger.handlers):
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setLevel(logging.INFO)
            root_handlers = logging.getLogger(ROOT_LOGGER).handlers
            if root_handlers:
                handler.setFormatter(root_handlers[0].formatter)
            py_logger.addHandler(handler)
    return structlog.get_logger(logger_name).bind(stage=stage)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return list(deque(stream, maxlen=line_count))


def available_stage_logs(log_dir: Path) -> list[Path]:
    """Run-wide logs first, then ``stages/*.log``, each group sorted by name."""

    if not log_dir.exists():
        return []
    return sorted(log_dir.glob("*.log")) + sorted(log_dir.glob("stages/*.log"))


__all__ = [
    "available_stage_logs",
    "build_logging_config",
    "configure_logging",
    "stage_logger",
    "tail_log",
]
