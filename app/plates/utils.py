from __future__ import annotations

import json
import logging
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from . import config

LOGGER = logging.getLogger("plates")
_LOGGER_INITIALISED = False
_CURRENT_LOG_FILE: Path = config.LOG_FILE


def _configure_logger(log_path: Path) -> None:
    """Configure the shared application logger to write to ``log_path``."""

    global _LOGGER_INITIALISED, _CURRENT_LOG_FILE

    log_path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue

    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    LOGGER.setLevel(logging.INFO)
    LOGGER.addHandler(stream_handler)
    LOGGER.addHandler(file_handler)
    LOGGER.propagate = False

    _CURRENT_LOG_FILE = log_path
    _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    """Initialise the logger lazily using the default log file."""

    if _LOGGER_INITIALISED:
        return

    _configure_logger(config.LOG_FILE)


def setup_run_logger() -> Path:
    """Rotate to a fresh timestamped log file for the current run."""

    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    log_path = config.LOG_DIR / f"scrape_{timestamp}.log"
    _configure_logger(log_path)
    LOGGER.info("Logging to %s", log_path)
    return log_path


def get_current_log_path() -> Path:
    """Return the path to the log file currently receiving log lines."""

    _ensure_logger()
    return _CURRENT_LOG_FILE


def ensure_dirs() -> None:
    """Ensure the data, log and output directories exist."""

    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    config.DATASET_FILE.parent.mkdir(parents=True, exist_ok=True)
    config.CHECKPOINT_FILE.parent.mkdir(parents=True, exist_ok=True)


def log_line(message: str) -> None:
    """Write a timestamped log line to stdout and the active log file."""

    _ensure_logger()
    LOGGER.info(message)


def now_iso() -> str:
    """Return the current UTC instant, e.g. ``2024-03-01T12:00:00.123Z``."""

    now = datetime.utcnow()
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def capture_date() -> str:
    """Return today's UTC date in ISO ``YYYY-MM-DD`` form, matching ``now_iso``."""

    return datetime.utcnow().date().isoformat()


def format_minutes(seconds: float) -> str:
    return f"{max(0.0, seconds) / 60:.1f}"


def save_json_file(path: Path, payload: Any) -> None:
    """Persist ``payload`` as JSON atomically via a temporary sibling."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


def append_json_line(path: Path, payload: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False) + "\n")


def disk_has_room(min_free_mb: int, path: Path) -> bool:
    """Return ``True`` when ``path``'s filesystem has at least ``min_free_mb`` free."""

    try:
        usage = shutil.disk_usage(path)
    except OSError:
        return False
    return usage.free >= min_free_mb * 1024 * 1024


__all__ = [
    "ensure_dirs",
    "setup_run_logger",
    "get_current_log_path",
    "log_line",
    "now_iso",
    "capture_date",
    "format_minutes",
    "save_json_file",
    "append_json_line",
    "disk_has_room",
]
