from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from . import config
from .config_validation import validate_runtime_config
from .identifiers import load_identifiers
from .logging_utils import _scraper_event
from .utils import disk_has_room, ensure_dirs, log_line


@dataclass
class HealthResult:
    ok: bool
    checks: dict[str, dict[str, Any]]


def run_health_checks(
    entrypoint: str = "health", *, plates_file: Optional[Path] = None
) -> HealthResult:
    checks: dict[str, dict[str, Any]] = {}

    try:
        validate_runtime_config(entrypoint or "health")
        checks["config"] = {"ok": True, "backend": config.BROWSER_BACKEND}
    except ValueError as exc:
        checks["config"] = {"ok": False, "error": str(exc)}

    try:
        ensure_dirs()
        fs_ok = disk_has_room(config.MIN_FREE_MB, config.DATA_DIR) and os.access(
            config.DATASET_FILE.parent, os.W_OK
        )
        checks["filesystem"] = {
            "ok": fs_ok,
            "data_dir": str(config.DATA_DIR),
            "min_free_mb": config.MIN_FREE_MB,
        }
    except OSError as exc:
        checks["filesystem"] = {"ok": False, "error": str(exc)}

    plates_path = Path(plates_file or config.PLATES_FILE)
    plates = load_identifiers(plates_path) if plates_path.exists() else []
    checks["input"] = {
        "ok": bool(plates),
        "plates_file": str(plates_path),
        "plates": len(plates),
    }

    overall_ok = all(check.get("ok", False) for check in checks.values())

    _scraper_event(
        "state" if overall_ok else "error",
        phase="health",
        context="healthcheck",
        ok=overall_ok,
        checks=checks,
    )

    return HealthResult(ok=overall_ok, checks=checks)


if __name__ == "__main__":  # pragma: no cover
    result = run_health_checks(entrypoint="health")
    for name, info in result.checks.items():
        status = "OK" if info.get("ok") else "FAIL"
        log_line(f"[HEALTH] {name}: {status} {info}")
    raise SystemExit(0 if result.ok else 1)
