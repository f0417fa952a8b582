"""Per-run telemetry: one JSON line per processed plate plus a run summary."""

from __future__ import annotations

import time
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Optional

from . import config
from .results import ExtractionResult
from .utils import append_json_line, log_line, save_json_file


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


class RunTelemetry:
    """Collect per-run telemetry for later analysis."""

    def __init__(self, runs_dir: Optional[Path] = None) -> None:
        self.run_id = f"{_ts()}_{uuid.uuid4().hex[:8]}"
        self.started_at = time.time()
        self.summary: Dict[str, int] = defaultdict(int)
        self.runs_dir = Path(runs_dir or config.RUNS_DIR)
        self.entries_path = self.runs_dir / f"run_{self.run_id}.jsonl"

    def add(
        self,
        *,
        index: int,
        identifier: str,
        row_number: int,
        result: ExtractionResult,
        persisted: bool,
    ) -> None:
        entry = {
            "index": index,
            "plate": identifier,
            "row": row_number,
            "status": result.status.value,
            "error_code": result.error_code,
            "message": result.message,
            "attempts": result.attempts,
            "persisted": persisted,
        }
        self.summary[f"count_{result.status.value}"] += 1
        try:
            append_json_line(self.entries_path, entry)
        except Exception as exc:  # noqa: BLE001
            log_line(f"[TELEMETRY][WARN] Unable to record entry for {identifier}: {exc}")

    def finalize(self, extra: Optional[Dict[str, Any]] = None) -> Optional[Path]:
        payload = {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "summary": dict(self.summary),
            "entries_file": str(self.entries_path),
            **(extra or {}),
        }
        path = self.runs_dir / f"run_{self.run_id}.json"
        try:
            save_json_file(path, payload)
        except Exception as exc:  # noqa: BLE001
            log_line(f"[TELEMETRY][WARN] Unable to write run summary: {exc}")
            return None
        return path


__all__ = ["RunTelemetry"]
