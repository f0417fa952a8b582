"""Helpers for persisting and restoring scraper checkpoints."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .utils import log_line, now_iso


@dataclass
class CheckpointState:
    """Resume marker: every plate with index < ``current_index`` is persisted."""

    current_index: int
    total_count: int
    success_count: int = 0
    error_count: int = 0
    timestamp: str = ""

    @property
    def percentage(self) -> str:
        if self.total_count <= 0:
            return "0.00"
        return f"{self.current_index / self.total_count * 100:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentIndex": self.current_index,
            "totalPlates": self.total_count,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "timestamp": self.timestamp or now_iso(),
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckpointState":
        return cls(
            current_index=max(0, int(data["currentIndex"])),
            total_count=max(0, int(data.get("totalPlates", 0))),
            success_count=max(0, int(data.get("successCount", 0))),
            error_count=max(0, int(data.get("errorCount", 0))),
            timestamp=str(data.get("timestamp") or ""),
        )


def save_checkpoint(path: Path, state: CheckpointState) -> bool:
    """Overwrite the checkpoint at ``path``; return ``False`` on failure."""

    path = Path(path)
    payload = state.to_dict()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(path)
    except Exception as exc:  # noqa: BLE001
        log_line(f"[CHECKPOINT][WARN] Could not save progress: {exc}")
        return False
    state.timestamp = payload["timestamp"]
    return True


def load_checkpoint(path: Path) -> Optional[CheckpointState]:
    """Load the checkpoint at ``path``; ``None`` when missing or unreadable."""

    path = Path(path)
    if not path.exists():
        return None
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(loaded, dict):
            raise ValueError("checkpoint payload is not an object")
        return CheckpointState.from_dict(loaded)
    except Exception as exc:  # noqa: BLE001
        log_line(f"[CHECKPOINT][WARN] Could not load progress: {exc}")
        return None


__all__ = ["CheckpointState", "save_checkpoint", "load_checkpoint"]
