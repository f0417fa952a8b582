"""Load the ordered list of plate numbers to look up."""
from __future__ import annotations

from pathlib import Path
from typing import List

from .logging_utils import _scraper_event
from .utils import log_line


def load_identifiers(path: Path) -> List[str]:
    """Return the plates listed in ``path``, in file order.

    The first non-blank line is a header and is dropped; every other non-blank
    line, trimmed, is one plate. A missing or unreadable file yields an empty
    list so the caller decides whether to abort.
    """

    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log_line(f"[INPUT][ERROR] Error reading {path}: {exc}")
        _scraper_event("error", phase="input", path=str(path), error=str(exc))
        return []

    lines = [line.strip() for line in content.splitlines() if line.strip()]
    plates = lines[1:]
    log_line(f"[INPUT] Loaded {len(plates)} plates from {path}")
    return plates


__all__ = ["load_identifiers"]
