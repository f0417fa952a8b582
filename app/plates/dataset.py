"""Append-only CSV dataset of plate lookup results.

The dataset file is only ever created (with its header) or appended to. Row
numbers continue across runs: the next number is always derived from the
number of data rows already on disk.
"""
from __future__ import annotations

import csv
import io
import os
from pathlib import Path
from typing import Dict, Iterator, List

from . import config
from .results import ExtractionResult
from .utils import log_line

DATASET_HEADERS: List[str] = [
    "Row #",
    "Plate Number",
    "Vehicle Type",
    "Brand",
    "Model",
    "Owner RUT",
    "Engine Number",
    "Year",
    "Owner Name",
    "Scraping Date",
    "Source Website",
]

NO_DATA_LABEL = "No data found"

# Record keys in the order of the descriptive dataset columns.
_DESCRIPTIVE_FIELDS = (
    "vehicle_type",
    "brand",
    "model",
    "owner_rut",
    "engine_number",
    "year",
    "owner_name",
)


def _iter_records(path: Path) -> Iterator[List[str]]:
    with Path(path).open("r", encoding="utf-8", newline="") as handle:
        for row in csv.reader(handle):
            if not row or not any(cell.strip() for cell in row):
                continue
            yield row


def current_row_count(path: Path) -> int:
    """Return the number of data rows in ``path`` (0 when absent)."""

    path = Path(path)
    if not path.exists():
        return 0
    try:
        total = sum(1 for _ in _iter_records(path))
    except (OSError, csv.Error, UnicodeDecodeError) as exc:
        log_line(f"[DATASET][ERROR] Error reading {path}: {exc}")
        return 0
    return max(0, total - 1)


def _has_records(path: Path) -> bool:
    """Return ``True`` when ``path`` holds at least one non-blank CSV record.

    An unreadable file counts as populated so it is never overwritten.
    """

    records = _iter_records(path)
    try:
        return next(records, None) is not None
    except (OSError, csv.Error, UnicodeDecodeError) as exc:
        log_line(f"[DATASET][ERROR] Error reading {path}: {exc}")
        return True
    finally:
        records.close()


def ensure_initialized(path: Path) -> int:
    """Create ``path`` with the header row if needed and return its row count.

    A missing file, or one holding only blank lines, gets the header.
    """

    path = Path(path)
    if path.exists() and _has_records(path):
        row_count = current_row_count(path)
        log_line(f"[DATASET] {path} exists with {row_count} data rows")
        return row_count

    path.parent.mkdir(parents=True, exist_ok=True)
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(DATASET_HEADERS)
    path.write_text(buffer.getvalue(), encoding="utf-8")
    log_line(f"[DATASET] Created {path} with headers")
    return 0


def format_row(
    row_number: int,
    identifier: str,
    result: ExtractionResult | None,
    captured_at: str,
    *,
    source_label: str | None = None,
) -> str:
    """Serialise one dataset row, including the trailing newline.

    The row number is written bare and every other field is double-quoted;
    embedded quotes are doubled.
    """

    if result is not None and result.is_found:
        descriptive = [result.value(name) for name in _DESCRIPTIVE_FIELDS]
    else:
        descriptive = [NO_DATA_LABEL] + [""] * (len(_DESCRIPTIVE_FIELDS) - 1)

    values = [
        int(row_number),
        identifier,
        *descriptive,
        captured_at,
        source_label if source_label is not None else config.SOURCE_LABEL,
    ]
    buffer = io.StringIO()
    csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n").writerow(values)
    return buffer.getvalue()


def append_row(
    path: Path,
    row_number: int,
    identifier: str,
    result: ExtractionResult | None,
    captured_at: str,
    *,
    source_label: str | None = None,
) -> bool:
    """Append one row to the end of ``path``; return ``False`` on failure."""

    try:
        line = format_row(
            row_number, identifier, result, captured_at, source_label=source_label
        )
        with Path(path).open("a", encoding="utf-8", newline="") as handle:
            handle.write(line)
            handle.flush()
            os.fsync(handle.fileno())
        return True
    except Exception as exc:  # noqa: BLE001
        log_line(f"[DATASET][ERROR] Error appending row {row_number} to {path}: {exc}")
        return False


def iter_dataset_rows(path: Path) -> Iterator[Dict[str, str]]:
    """Yield data rows of ``path`` keyed by the dataset headers."""

    records = _iter_records(path)
    next(records, None)
    for row in records:
        padded = row + [""] * (len(DATASET_HEADERS) - len(row))
        yield dict(zip(DATASET_HEADERS, padded))


__all__ = [
    "DATASET_HEADERS",
    "NO_DATA_LABEL",
    "current_row_count",
    "ensure_initialized",
    "format_row",
    "append_row",
    "iter_dataset_rows",
]
