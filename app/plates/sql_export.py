"""Generate an ``UPDATE`` script that back-fills owner identifiers.

Reads the results CSV and emits one ``(plate, owner_rut)`` tuple per row that
carries an owner RUT. Values are escaped by doubling single quotes only.
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from . import config
from .dataset import iter_dataset_rows
from .utils import log_line

SQL_HEADER = """-- Update profiles.identifier with Owner RUT from vehicle data CSV
-- Matches based on cars.plate = Plate Number from CSV
-- Only updates if profiles.identifier IS NULL or length < 8

UPDATE profiles
SET identifier = data.owner_rut
FROM (
    VALUES
"""

SQL_FOOTER = """
) AS data(plate, owner_rut)
INNER JOIN cars ON cars.plate = data.plate
INNER JOIN profile_cars ON profile_cars.car_id = cars.id
WHERE profiles.id = profile_cars.profile_id
  AND (profiles.identifier IS NULL OR LENGTH(profiles.identifier) < 8);
"""


def escape_sql(value: str) -> str:
    return value.replace("'", "''")


def collect_owner_ruts(dataset_file: Path) -> List[Tuple[str, str]]:
    """Return ``(plate, owner_rut)`` pairs for rows with a non-empty RUT."""

    pairs: List[Tuple[str, str]] = []
    for row in iter_dataset_rows(dataset_file):
        plate = (row.get("Plate Number") or "").strip()
        owner_rut = (row.get("Owner RUT") or "").strip()
        if plate and owner_rut:
            pairs.append((plate, owner_rut))
    return pairs


def build_update_sql(pairs: Iterable[Tuple[str, str]]) -> str:
    values = ",\n".join(
        f"        ('{escape_sql(plate)}', '{escape_sql(owner_rut)}')" for plate, owner_rut in pairs
    )
    return SQL_HEADER + values + SQL_FOOTER


def export_update_sql(dataset_file: Path, output_file: Path) -> int:
    """Write the update script for ``dataset_file``; return the record count.

    Nothing is written when no row carries an owner RUT.
    """

    pairs = collect_owner_ruts(dataset_file)
    if not pairs:
        log_line(f"[SQL] No rows with an owner RUT in {dataset_file}; nothing to export")
        return 0
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(build_update_sql(pairs), encoding="utf-8")
    log_line(f"[SQL] Generated SQL with {len(pairs)} records -> {output_file}")
    return len(pairs)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate owner-identifier UPDATE SQL from results CSV.")
    parser.add_argument("--dataset", type=Path, default=config.DATASET_FILE)
    parser.add_argument("--output", type=Path, default=config.SQL_OUTPUT_FILE)
    args = parser.parse_args(list(argv) if argv is not None else None)

    if not args.dataset.exists():
        parser.error(f"Results file {args.dataset} does not exist")
    export_update_sql(args.dataset, args.output)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
