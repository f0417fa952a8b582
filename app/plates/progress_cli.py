from __future__ import annotations

"""CLI helper for printing the progress of the current plate run."""

import argparse
from pathlib import Path
from typing import Sequence

from . import config
from .checkpoint import load_checkpoint
from .dataset import NO_DATA_LABEL, iter_dataset_rows


def _build_parser() -> argparse.ArgumentParser:
    """Return an argument parser for the progress CLI."""

    parser = argparse.ArgumentParser(
        description="Show checkpoint and results-file progress for the plate run.",
    )
    parser.add_argument(
        "--checkpoint",
        type=Path,
        default=config.CHECKPOINT_FILE,
        help="Progress JSON written by the scraper.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=config.DATASET_FILE,
        help="Results CSV written by the scraper.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the progress CLI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    state = load_checkpoint(args.checkpoint)
    if state is None:
        print(f"No checkpoint at {args.checkpoint}")
    else:
        print(f"Checkpoint {args.checkpoint}")
        print(f"  position: {state.current_index}/{state.total_count} ({state.percentage}%)")
        print(f"  found: {state.success_count}")
        print(f"  not found: {state.error_count}")
        print(f"  saved at: {state.timestamp or 'unknown'}")

    if not args.output.exists():
        print(f"\nNo results file at {args.output}")
        return 0

    rows = found = 0
    last_row = ""
    for row in iter_dataset_rows(args.output):
        rows += 1
        last_row = row.get("Row #", "")
        if row.get("Vehicle Type") != NO_DATA_LABEL:
            found += 1

    print(f"\nResults {args.output}")
    print(f"  rows: {rows}")
    print(f"  with data: {found}")
    print(f"  no data: {rows - found}")
    if last_row:
        print(f"  last row #: {last_row}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
