from __future__ import annotations

"""Command line entry point for the plate lookup run."""

import argparse
from pathlib import Path
from typing import Sequence

from . import config
from .cancellation import CancellationToken, install_interrupt_handler
from .config_validation import validate_runtime_config
from .orchestrator import STATUS_CANCELLED, STATUS_COMPLETED, run_pipeline
from .session import open_session
from .utils import ensure_dirs, log_line, setup_run_logger

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Look up vehicle data for every plate in a CSV, resuming where the last run stopped.",
    )
    parser.add_argument("--plates", type=Path, default=config.PLATES_FILE, help="Input plates CSV.")
    parser.add_argument("--output", type=Path, default=config.DATASET_FILE, help="Results CSV to append to.")
    parser.add_argument(
        "--checkpoint", type=Path, default=config.CHECKPOINT_FILE, help="Progress JSON file."
    )
    parser.add_argument("--max-retries", type=int, default=config.MAX_RETRIES)
    parser.add_argument("--retry-delay", type=float, default=config.RETRY_DELAY_SECONDS)
    parser.add_argument("--delay", type=float, default=config.DELAY_BETWEEN_REQUESTS)
    parser.add_argument("--save-interval", type=int, default=config.PROGRESS_SAVE_INTERVAL)
    parser.add_argument("--summary-interval", type=int, default=config.PROGRESS_SUMMARY_INTERVAL)
    parser.add_argument("--backend", choices=config.BROWSER_BACKENDS, default=None)
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run the browser without a window (default from PLATES_HEADLESS).",
    )
    parser.add_argument(
        "--skip-ip-check",
        action="store_true",
        help="Do not probe the public IP address before starting.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the pipeline and map its outcome to a process exit status."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        ensure_dirs()
        setup_run_logger()
        validate_runtime_config("cli")
    except (OSError, ValueError) as exc:
        log_line(f"[RUN][ERROR] Startup Error: {exc}")
        return EXIT_ERROR

    token = CancellationToken()
    restore_handler = install_interrupt_handler(token)
    try:
        summary = run_pipeline(
            plates_file=args.plates,
            dataset_file=args.output,
            checkpoint_file=args.checkpoint,
            session_factory=lambda: open_session(args.backend, headless=args.headless),
            max_retries=args.max_retries,
            retry_delay=args.retry_delay,
            request_delay=args.delay,
            save_interval=args.save_interval,
            summary_interval=args.summary_interval,
            cancel_token=token,
            check_ip=not args.skip_ip_check,
        )
    except Exception as exc:  # noqa: BLE001
        log_line(f"[RUN][ERROR] Startup Error: {exc}")
        log_line("Check your files and try again")
        return EXIT_ERROR
    finally:
        restore_handler()

    status = summary.get("status")
    if status == STATUS_COMPLETED:
        log_line("All data organized in CSV!")
        return EXIT_OK
    if status == STATUS_CANCELLED:
        log_line("Graceful shutdown complete. Progress has been saved automatically.")
        return EXIT_INTERRUPTED
    if summary.get("fatal_error"):
        log_line(f"[RUN][ERROR] FATAL ERROR: {summary['fatal_error']}")
    return EXIT_ERROR


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
