"""Resumable plate lookup run.

Workflow:

- Load the plates list (header line dropped).
- Create the results CSV if needed and derive the next row number from the
  rows already on disk.
- Resume from the saved checkpoint index when one exists.
- For each remaining plate: look it up (with retries), append exactly one row,
  advance the counters, and periodically persist the checkpoint.
- On completion, interrupt, or a dead browser session, close the browser and
  persist a final checkpoint so the next run continues where this one stopped.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import config
from .cancellation import CancellationToken
from .checkpoint import CheckpointState, load_checkpoint, save_checkpoint
from .dataset import append_row, ensure_initialized
from .error_codes import ErrorCode, RunCancelled, SessionError
from .identifiers import load_identifiers
from .logging_utils import _scraper_event
from .results import ExtractionResult
from .retry import attempt_with_retries
from .session import PageSession, lookup_identifier, open_session
from .telemetry import RunTelemetry
from .utils import capture_date, format_minutes, get_current_log_path, log_line, save_json_file

SessionFactory = Callable[[], PageSession]

STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_FATAL = "fatal"
STATUS_NO_INPUT = "no_input"


@dataclass
class RunState:
    """Mutable counters owned by a single run."""

    total: int
    start_index: int
    next_row: int
    success_count: int = 0
    error_count: int = 0
    session_success: int = 0
    session_errors: int = 0
    append_failures: int = 0
    current_index: int = 0
    started_at: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        self.current_index = max(self.current_index, self.start_index)

    @property
    def processed_this_session(self) -> int:
        return self.current_index - self.start_index

    @property
    def dataset_rows(self) -> int:
        return self.next_row - 1

    def session_success_rate(self) -> str:
        processed = self.processed_this_session
        if processed <= 0:
            return "0.0"
        return f"{self.session_success / processed * 100:.1f}"

    def to_checkpoint(self) -> CheckpointState:
        return CheckpointState(
            current_index=self.current_index,
            total_count=self.total,
            success_count=self.success_count,
            error_count=self.error_count,
        )


def _session_alive(session: PageSession) -> bool:
    try:
        return session.is_alive()
    except Exception:  # noqa: BLE001
        return False


def _percent(done: int, total: int) -> str:
    if total <= 0:
        return "0.0"
    return f"{done / total * 100:.1f}"


def _save_progress(path: Path, state: RunState) -> None:
    checkpoint = state.to_checkpoint()
    if save_checkpoint(path, checkpoint):
        log_line(f"   Progress saved: {checkpoint.percentage}% complete")


def _log_progress_summary(state: RunState) -> None:
    processed = state.processed_this_session
    remaining = state.total - state.current_index
    elapsed = time.monotonic() - state.started_at
    per_plate = elapsed / processed if processed else 0.0

    log_line("")
    log_line("PROGRESS SUMMARY:")
    log_line(
        f"   Processed: {state.current_index}/{state.total} "
        f"({_percent(state.current_index, state.total)}%)"
    )
    log_line(f"   Successful: {state.session_success}")
    log_line(f"   Not Found: {state.session_errors}")
    log_line(f"   Success Rate: {state.session_success_rate()}%")
    log_line(f"   Estimated Time Remaining: {format_minutes(remaining * per_plate)} minutes")
    log_line(f"   CSV Rows: {state.dataset_rows}")
    log_line("")


def _record_result(
    state: RunState,
    *,
    index: int,
    identifier: str,
    result: ExtractionResult,
    dataset_file: Path,
    telemetry: RunTelemetry,
) -> None:
    """Append ``result`` as the next dataset row and advance the counters."""

    row_number = state.next_row
    persisted = append_row(dataset_file, row_number, identifier, result, capture_date())

    if result.is_found:
        log_line(
            f"   FOUND: {result.value('brand')} {result.value('model')} "
            f"({result.value('year')}) - {result.value('owner_name')}"
        )
        state.success_count += 1
        state.session_success += 1
    else:
        log_line(f"   NOT FOUND: {result.message}")
        state.error_count += 1
        state.session_errors += 1

    if persisted:
        log_line(f"   Saved to CSV row {row_number}")
    else:
        state.append_failures += 1
        _scraper_event(
            "error",
            phase="dataset",
            plate=identifier,
            row=row_number,
            error="append_failed",
        )

    # The row number is consumed even when the append failed.
    state.next_row += 1
    state.current_index = index + 1
    telemetry.add(
        index=index,
        identifier=identifier,
        row_number=row_number,
        result=result,
        persisted=persisted,
    )


def _build_summary(
    state: Optional[RunState],
    *,
    status: str,
    total: int,
    dataset_file: Path,
    checkpoint_file: Path,
    fatal_error: Optional[str] = None,
) -> Dict[str, Any]:
    summary: Dict[str, Any] = {
        "status": status,
        "total_plates": total,
        "dataset_file": str(dataset_file),
        "checkpoint_file": str(checkpoint_file),
        "log_file": str(get_current_log_path()),
    }
    if state is not None:
        summary.update(
            {
                "start_index": state.start_index,
                "current_index": state.current_index,
                "processed_this_session": state.processed_this_session,
                "found": state.session_success,
                "not_found": state.session_errors,
                "success_rate": state.session_success_rate(),
                "total_found": state.success_count,
                "total_not_found": state.error_count,
                "dataset_rows": state.dataset_rows,
                "append_failures": state.append_failures,
            }
        )
    if fatal_error:
        summary["fatal_error"] = fatal_error
    return summary


def _log_final_statistics(state: RunState, status: str, dataset_file: Path) -> None:
    log_line("")
    if status == STATUS_COMPLETED:
        log_line("BULK SCRAPING COMPLETED!")
    elif status == STATUS_CANCELLED:
        log_line("BULK SCRAPING STOPPED BY OPERATOR")
    else:
        log_line("BULK SCRAPING ABORTED")
    log_line("=" * 70)
    log_line("FINAL STATISTICS:")
    log_line(f"   Total Plates: {state.total}")
    log_line(f"   Processed This Session: {state.processed_this_session}")
    log_line(f"   Vehicles Found: {state.session_success}")
    log_line(f"   Not Found: {state.session_errors}")
    log_line(f"   Success Rate: {state.session_success_rate()}%")
    log_line(f"   Total CSV Rows: {state.dataset_rows}")
    if state.append_failures:
        log_line(f"   Rows Not Written: {state.append_failures}")
    log_line(f"   Output File: {dataset_file}")
    log_line("")


def run_pipeline(
    *,
    plates_file: Optional[Path] = None,
    dataset_file: Optional[Path] = None,
    checkpoint_file: Optional[Path] = None,
    session_factory: Optional[SessionFactory] = None,
    max_retries: Optional[int] = None,
    retry_delay: Optional[float] = None,
    request_delay: Optional[float] = None,
    save_interval: Optional[int] = None,
    summary_interval: Optional[int] = None,
    cancel_token: Optional[CancellationToken] = None,
    telemetry: Optional[RunTelemetry] = None,
    check_ip: bool = True,
    summary_file: Optional[Path] = None,
) -> Dict[str, Any]:
    """Process every remaining plate and return the run summary."""

    plates_file = Path(plates_file or config.PLATES_FILE)
    dataset_file = Path(dataset_file or config.DATASET_FILE)
    checkpoint_file = Path(checkpoint_file or config.CHECKPOINT_FILE)
    summary_file = Path(summary_file or config.SUMMARY_FILE)
    request_delay = config.DELAY_BETWEEN_REQUESTS if request_delay is None else request_delay
    save_every = max(1, save_interval or config.PROGRESS_SAVE_INTERVAL)
    summarize_every = max(1, summary_interval or config.PROGRESS_SUMMARY_INTERVAL)
    token = cancel_token or CancellationToken()
    telemetry = telemetry or RunTelemetry()
    session_factory = session_factory or open_session

    log_line("BULK SCRAPER - Vehicle Data Collector")
    log_line("=" * 70)

    identifiers: List[str] = load_identifiers(plates_file)
    total = len(identifiers)
    if not identifiers:
        log_line(f"[RUN][ERROR] No plates found in {plates_file}")
        return _build_summary(
            None,
            status=STATUS_NO_INPUT,
            total=0,
            dataset_file=dataset_file,
            checkpoint_file=checkpoint_file,
        )

    row_count = ensure_initialized(dataset_file)

    start_index = 0
    success_count = 0
    error_count = 0
    saved = load_checkpoint(checkpoint_file)
    if saved is not None and saved.current_index > 0:
        log_line(f"[RUN] Found previous progress at {saved.percentage}%")
        if saved.total_count and saved.total_count != total:
            log_line(
                f"[RUN][WARN] Checkpoint was saved for {saved.total_count} plates; "
                f"input now has {total}."
            )
        start_index = min(saved.current_index, total)
        success_count = saved.success_count
        error_count = saved.error_count

    state = RunState(
        total=total,
        start_index=start_index,
        next_row=row_count + 1,
        success_count=success_count,
        error_count=error_count,
    )
    _scraper_event(
        "plan",
        total=total,
        start_index=start_index,
        next_row=state.next_row,
        dataset=str(dataset_file),
    )

    log_line("")
    log_line(f"Processing {total} plates (starting from index {start_index})")
    log_line(f"Starting at CSV row number: {state.next_row}")
    log_line(f"Input: {plates_file.name} -> Output: {dataset_file.name}")
    log_line("")

    if start_index >= total:
        # The saved checkpoint is left untouched so its index never decreases.
        log_line("[RUN] All plates already processed; nothing to do.")
        return _build_summary(
            state,
            status=STATUS_COMPLETED,
            total=total,
            dataset_file=dataset_file,
            checkpoint_file=checkpoint_file,
        )

    status = STATUS_COMPLETED
    fatal_error: Optional[str] = None
    session: Optional[PageSession] = None

    try:
        session = session_factory()
        if check_ip:
            session.current_ip()
        log_line("")
        log_line("Starting plate processing...")
        log_line("")

        active = session

        def _lookup(plate: str) -> ExtractionResult:
            return lookup_identifier(active, plate)

        for index in range(start_index, total):
            if token.cancelled:
                status = STATUS_CANCELLED
                break

            plate = identifiers[index]
            log_line(
                f"[{index + 1}/{total}] ({_percent(index + 1, total)}%) "
                f"Processing: {plate} | Remaining: {total - (index + 1)}"
            )

            try:
                result = attempt_with_retries(
                    _lookup,
                    plate,
                    max_retries=max_retries,
                    delay=retry_delay,
                    cancel_token=token,
                )
            except RunCancelled:
                status = STATUS_CANCELLED
                break

            if not result.is_found and (
                result.error_code == ErrorCode.SESSION_LOST or not _session_alive(active)
            ):
                raise SessionError(
                    f"Browser session lost while processing {plate}: {result.message}"
                )

            _record_result(
                state,
                index=index,
                identifier=plate,
                result=result,
                dataset_file=dataset_file,
                telemetry=telemetry,
            )

            is_last = index == total - 1
            if (index + 1) % save_every == 0 or is_last:
                _save_progress(checkpoint_file, state)
            if (index + 1) % summarize_every == 0 or is_last:
                _log_progress_summary(state)

            if not is_last and token.wait(request_delay):
                status = STATUS_CANCELLED
                break
    except SessionError as exc:
        status = STATUS_FATAL
        fatal_error = str(exc)
        log_line(f"[RUN][FATAL] {exc}")
        _scraper_event("error", phase="run", kind="fatal", error=str(exc))
    except KeyboardInterrupt:
        status = STATUS_CANCELLED
        log_line("[RUN] Interrupted during a lookup; that plate will be retried on resume.")
    except Exception:
        _save_progress(checkpoint_file, state)
        raise
    finally:
        if session is not None:
            session.close()
            log_line("[SESSION] Browser closed")

    _save_progress(checkpoint_file, state)
    if status != STATUS_COMPLETED:
        log_line("Progress has been saved. You can resume later.")
    _log_final_statistics(state, status, dataset_file)

    summary = _build_summary(
        state,
        status=status,
        total=total,
        dataset_file=dataset_file,
        checkpoint_file=checkpoint_file,
        fatal_error=fatal_error,
    )
    telemetry_path = telemetry.finalize(summary)
    if telemetry_path is not None:
        summary["telemetry_file"] = str(telemetry_path)
    try:
        save_json_file(summary_file, summary)
    except Exception as exc:  # noqa: BLE001
        log_line(f"[RUN][WARN] Unable to write summary: {exc}")
    return summary


__all__ = ["RunState", "run_pipeline"]
