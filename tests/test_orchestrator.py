from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List

import pytest

from app.plates import config, orchestrator
from app.plates.cancellation import CancellationToken
from app.plates.checkpoint import CheckpointState, load_checkpoint, save_checkpoint
from app.plates.dataset import append_row, ensure_initialized, iter_dataset_rows
from app.plates.error_codes import ErrorCode, SessionError
from app.plates.results import ExtractionResult
from app.plates.telemetry import RunTelemetry
from tests.fakes import FakeSession, vehicle_record


def _run(session: FakeSession, **overrides: object) -> dict:
    kwargs = dict(
        session_factory=lambda: session,
        max_retries=3,
        retry_delay=0,
        request_delay=0,
        check_ip=False,
    )
    kwargs.update(overrides)
    return orchestrator.run_pipeline(**kwargs)


def _rows() -> List[dict]:
    return list(iter_dataset_rows(config.DATASET_FILE))


def test_found_and_not_found_rows_are_written(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234", "CD5678"])
    session = FakeSession({"CD5678": [ExtractionResult.not_found("No data found")]})

    summary = _run(session)

    assert summary["status"] == orchestrator.STATUS_COMPLETED
    rows = _rows()
    assert [row["Row #"] for row in rows] == ["1", "2"]
    assert rows[0]["Plate Number"] == "AB1234"
    assert rows[0]["Brand"] == "TOYOTA"
    assert rows[0]["Owner Name"] == "JUAN PEREZ"
    assert rows[1]["Plate Number"] == "CD5678"
    assert rows[1]["Vehicle Type"] == "No data found"
    assert rows[1]["Brand"] == ""
    assert rows[1]["Source Website"] == "volanteomaleta.com"

    # Retries are bounded per plate and a found plate is looked up once.
    assert session.calls.count("AB1234") == 1
    assert session.calls.count("CD5678") == 3
    assert session.closed is True

    payload = json.loads(config.CHECKPOINT_FILE.read_text(encoding="utf-8"))
    assert payload["currentIndex"] == 2
    assert payload["totalPlates"] == 2
    assert payload["successCount"] == 1
    assert payload["errorCount"] == 1
    assert payload["percentage"] == "100.00"

    assert summary["found"] == 1
    assert summary["not_found"] == 1
    assert summary["success_rate"] == "50.0"
    assert json.loads(config.SUMMARY_FILE.read_text(encoding="utf-8"))["status"] == "completed"


def test_header_created_when_dataset_absent(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234"])
    assert not config.DATASET_FILE.exists()

    _run(FakeSession())

    lines = config.DATASET_FILE.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("Row #,Plate Number,Vehicle Type")
    assert lines[1].startswith('1,"AB1234"')


def test_resume_continues_index_and_row_numbers(write_plates: Callable[[List[str]], Path]) -> None:
    plates = [f"P{index}" for index in range(8)]
    write_plates(plates)
    ensure_initialized(config.DATASET_FILE)
    for index in range(5):
        append_row(
            config.DATASET_FILE,
            index + 1,
            plates[index],
            ExtractionResult.found(vehicle_record(plates[index])),
            "2024-01-01",
        )
    save_checkpoint(
        config.CHECKPOINT_FILE,
        CheckpointState(current_index=5, total_count=8, success_count=4, error_count=1),
    )
    session = FakeSession()

    summary = _run(session)

    assert session.calls == ["P5", "P6", "P7"]
    rows = _rows()
    assert [int(row["Row #"]) for row in rows] == list(range(1, 9))
    assert rows[5]["Plate Number"] == "P5"
    assert summary["start_index"] == 5
    assert summary["processed_this_session"] == 3

    state = load_checkpoint(config.CHECKPOINT_FILE)
    assert state is not None
    assert state.current_index == 8
    assert state.success_count == 7
    assert state.error_count == 1


def test_row_numbers_follow_file_not_checkpoint(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234", "CD5678"])
    ensure_initialized(config.DATASET_FILE)
    for row_number in (1, 2, 3):
        append_row(config.DATASET_FILE, row_number, "OLD", None, "2024-01-01")

    _run(FakeSession())

    assert [row["Row #"] for row in _rows()] == ["1", "2", "3", "4", "5"]


def test_checkpoint_is_monotonic(
    monkeypatch: pytest.MonkeyPatch, write_plates: Callable[[List[str]], Path]
) -> None:
    write_plates([f"P{index}" for index in range(5)])
    saved: List[int] = []
    real_save = orchestrator.save_checkpoint

    def _record(path: Path, state: CheckpointState) -> bool:
        saved.append(state.current_index)
        return real_save(path, state)

    monkeypatch.setattr(orchestrator, "save_checkpoint", _record)

    _run(FakeSession(), save_interval=2)

    assert saved == sorted(saved)
    assert saved[0] == 2
    assert saved[-1] == 5


def test_empty_input_does_not_open_session(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates([])
    opened: List[int] = []

    def _factory() -> FakeSession:
        opened.append(1)
        return FakeSession()

    summary = orchestrator.run_pipeline(session_factory=_factory, check_ip=False)

    assert summary["status"] == orchestrator.STATUS_NO_INPUT
    assert opened == []


def test_already_complete_does_not_open_session(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234", "CD5678"])
    save_checkpoint(config.CHECKPOINT_FILE, CheckpointState(current_index=2, total_count=2))

    def _factory() -> FakeSession:
        raise AssertionError("browser should not start")

    summary = orchestrator.run_pipeline(session_factory=_factory, check_ip=False)

    assert summary["status"] == orchestrator.STATUS_COMPLETED
    assert summary["processed_this_session"] == 0


def test_session_start_failure_is_fatal(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234"])

    def _factory() -> FakeSession:
        raise SessionError("Browser launch failed")

    summary = orchestrator.run_pipeline(session_factory=_factory, check_ip=False)

    assert summary["status"] == orchestrator.STATUS_FATAL
    assert "Browser launch failed" in summary["fatal_error"]
    assert _rows() == []


def test_lost_session_stops_without_writing_row(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234", "CD5678", "EF9012"])
    session = FakeSession(
        {
            "CD5678": [
                ExtractionResult.failed("browser has been closed", error_code=ErrorCode.SESSION_LOST)
            ]
        }
    )

    summary = _run(session)

    assert summary["status"] == orchestrator.STATUS_FATAL
    assert [row["Plate Number"] for row in _rows()] == ["AB1234"]
    assert session.calls.count("CD5678") == 3
    assert "EF9012" not in session.calls
    assert session.closed is True
    state = load_checkpoint(config.CHECKPOINT_FILE)
    assert state is not None
    assert state.current_index == 1


def test_cancellation_stops_after_current_plate(write_plates: Callable[[List[str]], Path]) -> None:
    plates = [f"P{index}" for index in range(5)]
    write_plates(plates)
    token = CancellationToken()

    def _cancel_on(identifier: str) -> None:
        if identifier == "P1":
            token.cancel()

    summary = _run(FakeSession(on_submit=_cancel_on), cancel_token=token)

    assert summary["status"] == orchestrator.STATUS_CANCELLED
    assert [row["Plate Number"] for row in _rows()] == ["P0", "P1"]
    state = load_checkpoint(config.CHECKPOINT_FILE)
    assert state is not None
    assert state.current_index == 2

    resumed = FakeSession()
    second = _run(resumed)

    assert second["status"] == orchestrator.STATUS_COMPLETED
    assert resumed.calls == ["P2", "P3", "P4"]
    assert [int(row["Row #"]) for row in _rows()] == [1, 2, 3, 4, 5]


def test_cancellation_during_retry_skips_plate(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234", "CD5678"])
    token = CancellationToken()

    def _cancel_on(identifier: str) -> None:
        if identifier == "CD5678":
            token.cancel()

    session = FakeSession(
        {"CD5678": [ExtractionResult.not_found("No data found")]}, on_submit=_cancel_on
    )

    summary = _run(session, cancel_token=token)

    assert summary["status"] == orchestrator.STATUS_CANCELLED
    assert [row["Plate Number"] for row in _rows()] == ["AB1234"]
    assert session.calls.count("CD5678") == 1


def test_append_failure_still_advances(
    monkeypatch: pytest.MonkeyPatch, write_plates: Callable[[List[str]], Path]
) -> None:
    write_plates(["AB1234", "CD5678"])
    real_append = orchestrator.append_row
    attempts: List[int] = []

    def _flaky_append(path, row_number, identifier, result, captured_at):  # noqa: ANN001
        attempts.append(row_number)
        if row_number == 1:
            return False
        return real_append(path, row_number, identifier, result, captured_at)

    monkeypatch.setattr(orchestrator, "append_row", _flaky_append)

    summary = _run(FakeSession())

    assert attempts == [1, 2]
    assert summary["append_failures"] == 1
    assert summary["current_index"] == 2
    assert [row["Row #"] for row in _rows()] == ["2"]


def test_ip_check_runs_once_when_enabled(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates(["AB1234"])
    session = FakeSession()

    _run(session, check_ip=True)

    assert session.ip_checks == 1


def test_telemetry_records_each_plate(
    data_dir: Path, write_plates: Callable[[List[str]], Path]
) -> None:
    write_plates(["AB1234", "CD5678"])
    telemetry = RunTelemetry(runs_dir=data_dir / "runs")
    session = FakeSession({"CD5678": [ExtractionResult.not_found("No data found")]})

    summary = _run(session, telemetry=telemetry)

    entries = [
        json.loads(line)
        for line in telemetry.entries_path.read_text(encoding="utf-8").splitlines()
    ]
    assert [entry["plate"] for entry in entries] == ["AB1234", "CD5678"]
    assert entries[1]["attempts"] == 3
    assert entries[1]["error_code"] == ErrorCode.NO_DATA
    run_payload = json.loads(Path(summary["telemetry_file"]).read_text(encoding="utf-8"))
    assert run_payload["summary"] == {"count_found": 1, "count_not_found": 1}
    assert run_payload["status"] == "completed"


def test_blank_dataset_file_keeps_row_numbers_unique(
    write_plates: Callable[[List[str]], Path]
) -> None:
    config.DATASET_FILE.parent.mkdir(parents=True, exist_ok=True)
    config.DATASET_FILE.write_text("\n", encoding="utf-8")
    write_plates(["AB1234", "CD5678"])
    _run(FakeSession())

    write_plates(["AB1234", "CD5678", "EF9012"])
    _run(FakeSession())

    assert [row["Row #"] for row in _rows()] == ["1", "2", "3"]


def test_shorter_input_leaves_checkpoint_index(write_plates: Callable[[List[str]], Path]) -> None:
    save_checkpoint(
        config.CHECKPOINT_FILE,
        CheckpointState(current_index=5, total_count=5, success_count=5),
    )
    write_plates(["AB1234", "CD5678", "EF9012"])

    summary = _run(FakeSession())

    assert summary["status"] == orchestrator.STATUS_COMPLETED
    state = load_checkpoint(config.CHECKPOINT_FILE)
    assert state is not None
    assert state.current_index == 5
    assert state.total_count == 5


class RecordingToken(CancellationToken):
    def __init__(self, cancel_on_wait: int = 0) -> None:
        super().__init__()
        self.waits: List[float] = []
        self.cancel_on_wait = cancel_on_wait

    def wait(self, seconds: float) -> bool:
        self.waits.append(seconds)
        if self.cancel_on_wait and len(self.waits) >= self.cancel_on_wait:
            self.cancel()
        return self.cancelled


def test_progress_summary_cadence(
    monkeypatch: pytest.MonkeyPatch, write_plates: Callable[[List[str]], Path]
) -> None:
    write_plates([f"P{index}" for index in range(5)])
    summarized: List[int] = []
    monkeypatch.setattr(
        orchestrator,
        "_log_progress_summary",
        lambda state: summarized.append(state.current_index),
    )

    _run(FakeSession(), summary_interval=2)

    assert summarized == [2, 4, 5]


def test_request_delay_skipped_after_last_plate(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates([f"P{index}" for index in range(5)])
    token = RecordingToken()

    summary = _run(FakeSession(), request_delay=0.25, cancel_token=token)

    assert summary["status"] == orchestrator.STATUS_COMPLETED
    assert token.waits == [0.25, 0.25, 0.25, 0.25]


def test_cancellation_during_request_delay(write_plates: Callable[[List[str]], Path]) -> None:
    write_plates([f"P{index}" for index in range(5)])
    token = RecordingToken(cancel_on_wait=2)
    session = FakeSession()

    summary = _run(session, request_delay=0.25, cancel_token=token)

    assert summary["status"] == orchestrator.STATUS_CANCELLED
    assert session.calls == ["P0", "P1"]
    assert [row["Plate Number"] for row in _rows()] == ["P0", "P1"]
    state = load_checkpoint(config.CHECKPOINT_FILE)
    assert state is not None
    assert state.current_index == 2
