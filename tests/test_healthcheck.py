from pathlib import Path

import pytest

from app.plates import config, healthcheck


def test_run_health_checks_happy_path(
    monkeypatch: pytest.MonkeyPatch, write_plates
) -> None:
    monkeypatch.setattr(config, "MIN_FREE_MB", 0)
    write_plates(["AB1234", "CD5678"])

    result = healthcheck.run_health_checks(entrypoint="health")

    assert result.ok is True
    assert result.checks["config"]["ok"] is True
    assert result.checks["filesystem"]["ok"] is True
    assert result.checks["input"]["plates"] == 2


def test_run_health_checks_handles_invalid_config(monkeypatch: pytest.MonkeyPatch, write_plates) -> None:
    monkeypatch.setattr(config, "MIN_FREE_MB", -1)
    write_plates(["AB1234"])

    result = healthcheck.run_health_checks(entrypoint="cli")

    assert result.ok is False
    assert result.checks["config"]["ok"] is False


def test_run_health_checks_missing_input(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "MIN_FREE_MB", 0)

    result = healthcheck.run_health_checks(plates_file=tmp_path / "absent.csv")

    assert result.ok is False
    assert result.checks["input"]["ok"] is False
    assert result.checks["input"]["plates"] == 0
