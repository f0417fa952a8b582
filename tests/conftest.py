from pathlib import Path
from typing import Callable, List

import pytest

from app.plates import config, utils


def _configure_temp_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setattr(config, "DATA_DIR", data_dir)
    monkeypatch.setattr(config, "LOG_DIR", data_dir / "logs")
    monkeypatch.setattr(config, "LOG_FILE", data_dir / "logs" / "latest.log")
    monkeypatch.setattr(config, "PLATES_FILE", data_dir / "plates" / "plates.csv")
    monkeypatch.setattr(config, "DATASET_FILE", data_dir / "results" / "vehicle-data.csv")
    monkeypatch.setattr(config, "CHECKPOINT_FILE", data_dir / "progress" / "scraping-progress.json")
    monkeypatch.setattr(config, "SUMMARY_FILE", data_dir / "last_summary.json")
    monkeypatch.setattr(config, "RUNS_DIR", data_dir / "runs")
    monkeypatch.setattr(config, "SQL_OUTPUT_FILE", data_dir / "update-leads.sql")
    return data_dir


@pytest.fixture(autouse=True)
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    path = _configure_temp_paths(tmp_path, monkeypatch)
    utils._configure_logger(path / "logs" / "test.log")
    yield path
    for handler in list(utils.LOGGER.handlers):
        utils.LOGGER.removeHandler(handler)
        handler.close()
    utils._LOGGER_INITIALISED = False


@pytest.fixture
def write_plates(data_dir: Path) -> Callable[[List[str]], Path]:
    def _write(plates: List[str]) -> Path:
        path = config.PLATES_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("plate\n" + "\n".join(plates) + "\n", encoding="utf-8")
        return path

    return _write
