import pytest

from app.plates import config
from app.plates.config_validation import validate_runtime_config


def test_default_config_is_valid() -> None:
    validate_runtime_config("tests")


def test_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "BROWSER_BACKEND", "lynx")
    with pytest.raises(ValueError):
        validate_runtime_config("cli")


def test_base_url_must_be_http(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "BASE_URL", "file:///tmp/index.html")
    with pytest.raises(ValueError):
        validate_runtime_config("cli")


def test_min_free_mb_negative(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "MIN_FREE_MB", -5)
    with pytest.raises(ValueError):
        validate_runtime_config("health")


def test_negative_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "DELAY_BETWEEN_REQUESTS", -0.5)
    with pytest.raises(ValueError):
        validate_runtime_config("cli")


def test_invalid_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "RESULT_TIMEOUT_SECONDS", 0)
    with pytest.raises(ValueError):
        validate_runtime_config("cli")


def test_counters_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "MAX_RETRIES", 0)
    monkeypatch.setattr(config, "PROGRESS_SAVE_INTERVAL", -3)
    monkeypatch.setattr(config, "PROGRESS_SUMMARY_INTERVAL", 0)

    validate_runtime_config("tests")

    assert config.MAX_RETRIES == 1
    assert config.PROGRESS_SAVE_INTERVAL == 1
    assert config.PROGRESS_SUMMARY_INTERVAL == 1


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", False),
        ("   ", False),
        ("no", False),
        ("off", False),
        ("0", False),
        ("1", True),
        ("TRUE", True),
        ("yes", True),
        ("on", True),
    ],
)
def test_env_flag_parsing(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("PLATES_HEADLESS", raw)

    assert config._env_flag("PLATES_HEADLESS", False) is expected


def test_env_flag_unset_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PLATES_HEADLESS", raising=False)

    assert config._env_flag("PLATES_HEADLESS", True) is True
