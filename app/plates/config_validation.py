from __future__ import annotations

from typing import Literal

from . import config
from .logging_utils import _scraper_event
from .utils import log_line

Entrypoint = Literal["cli", "health", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _scraper_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def _clamp_minimum(field_name: str, minimum: int, *, entrypoint: Entrypoint) -> None:
    value = getattr(config, field_name)
    if value >= minimum:
        return
    _scraper_event(
        "state",
        phase="config",
        context="runtime_validation",
        kind="config_adjustment",
        field=field_name,
        value=value,
        adjusted=minimum,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {field_name} < {minimum}; clamping to {minimum}.")
    setattr(config, field_name, minimum)


def validate_runtime_config(entrypoint: Entrypoint) -> None:
    """Validate runtime configuration for the given entrypoint.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Out-of-range counters (retries, save/summary intervals) are clamped and
    logged instead.
    """

    if config.BROWSER_BACKEND not in config.BROWSER_BACKENDS:
        _raise_config_error(
            f"Unknown browser backend {config.BROWSER_BACKEND!r}; "
            f"expected one of {', '.join(config.BROWSER_BACKENDS)}.",
            entrypoint=entrypoint,
            error="unknown_browser_backend",
        )

    if not config.BASE_URL.lower().startswith(("http://", "https://")):
        _raise_config_error(
            "PLATES_BASE_URL must be an http(s) URL.",
            entrypoint=entrypoint,
            error="invalid_base_url",
        )

    if config.MIN_FREE_MB < 0:
        _raise_config_error(
            "PLATES_MIN_FREE_MB must be non-negative.",
            entrypoint=entrypoint,
            error="invalid_min_free_mb",
        )

    _clamp_minimum("MAX_RETRIES", 1, entrypoint=entrypoint)
    _clamp_minimum("PROGRESS_SAVE_INTERVAL", 1, entrypoint=entrypoint)
    _clamp_minimum("PROGRESS_SUMMARY_INTERVAL", 1, entrypoint=entrypoint)

    delay_fields = [
        ("DELAY_BETWEEN_REQUESTS", config.DELAY_BETWEEN_REQUESTS),
        ("RETRY_DELAY_SECONDS", config.RETRY_DELAY_SECONDS),
        ("CHALLENGE_WAIT_SECONDS", config.CHALLENGE_WAIT_SECONDS),
        ("CHALLENGE_RECHECK_WAIT_SECONDS", config.CHALLENGE_RECHECK_WAIT_SECONDS),
    ]
    for field_name, value in delay_fields:
        if value < 0:
            _raise_config_error(
                f"{field_name} must be non-negative.",
                entrypoint=entrypoint,
                error="invalid_delay",
            )

    timeout_fields = [
        ("NAV_TIMEOUT_SECONDS", config.NAV_TIMEOUT_SECONDS),
        ("INPUT_TIMEOUT_SECONDS", config.INPUT_TIMEOUT_SECONDS),
        ("RESULT_TIMEOUT_SECONDS", config.RESULT_TIMEOUT_SECONDS),
    ]
    for field_name, value in timeout_fields:
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_timeout",
            )


__all__ = ["validate_runtime_config", "Entrypoint"]
