"""Configuration constants for the plate lookup scraper."""
from __future__ import annotations

import os
from pathlib import Path

DATA_DIR: Path = Path(os.getenv("PLATES_DATA_DIR", "data"))
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
PLATES_FILE: Path = Path(
    os.getenv("PLATES_INPUT_FILE", str(DATA_DIR / "plates" / "plates.csv"))
)
DATASET_FILE: Path = Path(
    os.getenv("PLATES_DATASET_FILE", str(DATA_DIR / "results" / "vehicle-data.csv"))
)
CHECKPOINT_FILE: Path = Path(
    os.getenv("PLATES_CHECKPOINT_FILE", str(DATA_DIR / "progress" / "scraping-progress.json"))
)
SUMMARY_FILE: Path = DATA_DIR / "last_summary.json"
RUNS_DIR: Path = DATA_DIR / "runs"
SQL_OUTPUT_FILE: Path = DATA_DIR / "update-leads.sql"

BASE_URL: str = os.getenv("PLATES_BASE_URL", "https://www.volanteomaleta.com/")
IP_CHECK_URL: str = os.getenv("PLATES_IP_CHECK_URL", "https://httpbin.org/ip")
SOURCE_LABEL: str = os.getenv("PLATES_SOURCE_LABEL", "volanteomaleta.com")

# Pacing (seconds)
DELAY_BETWEEN_REQUESTS: float = float(os.getenv("PLATES_DELAY_BETWEEN_REQUESTS", "0.5"))
RETRY_DELAY_SECONDS: float = float(os.getenv("PLATES_RETRY_DELAY_SECONDS", "1.0"))
MAX_RETRIES: int = int(os.getenv("PLATES_MAX_RETRIES", "3"))
PROGRESS_SAVE_INTERVAL: int = int(os.getenv("PLATES_PROGRESS_SAVE_INTERVAL", "10"))
PROGRESS_SUMMARY_INTERVAL: int = int(os.getenv("PLATES_PROGRESS_SUMMARY_INTERVAL", "100"))


def _parse_timeout_seconds(env_var: str, default: int, *, minimum: int = 1) -> int:
    """Parse a timeout value in seconds from the environment with bounds."""

    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(env_var: str, default: bool) -> bool:
    """Read a boolean flag; unset or blank falls back to ``default``."""

    raw = os.getenv(env_var, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


# Browser timeouts (seconds)
NAV_TIMEOUT_SECONDS: int = _parse_timeout_seconds("PLATES_NAV_TIMEOUT_SECONDS", 30)
INPUT_TIMEOUT_SECONDS: int = _parse_timeout_seconds("PLATES_INPUT_TIMEOUT_SECONDS", 15)
RESULT_TIMEOUT_SECONDS: int = _parse_timeout_seconds("PLATES_RESULT_TIMEOUT_SECONDS", 8)
IP_CHECK_TIMEOUT_SECONDS: int = _parse_timeout_seconds("PLATES_IP_CHECK_TIMEOUT_SECONDS", 10)

# Short settle pauses (seconds) after navigation and after submitting a query
POST_NAV_SETTLE_SECONDS: float = float(os.getenv("PLATES_POST_NAV_SETTLE_SECONDS", "2.0"))
POST_SUBMIT_SETTLE_SECONDS: float = float(os.getenv("PLATES_POST_SUBMIT_SETTLE_SECONDS", "2.0"))

# Two-stage wait applied when a bot challenge page is detected
CHALLENGE_WAIT_SECONDS: float = float(os.getenv("PLATES_CHALLENGE_WAIT_SECONDS", "10"))
CHALLENGE_RECHECK_WAIT_SECONDS: float = float(
    os.getenv("PLATES_CHALLENGE_RECHECK_WAIT_SECONDS", "10")
)
CHALLENGE_MARKERS: tuple[str, ...] = (
    "div.cf-browser-verification",
    "#cf-wrapper",
    "div[class*='cloudflare']",
)

BROWSER_BACKEND: str = os.getenv("PLATES_BROWSER_BACKEND", "playwright").strip().lower() or "playwright"
HEADLESS: bool = _env_flag("PLATES_HEADLESS", False)
CHROME_BINARY: str = os.getenv("PLATES_CHROME_BINARY", "")
WINDOW_SIZE: tuple[int, int] = (1024, 768)

USER_AGENT: str = os.getenv(
    "PLATES_USER_AGENT",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)
BROWSER_LOCALE: str = os.getenv("PLATES_BROWSER_LOCALE", "es-CL")

COMMON_HEADERS: dict[str, str] = {
    "Accept-Language": "es-CL,es;q=0.9,en;q=0.8",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
}

MIN_FREE_MB: int = int(os.getenv("PLATES_MIN_FREE_MB", "50"))

BROWSER_BACKENDS = ("playwright", "selenium")


def is_selenium_backend(backend: str | None = None) -> bool:
    """Return ``True`` when the Selenium/Chrome driver should be used."""

    return str(backend or BROWSER_BACKEND).strip().lower() == "selenium"
