"""Browser page session shared by the Playwright and Selenium drivers.

A session owns one long-lived page against the lookup site. Each plate goes
through the same state machine::

    NAVIGATE -> (CHALLENGE_WAIT)? -> SUBMIT -> WAIT_RESULT -> FOUND | NOT_FOUND | ERROR

Backends only implement the small set of page primitives declared abstract on
:class:`PageSession`; navigation order, challenge handling and result mapping
live here so they behave identically whichever browser engine is used.
"""
from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Optional

from . import config
from .error_codes import ErrorCode, LookupStepError, SessionError
from .extractor import PLATE_SITE_SELECTORS, PlateSiteSelectors, parse_results_html
from .logging_utils import _scraper_event
from .results import ExtractionResult
from .utils import log_line

STEALTH_INIT_SCRIPT = "Object.defineProperty(navigator, 'webdriver', { get: () => false })"

AUTOMATION_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--window-position=0,0",
    f"--window-size={config.WINDOW_SIZE[0]},{config.WINDOW_SIZE[1]}",
    "--disable-blink-features=AutomationControlled",
]

_IP_PATTERN = re.compile(r"\d{1,3}(?:\.\d{1,3}){3}|[0-9a-fA-F:]{3,}:[0-9a-fA-F:]+")


def parse_ip_payload(text: Optional[str]) -> Optional[str]:
    """Extract the origin address from an IP echo service response body."""

    raw = (text or "").strip()
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("origin"):
        return str(payload["origin"]).strip()
    match = _IP_PATTERN.search(raw)
    return match.group(0) if match else None


class PageSession(ABC):
    """Lookup capability: navigate home, submit a plate, read the result."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        selectors: PlateSiteSelectors = PLATE_SITE_SELECTORS,
    ) -> None:
        self.base_url = (base_url or config.BASE_URL).strip()
        self.selectors = selectors

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _goto(self, url: str, timeout_seconds: float) -> None:
        """Load ``url`` until DOM content is ready; raise ``LookupStepError``."""

    @abstractmethod
    def _has_element(self, selector: str) -> bool:
        ...

    @abstractmethod
    def _pause(self, seconds: float) -> None:
        ...

    @abstractmethod
    def _type_query(self, identifier: str, timeout_seconds: float) -> None:
        """Clear the query input, type ``identifier`` and click submit."""

    @abstractmethod
    def _wait_for_html(self, selector: str, timeout_seconds: float) -> Optional[str]:
        """Return the outer HTML of ``selector`` or ``None`` on timeout."""

    @abstractmethod
    def _text_of(self, selector: str) -> Optional[str]:
        ...

    @abstractmethod
    def is_alive(self) -> bool:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    # ------------------------------------------------------------------
    # Lookup steps
    # ------------------------------------------------------------------

    def challenge_present(self) -> bool:
        return any(self._has_element(marker) for marker in config.CHALLENGE_MARKERS)

    def wait_for_challenge(self) -> bool:
        """Give a detected bot challenge two bounded chances to clear.

        Returns ``True`` when no challenge remains. The caller proceeds either
        way.
        """

        try:
            if not self.challenge_present():
                return True
            log_line("   Challenge page detected, waiting...")
            _scraper_event("challenge", step="detected", url=self.base_url)
            self._pause(config.CHALLENGE_WAIT_SECONDS)
            if self.challenge_present():
                self._pause(config.CHALLENGE_RECHECK_WAIT_SECONDS)
            cleared = not self.challenge_present()
        except LookupStepError:
            raise
        except Exception as exc:  # noqa: BLE001
            log_line(f"   Challenge check skipped: {exc}")
            return False

        if cleared:
            log_line("   Challenge check passed")
        else:
            log_line("   Challenge still present; continuing anyway")
            _scraper_event(
                "challenge",
                step="not_cleared",
                error_code=ErrorCode.CHALLENGE_NOT_CLEARED,
            )
        return cleared

    def navigate_home(self) -> None:
        self._goto(self.base_url, config.NAV_TIMEOUT_SECONDS)
        self.wait_for_challenge()
        self._pause(config.POST_NAV_SETTLE_SECONDS)

    def submit_query(self, identifier: str) -> None:
        log_line(f"   Entering plate: {identifier}")
        self._type_query(identifier, config.INPUT_TIMEOUT_SECONDS)
        self._pause(config.POST_SUBMIT_SETTLE_SECONDS)

    def extract_result(self, timeout_seconds: Optional[float] = None) -> ExtractionResult:
        timeout = timeout_seconds if timeout_seconds is not None else config.RESULT_TIMEOUT_SECONDS
        html = self._wait_for_html(self.selectors.results_container, timeout)
        if html is None:
            log_line("   No results table found")
            return ExtractionResult.not_found(
                "No results table found", error_code=ErrorCode.NO_RESULTS
            )
        record = parse_results_html(html, selectors=self.selectors)
        if record is None:
            return ExtractionResult.not_found("No data found", error_code=ErrorCode.NO_DATA)
        return ExtractionResult.found(record)

    def current_ip(self) -> Optional[str]:
        """Best-effort lookup of the public address the site sees."""

        try:
            log_line("[SESSION] Checking current IP address...")
            self._goto(config.IP_CHECK_URL, config.IP_CHECK_TIMEOUT_SECONDS)
            address = parse_ip_payload(self._text_of("pre") or self._text_of("body"))
        except Exception as exc:  # noqa: BLE001
            log_line(f"[SESSION][WARN] Error checking IP: {exc}")
            return None
        if address:
            log_line(f"[SESSION] Current IP address: {address}")
        return address


def lookup_identifier(
    session: PageSession,
    identifier: str,
    *,
    result_timeout: Optional[float] = None,
) -> ExtractionResult:
    """Run one pass of the lookup state machine; never raises."""

    step = "navigate"
    try:
        session.navigate_home()
        step = "submit"
        session.submit_query(identifier)
        step = "wait_result"
        return session.extract_result(result_timeout)
    except LookupStepError as exc:
        log_line(f"   Error: {exc}")
        _scraper_event(
            "error",
            phase="lookup",
            step=step,
            plate=identifier,
            error_code=exc.code,
            error=str(exc),
        )
        return ExtractionResult.failed(str(exc), error_code=exc.code)
    except Exception as exc:  # noqa: BLE001
        try:
            code = ErrorCode.INTERNAL if session.is_alive() else ErrorCode.SESSION_LOST
        except Exception:  # noqa: BLE001
            code = ErrorCode.SESSION_LOST
        log_line(f"   Error: {exc}")
        _scraper_event(
            "error",
            phase="lookup",
            step=step,
            plate=identifier,
            error_code=code,
            error=str(exc),
        )
        return ExtractionResult.failed(str(exc), error_code=code)


def open_session(
    backend: Optional[str] = None,
    *,
    headless: Optional[bool] = None,
    base_url: Optional[str] = None,
) -> PageSession:
    """Start a browser session for ``backend``; raise ``SessionError`` on failure."""

    name = (backend or config.BROWSER_BACKEND).strip().lower()
    if name not in config.BROWSER_BACKENDS:
        raise SessionError(f"Unknown browser backend {name!r}")
    use_headless = config.HEADLESS if headless is None else bool(headless)

    if config.is_selenium_backend(name):
        from .selenium_session import SeleniumPageSession

        return SeleniumPageSession.open(headless=use_headless, base_url=base_url)

    from .playwright_session import PlaywrightPageSession

    return PlaywrightPageSession.open(headless=use_headless, base_url=base_url)


__all__ = [
    "PageSession",
    "STEALTH_INIT_SCRIPT",
    "AUTOMATION_ARGS",
    "lookup_identifier",
    "open_session",
    "parse_ip_payload",
]
