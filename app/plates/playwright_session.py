"""Playwright-backed page session (default browser backend)."""
from __future__ import annotations

from typing import Any, Optional

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Error as PWError,
    Page,
    TimeoutError as PWTimeout,
    sync_playwright,
)

from . import config
from .error_codes import ErrorCode, LookupStepError, SessionError
from .extractor import PLATE_SITE_SELECTORS, PlateSiteSelectors
from .logging_utils import _scraper_event
from .session import AUTOMATION_ARGS, STEALTH_INIT_SCRIPT, PageSession
from .utils import log_line

TYPING_DELAY_MS = 50


def _is_target_closed_error(exc: Exception) -> bool:
    """Return ``True`` if *exc* indicates the Playwright target is gone."""

    message = str(exc)
    return any(
        marker in message
        for marker in (
            "Target closed",
            "Target crashed",
            "has been closed",
            "Execution context was destroyed",
        )
    )


class PlaywrightPageSession(PageSession):
    """Chromium page driven through Playwright's sync API."""

    def __init__(
        self,
        *,
        headless: bool = False,
        base_url: Optional[str] = None,
        selectors: PlateSiteSelectors = PLATE_SITE_SELECTORS,
    ) -> None:
        super().__init__(base_url=base_url, selectors=selectors)
        self.headless = headless
        self._playwright: Any = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    @classmethod
    def open(cls, **kwargs: Any) -> "PlaywrightPageSession":
        session = cls(**kwargs)
        try:
            session._start()
        except Exception as exc:  # noqa: BLE001
            session.close()
            raise SessionError(f"Could not start Playwright browser: {exc}") from exc
        return session

    def _start(self) -> None:
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.headless,
            args=AUTOMATION_ARGS,
        )
        self._context = self._browser.new_context(
            user_agent=config.USER_AGENT,
            locale=config.BROWSER_LOCALE,
            extra_http_headers=config.COMMON_HEADERS,
            viewport={"width": config.WINDOW_SIZE[0], "height": config.WINDOW_SIZE[1]},
        )
        self._context.add_init_script(STEALTH_INIT_SCRIPT)
        self.page = self._context.new_page()
        log_line("[SESSION] Browser initialised with stealth settings (playwright)")
        _scraper_event("session", backend="playwright", headless=self.headless)

    def _require_page(self) -> Page:
        if self.page is None or self.page.is_closed():
            raise LookupStepError(ErrorCode.SESSION_LOST, "Browser page is closed")
        return self.page

    def _goto(self, url: str, timeout_seconds: float) -> None:
        page = self._require_page()
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=timeout_seconds * 1000)
        except PWTimeout as exc:
            raise LookupStepError(
                ErrorCode.NAVIGATION_TIMEOUT, f"Navigation to {url} timed out: {exc}"
            ) from exc
        except PWError as exc:
            code = ErrorCode.SESSION_LOST if _is_target_closed_error(exc) else ErrorCode.INTERNAL
            raise LookupStepError(code, f"Navigation to {url} failed: {exc}") from exc

    def _has_element(self, selector: str) -> bool:
        try:
            return self._require_page().query_selector(selector) is not None
        except PWError:
            return False

    def _pause(self, seconds: float) -> None:
        if seconds is None or seconds <= 0:
            return
        page = self._require_page()
        page.wait_for_timeout(int(seconds * 1000))

    def _type_query(self, identifier: str, timeout_seconds: float) -> None:
        page = self._require_page()
        try:
            page.wait_for_selector(
                self.selectors.query_input_wait, timeout=timeout_seconds * 1000
            )
        except PWTimeout as exc:
            raise LookupStepError(
                ErrorCode.ELEMENT_MISSING, f"Query input did not appear: {exc}"
            ) from exc

        field = page.locator(self.selectors.query_input).first
        if not field.count():
            raise LookupStepError(ErrorCode.ELEMENT_MISSING, "Could not find plate input field")
        try:
            field.click(click_count=3)
            field.fill("")
            field.press_sequentially(identifier, delay=TYPING_DELAY_MS)
            page.click(self.selectors.submit_button, timeout=timeout_seconds * 1000)
        except PWTimeout as exc:
            raise LookupStepError(
                ErrorCode.ELEMENT_MISSING, f"Could not submit query: {exc}"
            ) from exc

    def _wait_for_html(self, selector: str, timeout_seconds: float) -> Optional[str]:
        page = self._require_page()
        try:
            handle = page.wait_for_selector(selector, timeout=timeout_seconds * 1000)
        except PWTimeout:
            return None
        if handle is None:
            return None
        return handle.evaluate("el => el.outerHTML")

    def _text_of(self, selector: str) -> Optional[str]:
        try:
            return self._require_page().text_content(selector, timeout=2000)
        except PWError:
            return None

    def is_alive(self) -> bool:
        if self.page is None or self.page.is_closed():
            return False
        return self._browser is not None and self._browser.is_connected()

    def close(self) -> None:
        for label, closer in (
            ("context", self._context),
            ("browser", self._browser),
        ):
            if closer is None:
                continue
            try:
                closer.close()
            except Exception as exc:  # noqa: BLE001
                log_line(f"[SESSION][WARN] Error closing {label}: {exc}")
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as exc:  # noqa: BLE001
                log_line(f"[SESSION][WARN] Error stopping Playwright: {exc}")
        self._context = None
        self._browser = None
        self._playwright = None
        self.page = None


__all__ = ["PlaywrightPageSession"]
