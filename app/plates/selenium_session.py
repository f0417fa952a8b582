"""Selenium/Chrome page session, selected with ``PLATES_BROWSER_BACKEND=selenium``."""
from __future__ import annotations

import time
from typing import Any, Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from . import config
from .error_codes import ErrorCode, LookupStepError, SessionError
from .extractor import PLATE_SITE_SELECTORS, PlateSiteSelectors
from .logging_utils import _scraper_event
from .session import AUTOMATION_ARGS, STEALTH_INIT_SCRIPT, PageSession
from .utils import log_line


def make_driver(*, headless: bool) -> WebDriver:
    """Instantiate a Chrome WebDriver with automation fingerprints suppressed."""

    chrome_options = Options()
    if config.CHROME_BINARY:
        chrome_options.binary_location = config.CHROME_BINARY
    if headless:
        chrome_options.add_argument("--headless=new")
    for arg in AUTOMATION_ARGS:
        chrome_options.add_argument(arg)
    chrome_options.add_argument("--disable-dev-shm-usage")
    chrome_options.add_argument(f"--user-agent={config.USER_AGENT}")
    chrome_options.add_argument(f"--lang={config.BROWSER_LOCALE}")
    chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])
    chrome_options.add_experimental_option("useAutomationExtension", False)
    chrome_options.page_load_strategy = "eager"
    driver = webdriver.Chrome(options=chrome_options)
    driver.execute_cdp_cmd(
        "Page.addScriptToEvaluateOnNewDocument", {"source": STEALTH_INIT_SCRIPT}
    )
    driver.execute_cdp_cmd("Network.enable", {})
    driver.execute_cdp_cmd("Network.setExtraHTTPHeaders", {"headers": config.COMMON_HEADERS})
    return driver


class SeleniumPageSession(PageSession):
    def __init__(
        self,
        *,
        headless: bool = False,
        base_url: Optional[str] = None,
        selectors: PlateSiteSelectors = PLATE_SITE_SELECTORS,
    ) -> None:
        super().__init__(base_url=base_url, selectors=selectors)
        self.headless = headless
        self.driver: Optional[WebDriver] = None

    @classmethod
    def open(cls, **kwargs: Any) -> "SeleniumPageSession":
        session = cls(**kwargs)
        try:
            session.driver = make_driver(headless=session.headless)
        except Exception as exc:  # noqa: BLE001
            session.close()
            raise SessionError(f"Could not start Chrome WebDriver: {exc}") from exc
        log_line("[SESSION] Browser initialised with stealth settings (selenium)")
        _scraper_event("session", backend="selenium", headless=session.headless)
        return session

    def _require_driver(self) -> WebDriver:
        if self.driver is None:
            raise LookupStepError(ErrorCode.SESSION_LOST, "WebDriver is closed")
        return self.driver

    def _goto(self, url: str, timeout_seconds: float) -> None:
        driver = self._require_driver()
        try:
            driver.set_page_load_timeout(timeout_seconds)
            driver.get(url)
        except TimeoutException as exc:
            raise LookupStepError(
                ErrorCode.NAVIGATION_TIMEOUT, f"Navigation to {url} timed out: {exc.msg}"
            ) from exc
        except WebDriverException as exc:
            code = ErrorCode.INTERNAL if self.is_alive() else ErrorCode.SESSION_LOST
            raise LookupStepError(code, f"Navigation to {url} failed: {exc.msg}") from exc

    def _has_element(self, selector: str) -> bool:
        try:
            return bool(self._require_driver().find_elements(By.CSS_SELECTOR, selector))
        except WebDriverException:
            return False

    def _pause(self, seconds: float) -> None:
        if seconds and seconds > 0:
            time.sleep(seconds)

    def _type_query(self, identifier: str, timeout_seconds: float) -> None:
        driver = self._require_driver()
        try:
            WebDriverWait(driver, timeout_seconds).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, self.selectors.query_input_wait))
            )
        except TimeoutException as exc:
            raise LookupStepError(
                ErrorCode.ELEMENT_MISSING, "Query input did not appear"
            ) from exc

        fields = driver.find_elements(By.CSS_SELECTOR, self.selectors.query_input)
        if not fields:
            raise LookupStepError(ErrorCode.ELEMENT_MISSING, "Could not find plate input field")
        field = fields[0]
        field.clear()
        field.send_keys(identifier)
        buttons = driver.find_elements(By.CSS_SELECTOR, self.selectors.submit_button)
        if not buttons:
            raise LookupStepError(ErrorCode.ELEMENT_MISSING, "Could not find submit button")
        buttons[0].click()

    def _wait_for_html(self, selector: str, timeout_seconds: float) -> Optional[str]:
        driver = self._require_driver()
        try:
            element = WebDriverWait(driver, timeout_seconds).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, selector))
            )
        except TimeoutException:
            return None
        return element.get_attribute("outerHTML")

    def _text_of(self, selector: str) -> Optional[str]:
        try:
            elements = self._require_driver().find_elements(By.CSS_SELECTOR, selector)
        except WebDriverException:
            return None
        return elements[0].text if elements else None

    def is_alive(self) -> bool:
        if self.driver is None:
            return False
        try:
            self.driver.current_window_handle
        except WebDriverException:
            return False
        return True

    def close(self) -> None:
        if self.driver is None:
            return
        try:
            self.driver.quit()
        except Exception as exc:  # noqa: BLE001
            log_line(f"[SESSION][WARN] Error quitting WebDriver: {exc}")
        self.driver = None


__all__ = ["SeleniumPageSession", "make_driver"]
