from __future__ import annotations
import logging
from typing import Any, List, Optional
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from classpilot.driver.base import BrowserDriver, DriverError

log = logging.getLogger(__name__)

CHROMIUM_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--ignore-certificate-errors",
]


class PlaywrightDriver(BrowserDriver):
    """Single-page Chromium driver on Playwright's async API."""

    def __init__(self, headless: bool = True, navigation_timeout_ms: int = 20000):
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        if self.is_connected() and self._page is not None and not self._page.is_closed():
            return
        await self.close()
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless, args=CHROMIUM_ARGS)
            self._context = await self._browser.new_context(no_viewport=True, ignore_https_errors=True)
            self._context.set_default_navigation_timeout(self.navigation_timeout_ms)
            self._page = await self._context.new_page()
        except PlaywrightError as e:
            await self.close()
            raise DriverError(f"Failed to launch browser: {e}") from e
        log.info("Browser started (headless=%s)", self.headless)

    async def close(self) -> None:
        for name, closer in (
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except PlaywrightError as e:
                log.debug("Ignoring error while closing %s: %s", name, e)
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    def _require_page(self) -> Page:
        if self._page is None or self._page.is_closed():
            raise DriverError("No open page")
        return self._page

    def current_url(self) -> str:
        return self._require_page().url

    async def navigate(self, url: str) -> None:
        page = self._require_page()
        try:
            await page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as e:
            raise DriverError(f"Navigation to {url} failed: {e}") from e

    async def query_selector(self, selector: str) -> Optional[Any]:
        try:
            return await self._require_page().query_selector(selector)
        except PlaywrightError as e:
            raise DriverError(f"Query {selector} failed: {e}") from e

    async def query_selector_all(self, selector: str) -> List[Any]:
        try:
            return await self._require_page().query_selector_all(selector)
        except PlaywrightError as e:
            raise DriverError(f"Query {selector} failed: {e}") from e

    async def wait_for_selector(self, selector: str, timeout_ms: int = 5000) -> Optional[Any]:
        try:
            return await self._require_page().wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return None
        except PlaywrightError as e:
            raise DriverError(f"Waiting for {selector} failed: {e}") from e

    async def read_text(self, handle: Any) -> str:
        try:
            return (await handle.text_content()) or ""
        except PlaywrightError as e:
            raise DriverError(f"Reading text failed: {e}") from e

    async def click(self, handle: Any) -> None:
        try:
            await handle.click()
        except PlaywrightError as e:
            raise DriverError(f"Click failed: {e}") from e

    async def fill(self, handle: Any, text: str) -> None:
        try:
            await handle.fill(text)
        except PlaywrightError as e:
            raise DriverError(f"Fill failed: {e}") from e

    async def press(self, key: str) -> None:
        try:
            await self._require_page().keyboard.press(key)
        except PlaywrightError as e:
            raise DriverError(f"Key press {key} failed: {e}") from e

    async def wait_for_navigation(self, timeout_ms: int = 10000) -> None:
        try:
            await self._require_page().wait_for_load_state("domcontentloaded", timeout=timeout_ms)
        except PlaywrightError as e:
            raise DriverError(f"Waiting for navigation failed: {e}") from e

    async def screenshot(self) -> bytes:
        try:
            return await self._require_page().screenshot(full_page=True)
        except PlaywrightError as e:
            raise DriverError(f"Screenshot failed: {e}") from e
