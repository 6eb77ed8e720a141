"""Browser session provisioning for form resolutions.

One Playwright runtime and browser per process, launched lazily. Every
resolution gets its own browser context and page, so form state never leaks
between requests, and the context is closed when the resolution ends.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..core.config import Settings
from ..core.exceptions import FormLoadFailure
from ..core.logging import log_browser_session, logger
from .form_page import PlaywrightFormPage


class BrowserSessionFactory:
    """Hands out freshly loaded form pages backed by a shared browser."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def navigation_timeout_ms(self) -> float:
        return self.settings.navigation_timeout * 1000

    async def _get_browser(self) -> Browser:
        """Lazy-init the browser, relaunching it if it disconnected."""
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            start = time.monotonic()
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            browser_type = getattr(self._playwright, self.settings.browser_name)
            try:
                self._browser = await browser_type.launch(
                    headless=self.settings.headless,
                    args=self.settings.browser_args,
                )
            except PlaywrightError:
                log_browser_session(
                    "launch",
                    False,
                    (time.monotonic() - start) * 1000,
                    browser=self.settings.browser_name,
                )
                raise
            log_browser_session(
                "launch",
                True,
                (time.monotonic() - start) * 1000,
                browser=self.settings.browser_name,
            )
            return self._browser

    async def _load_form(self, page: Page) -> None:
        start = time.monotonic()
        try:
            await page.goto(
                self.settings.form_url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_ms,
            )
        except PlaywrightError as e:
            log_browser_session("goto", False, (time.monotonic() - start) * 1000)
            raise FormLoadFailure(self.settings.form_url, str(e)) from e
        log_browser_session("goto", True, (time.monotonic() - start) * 1000)

    @asynccontextmanager
    async def open_page(self) -> AsyncIterator[PlaywrightFormPage]:
        """Yield a form page in its initial state; always closes its context.

        Launch and context failures are reported as FormLoadFailure so the
        caller can retry them like a failed navigation.
        """
        try:
            browser = await self._get_browser()
            context = await browser.new_context(user_agent=self.settings.user_agent)
        except PlaywrightError as e:
            raise FormLoadFailure(self.settings.form_url, f"browser unavailable: {e}") from e
        try:
            page = await context.new_page()
            page.set_default_navigation_timeout(self.navigation_timeout_ms)
            await self._load_form(page)
            yield PlaywrightFormPage(
                page,
                field_prefix=self.settings.field_prefix,
                indicator_selector=self.settings.loading_indicator,
            )
        finally:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.warning(f"Context cleanup failed: {e}")

    async def check_health(self) -> dict[str, Any]:
        """Check that a browser can be launched and is connected."""
        start = time.monotonic()
        try:
            browser = await self._get_browser()
            return {
                "status": "healthy",
                "version": browser.version,
                "latency_ms": round((time.monotonic() - start) * 1000, 2),
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
                "latency_ms": round((time.monotonic() - start) * 1000, 2),
            }

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        log_browser_session("close", True)
