"""
Shared Playwright browser for the whole service lifetime.

Launching Chromium costs seconds, so one process is started lazily on first
use and reused by every request. Each request gets its own browser context
(cookies, storage, page) through ``BrowserSession.page()``, which is closed on
every exit path so a broken page never leaks into the next request.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from playwright.async_api import Browser, Error as PlaywrightError, Page, async_playwright

from .base import BrowserLaunchError
from .config import Settings, settings as default_settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="session")

StopCallback = Callable[[], Awaitable[None]]
Launcher = Callable[[Settings], Awaitable[tuple[Browser, StopCallback]]]


async def launch_chromium(settings: Settings) -> tuple[Browser, StopCallback]:
    """Start Playwright and a headless Chromium with the service flags."""
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(
            headless=settings.headless,
            args=settings.launch_args,
        )
    except Exception:
        await playwright.stop()
        raise
    return browser, playwright.stop


class BrowserSession:
    """Lazily launched, memoized browser shared by all requests."""

    def __init__(self, settings: Settings = default_settings, launcher: Launcher = launch_chromium):
        self.settings = settings
        self._launcher = launcher
        self._lock = asyncio.Lock()
        self._browser: Optional[Browser] = None
        self._stop: Optional[StopCallback] = None
        self._launch_error: Optional[str] = None
        self.launch_count = 0

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def acquire(self) -> Browser:
        """
        Return the shared browser, launching it on first use.

        Concurrent first callers wait on the same launch. A failed launch is
        remembered: it points at a broken install, so later calls fail fast
        instead of retrying.
        """
        if self._launch_error is not None:
            raise BrowserLaunchError(self._launch_error)
        if self.is_running:
            return self._browser

        async with self._lock:
            if self._launch_error is not None:
                raise BrowserLaunchError(self._launch_error)
            if self.is_running:
                return self._browser
            if self._browser is not None:
                logger.warning("Shared browser disconnected; launching a new one")
                await self._shutdown()

            logger.info("Launching shared browser (headless=%s)", self.settings.headless)
            try:
                browser, stop = await self._launcher(self.settings)
            except Exception as exc:
                logger.error("Browser launch failed: %s", exc)
                self._launch_error = f"Could not launch browser: {exc}"
                raise BrowserLaunchError(self._launch_error) from exc

            self._browser = browser
            self._stop = stop
            self.launch_count += 1
            return browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open an isolated context + page in the shared browser."""
        browser = await self.acquire()
        context = await browser.new_context(user_agent=self.settings.user_agent)
        try:
            yield await context.new_page()
        finally:
            try:
                await context.close()
            except PlaywrightError as exc:
                logger.warning("Failed to close browser context: %s", exc)

    async def close(self) -> None:
        """Shut the browser down. Only called on process shutdown."""
        async with self._lock:
            await self._shutdown()

    async def _shutdown(self) -> None:
        browser, stop = self._browser, self._stop
        self._browser = None
        self._stop = None
        if browser is not None and browser.is_connected():
            logger.info("Closing shared browser")
            await browser.close()
        if stop is not None:
            await stop()
