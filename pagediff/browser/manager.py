"""Process-wide Chromium lifecycle with per-comparison isolated contexts."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from pagediff.errors import BrowserUnavailable
from pagediff.models.comparison import Viewport
from pagediff.models.config import BrowserConfig

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


async def launch_browser(playwright: Playwright, config: BrowserConfig) -> Browser:
    """Launch Chromium with the configured arguments."""
    return await playwright.chromium.launch(
        headless=config.headless,
        args=[
            "--disable-blink-features=AutomationControlled",
            "--hide-scrollbars",
            *config.launch_args,
        ],
    )


async def create_context(
    browser: Browser,
    viewport: Viewport,
    config: BrowserConfig,
) -> BrowserContext:
    """Create a fresh context sized to ``viewport``.

    Every environment-dependent setting (locale, timezone, scale factor,
    user agent) comes from ``config`` so captures made in different
    contexts render identically.
    """
    return await browser.new_context(
        viewport=viewport.as_playwright(),
        device_scale_factor=config.device_scale_factor,
        user_agent=config.user_agent or DEFAULT_USER_AGENT,
        locale=config.locale,
        timezone_id=config.timezone_id,
        extra_http_headers={
            "Accept-Language": f"{config.locale},en;q=0.9",
        },
    )


class BrowserManager:
    """Owns one Playwright driver and Chromium process.

    The browser starts on first use (or explicitly via ``start``) and is
    shared by all comparisons; each comparison gets its own context from
    ``new_context``, which is always closed when the block exits.
    """

    def __init__(
        self,
        config: BrowserConfig | None = None,
        playwright_factory: Callable = async_playwright,
    ):
        self.config = config or BrowserConfig()
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._start_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def start(self) -> Browser:
        """Return the shared browser, launching it if needed.

        A browser that has crashed or disconnected is discarded and a new
        one launched in its place.

        Raises:
            BrowserUnavailable: the driver or Chromium failed to start.
        """
        async with self._start_lock:
            if self._browser is not None and not self._browser.is_connected():
                logger.warning("Chromium disconnected; relaunching")
                await self._discard()
            if self._browser is None:
                logger.info("Launching Chromium (headless=%s)", self.config.headless)
                try:
                    self._playwright = await self._playwright_factory().start()
                except Exception as e:
                    raise BrowserUnavailable(f"Could not start the Playwright driver: {e}") from e
                try:
                    self._browser = await launch_browser(self._playwright, self.config)
                except Exception as e:
                    await self._playwright.stop()
                    self._playwright = None
                    raise BrowserUnavailable(f"Could not launch Chromium: {e}") from e
            return self._browser

    async def stop(self) -> None:
        async with self._start_lock:
            await self._discard()

    async def _discard(self) -> None:
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        if browser is not None:
            logger.info("Closing Chromium")
            try:
                await browser.close()
            except Exception as e:
                logger.warning("Browser close failed: %s", e)
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning("Playwright driver stop failed: %s", e)

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    @asynccontextmanager
    async def new_context(self, viewport: Viewport) -> AsyncIterator[BrowserContext]:
        """Yield an isolated context that is closed on every exit path."""
        browser = await self.start()
        try:
            context = await create_context(browser, viewport, self.config)
        except Exception as e:
            raise BrowserUnavailable(f"Could not open a browser context: {e}") from e
        logger.debug("Opened browser context (%dx%d)", viewport.width, viewport.height)
        try:
            yield context
        finally:
            try:
                await context.close()
                logger.debug("Closed browser context")
            except Exception as e:
                logger.warning("Browser context close failed: %s", e)
