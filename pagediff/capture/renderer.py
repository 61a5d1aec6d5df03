"""Page renderer — loads a URL and captures a settled full-page screenshot."""

from __future__ import annotations

import asyncio
import logging
import time

from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pagediff.errors import NavigationError, RenderError
from pagediff.models.comparison import RenderedImage, Viewport
from pagediff.models.config import RenderConfig

from .page_settler import Clock, Sleep, return_to_top, scroll_through, wait_for_images

logger = logging.getLogger(__name__)


class PageRenderer:
    """Renders pages inside one browser context.

    Each ``render`` call opens its own page in the shared context and
    closes it afterwards, so consecutive renders share the context's
    fonts, scale factor and viewport.
    """

    def __init__(
        self,
        context: BrowserContext,
        config: RenderConfig | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ):
        self.context = context
        self.config = config or RenderConfig()
        self._sleep = sleep
        self._clock = clock

    async def render(self, url: str, viewport: Viewport) -> RenderedImage:
        """Load ``url`` at ``viewport`` and return the full-page capture.

        The page takes its size from the context, which was created at
        ``viewport``; the argument is not re-applied to the page.

        Raises:
            NavigationError: the page did not reach network idle in time.
            RenderError: settling or capturing the page failed.
        """
        logger.info("Rendering %s at %dx%d", url, viewport.width, viewport.height)
        start = time.monotonic()

        try:
            page = await self.context.new_page()
        except PlaywrightError as e:
            raise RenderError(url, f"Could not open a page: {e}") from e

        try:
            await self._navigate(page, url)
            await self._settle(page, url)
            png = await self._capture(page, url)
        finally:
            await self._close_page(page)

        try:
            image = await asyncio.to_thread(RenderedImage.from_png, png)
        except (OSError, ValueError) as e:
            raise RenderError(url, f"Screenshot of {url} could not be decoded: {e}") from e

        logger.info("Captured %s (%dx%d) in %.1fs", url, image.width, image.height, time.monotonic() - start)
        return image

    async def _navigate(self, page: Page, url: str) -> None:
        timeout_ms = self.config.navigation_timeout_ms
        try:
            response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(url, f"Timed out after {timeout_ms}ms loading {url}") from e
        except PlaywrightError as e:
            raise NavigationError(url, f"Failed to load {url}: {e}") from e

        if response is not None and not response.ok:
            # Error pages still render; the diff will show them.
            logger.warning("%s responded with HTTP %d", url, response.status)

    async def _settle(self, page: Page, url: str) -> None:
        cfg = self.config
        try:
            await self._sleep(cfg.settle_delay_ms / 1000)
            await scroll_through(
                page,
                step_px=cfg.scroll_step_px,
                interval_s=cfg.scroll_interval_ms / 1000,
                max_seconds=cfg.max_scroll_ms / 1000,
                max_steps=cfg.max_scroll_steps,
                sleep=self._sleep,
                clock=self._clock,
            )
            await self._sleep(cfg.post_scroll_delay_ms / 1000)
            await wait_for_images(page, timeout_s=cfg.image_timeout_ms / 1000)
            await return_to_top(page, cfg.top_settle_delay_ms / 1000, sleep=self._sleep)
        except PlaywrightError as e:
            raise RenderError(url, f"Page {url} failed while settling: {e}") from e

    async def _capture(self, page: Page, url: str) -> bytes:
        try:
            return await page.screenshot(
                full_page=True,
                type="png",
                timeout=self.config.screenshot_timeout_ms,
            )
        except PlaywrightError as e:
            raise RenderError(url, f"Screenshot of {url} failed: {e}") from e

    async def _close_page(self, page: Page) -> None:
        try:
            await page.close()
        except PlaywrightError as e:
            logger.debug("Page close failed: %s", e)
