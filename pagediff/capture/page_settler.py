"""Helpers that bring a dynamic page to a settled state before capture.

Lazy-loading pages only fetch images once they scroll into view, so a
full-page screenshot taken straight after load shows placeholders. The
helpers here scroll the whole document, wait for pending images, and
return to the top.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]

SCROLL_HEIGHT_JS = """() => Math.max(
    document.body ? document.body.scrollHeight : 0,
    document.documentElement ? document.documentElement.scrollHeight : 0
)"""
SCROLL_BY_JS = "(distance) => window.scrollBy(0, distance)"
SCROLL_TO_TOP_JS = "() => window.scrollTo(0, 0)"

# Resolves immediately for images that already finished (or failed).
IMAGE_SETTLED_JS = """(img) => img.complete ? true : new Promise((resolve) => {
    img.addEventListener('load', () => resolve(true), { once: true });
    img.addEventListener('error', () => resolve(true), { once: true });
})"""


@dataclass
class ScrollOutcome:
    steps: int
    distance: int
    scroll_height: int
    capped: bool = False


@dataclass
class ImageWaitOutcome:
    total: int
    timed_out: int = 0


async def scroll_through(
    page: Page,
    step_px: int,
    interval_s: float,
    max_seconds: float,
    max_steps: int,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> ScrollOutcome:
    """Scroll from top to bottom in ``step_px`` increments.

    The document height is re-read before every step because it grows as
    lazy content arrives. The pass stops at the bottom, after
    ``max_steps`` increments, or once ``max_seconds`` have elapsed,
    whichever comes first.
    """
    deadline = clock() + max_seconds
    travelled = 0
    steps = 0
    while True:
        scroll_height = int(await page.evaluate(SCROLL_HEIGHT_JS) or 0)
        if travelled >= scroll_height:
            logger.debug("Scrolled %dpx in %d steps (height %dpx)", travelled, steps, scroll_height)
            return ScrollOutcome(steps=steps, distance=travelled, scroll_height=scroll_height)

        if steps >= max_steps or clock() >= deadline:
            logger.warning(
                "Stopped lazy-load scroll at %dpx of %dpx after %d steps",
                travelled, scroll_height, steps,
            )
            return ScrollOutcome(
                steps=steps, distance=travelled, scroll_height=scroll_height, capped=True,
            )

        await page.evaluate(SCROLL_BY_JS, step_px)
        travelled += step_px
        steps += 1
        await sleep(interval_s)


async def _wait_for_image(handle: ElementHandle, timeout_s: float) -> bool:
    """Wait for one image; False means it was still pending at the deadline."""
    try:
        await asyncio.wait_for(handle.evaluate(IMAGE_SETTLED_JS), timeout=timeout_s)
        return True
    except asyncio.TimeoutError:
        return False
    except PlaywrightError as e:
        # Element detached or replaced while waiting; nothing left to wait for.
        logger.debug("Image wait aborted: %s", e)
        return True


async def wait_for_images(page: Page, timeout_s: float) -> ImageWaitOutcome:
    """Wait for every ``<img>`` to load or fail, each bounded by ``timeout_s``.

    All waits run concurrently, so the total is bounded by the slowest
    single image rather than the sum.
    """
    handles = await page.query_selector_all("img")
    if not handles:
        return ImageWaitOutcome(total=0)

    settled = await asyncio.gather(*(_wait_for_image(h, timeout_s) for h in handles))
    timed_out = settled.count(False)
    if timed_out:
        logger.warning("%d of %d images still loading after %.1fs", timed_out, len(handles), timeout_s)
    else:
        logger.debug("All %d images settled", len(handles))
    return ImageWaitOutcome(total=len(handles), timed_out=timed_out)


async def return_to_top(page: Page, pause_s: float, sleep: Sleep = asyncio.sleep) -> None:
    await page.evaluate(SCROLL_TO_TOP_JS)
    await sleep(pause_s)
