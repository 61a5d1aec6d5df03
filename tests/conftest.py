"""Pytest configuration and shared fixtures."""

import io
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image
from playwright.async_api import Browser, BrowserContext, Page

from pagediff.models.comparison import RenderedImage, Viewport
from pagediff.models.config import CompareConfig, RenderConfig
from pagediff.storage.artifact_store import ArtifactStore


# ============================================================================
# Image Helpers
# ============================================================================


def make_image(width: int, height: int, color=(255, 255, 255, 255)) -> RenderedImage:
    """Create a solid-color RenderedImage."""
    return RenderedImage.from_pil(Image.new("RGBA", (width, height), color))


def make_png(width: int, height: int, color=(255, 255, 255, 255)) -> bytes:
    """Create PNG bytes of a solid-color image, like a Playwright screenshot."""
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def with_block(image: RenderedImage, box: tuple[int, int, int, int], color=(0, 0, 0, 255)) -> RenderedImage:
    """Return a copy of ``image`` with the (left, top, right, bottom) box painted."""
    pil = image.to_pil()
    pil.paste(color, box)
    return RenderedImage.from_pil(pil)


class FakeTimer:
    """Deterministic clock and sleep: sleeping advances the clock instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def viewport() -> Viewport:
    return Viewport(width=800, height=600)


@pytest.fixture
def render_config() -> RenderConfig:
    """Render timings small enough to keep real waits short."""
    return RenderConfig(
        navigation_timeout_ms=5000,
        settle_delay_ms=1000,
        scroll_step_px=100,
        scroll_interval_ms=100,
        max_scroll_ms=30000,
        max_scroll_steps=2000,
        post_scroll_delay_ms=1500,
        image_timeout_ms=50,
        top_settle_delay_ms=500,
        screenshot_timeout_ms=5000,
    )


@pytest.fixture
def compare_config(tmp_path: Path, render_config: RenderConfig) -> CompareConfig:
    return CompareConfig(
        artifacts_dir=str(tmp_path / "screenshots"),
        render=render_config,
    )


@pytest.fixture
def artifact_store(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "screenshots")


# ============================================================================
# Playwright Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page on a short static document."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.goto = AsyncMock(return_value=Mock(ok=True, status=200))
    page.evaluate = AsyncMock(return_value=0)
    page.query_selector_all = AsyncMock(return_value=[])
    page.screenshot = AsyncMock(return_value=make_png(800, 1200))
    page.set_viewport_size = AsyncMock()
    page.close = AsyncMock()
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser context."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser."""
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.is_connected = Mock(return_value=True)
    browser.close = AsyncMock()
    return browser
