"""Comparison orchestrator — coordinates render, normalize, diff, and store stages."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable

from playwright.async_api import BrowserContext

from pagediff.browser.manager import BrowserManager
from pagediff.capture.renderer import PageRenderer
from pagediff.diff.engine import DiffEngine
from pagediff.diff.normalizer import normalize
from pagediff.errors import CaptureFailed, EmptyRegion, InternalError, PageDiffError
from pagediff.models.comparison import (
    CaptureRequest,
    ComparisonSummary,
    DiffResult,
    NormalizedPair,
    RenderedImage,
    Viewport,
)
from pagediff.models.config import CompareConfig, RenderConfig
from pagediff.storage.artifact_store import ArtifactStore

logger = logging.getLogger(__name__)

RendererFactory = Callable[[BrowserContext, RenderConfig], PageRenderer]


class ComparisonOrchestrator:
    """Runs one comparison end to end.

    Both pages are rendered one after the other in the same browser
    context, so fonts, scrollbars and zoom are identical for A and B. The
    context is closed before normalization starts, whatever the outcome.
    Artifacts are only written once the diff has succeeded.
    """

    def __init__(
        self,
        config: CompareConfig,
        browser_manager: BrowserManager,
        artifact_store: ArtifactStore,
        diff_engine: DiffEngine | None = None,
        renderer_factory: RendererFactory = PageRenderer,
    ):
        self.config = config
        self.browser_manager = browser_manager
        self.artifact_store = artifact_store
        self.diff_engine = diff_engine or DiffEngine(config.diff)
        self.renderer_factory = renderer_factory

    @classmethod
    def from_config(
        cls, config: CompareConfig, browser_manager: BrowserManager | None = None,
    ) -> "ComparisonOrchestrator":
        return cls(
            config,
            browser_manager or BrowserManager(config.browser),
            ArtifactStore(Path(config.artifacts_dir), config.public_prefix),
        )

    async def compare(self, request: CaptureRequest) -> ComparisonSummary:
        start = time.monotonic()
        viewport = request.viewport
        logger.info(
            "=== Comparing %s vs %s at %dx%d ===",
            request.url_a, request.url_b, viewport.width, viewport.height,
        )

        async with self.browser_manager.new_context(viewport) as context:
            renderer = self.renderer_factory(context, self.config.render)
            image_a = await self._capture(renderer, request.url_a, viewport, "A")
            image_b = await self._capture(renderer, request.url_b, viewport, "B")

        # CPU and disk bound stages run off the event loop.
        pair = await asyncio.to_thread(self._normalize, image_a, image_b)
        result = await asyncio.to_thread(self._diff, pair)
        screenshot_a, screenshot_b, diff_image = await asyncio.to_thread(
            self._store_artifacts, image_a, image_b, result.diff_image,
        )

        summary = ComparisonSummary(
            url_a=request.url_a,
            url_b=request.url_b,
            viewport=Viewport(width=pair.width, height=pair.height),
            mismatch_pixels=result.mismatch_pixels,
            total_pixels=result.total_pixels,
            mismatch_percentage=result.mismatch_percentage,
            similarity_percentage=result.similarity_percentage,
            screenshot_a_path=screenshot_a,
            screenshot_b_path=screenshot_b,
            diff_image_path=diff_image,
        )
        logger.info(
            "=== Comparison complete: %.2f%% similar in %.1fs ===",
            summary.similarity_percentage, time.monotonic() - start,
        )
        return summary

    async def _capture(
        self, renderer: PageRenderer, url: str, viewport: Viewport, label: str,
    ) -> RenderedImage:
        try:
            return await renderer.render(url, viewport)
        except CaptureFailed as e:
            logger.error("Capture %s failed: %s", label, e)
            raise
        except PageDiffError:
            raise
        except Exception as e:
            raise InternalError(f"Unexpected failure rendering {url}") from e

    def _normalize(self, image_a: RenderedImage, image_b: RenderedImage) -> NormalizedPair:
        try:
            pair = normalize(image_a, image_b)
        except Exception as e:
            raise InternalError("Could not normalize captures") from e

        if pair.total_pixels == 0:
            raise EmptyRegion(
                f"Captures {image_a.width}x{image_a.height} and "
                f"{image_b.width}x{image_b.height} share no area"
            )
        return pair

    def _diff(self, pair: NormalizedPair) -> DiffResult:
        try:
            return self.diff_engine.diff(pair.first, pair.second)
        except PageDiffError:
            raise
        except Exception as e:
            raise InternalError("Pixel diff failed") from e

    def _store_artifacts(
        self, image_a: RenderedImage, image_b: RenderedImage, diff_image: RenderedImage,
    ) -> list[str]:
        """Store all three images, or none of them."""
        request_id = self.artifact_store.new_request_id()
        stored: list[str] = []
        try:
            for role, image in (("a", image_a), ("b", image_b), ("diff", diff_image)):
                stored.append(self.artifact_store.store(image, role, request_id))
        except Exception as e:
            for reference in stored:
                self.artifact_store.discard(reference)
            raise InternalError("Failed to store comparison artifacts") from e
        return stored
