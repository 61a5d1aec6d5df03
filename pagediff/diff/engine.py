"""Diff engine — perceptual per-pixel comparison of two equally sized images."""

from __future__ import annotations

import logging

from PIL import Image
from pixelmatch.contrib.PIL import pixelmatch

from pagediff.errors import EmptyRegion
from pagediff.models.comparison import DiffResult, RenderedImage
from pagediff.models.config import DiffConfig

logger = logging.getLogger(__name__)


class DiffEngine:
    """Counts mismatched pixels using pixelmatch's YIQ color distance.

    Matched pixels are drawn as a faded grayscale copy of the first image,
    mismatched pixels in ``diff_color`` and, unless anti-aliased pixels are
    counted, anti-aliasing differences in ``aa_color``.
    """

    def __init__(self, config: DiffConfig | None = None):
        self.config = config or DiffConfig()

    def diff(self, image_a: RenderedImage, image_b: RenderedImage) -> DiffResult:
        if image_a.size != image_b.size:
            raise ValueError(
                f"Cannot diff images of different sizes: {image_a.size} vs {image_b.size}"
            )

        total_pixels = image_a.width * image_a.height
        if total_pixels == 0:
            raise EmptyRegion(
                f"Comparison region is empty ({image_a.width}x{image_a.height})"
            )

        cfg = self.config
        output = Image.new("RGBA", image_a.size)
        mismatch_pixels = pixelmatch(
            image_a.to_pil(),
            image_b.to_pil(),
            output,
            threshold=cfg.threshold,
            includeAA=cfg.include_anti_aliased,
            alpha=cfg.alpha,
            aa_color=cfg.aa_color,
            diff_color=cfg.diff_color,
        )

        result = DiffResult(
            mismatch_pixels=mismatch_pixels,
            total_pixels=total_pixels,
            diff_image=RenderedImage.from_pil(output),
        )
        logger.info(
            "Diff %dx%d: %d of %d pixels differ (%.2f%%)",
            image_a.width, image_a.height, mismatch_pixels, total_pixels,
            result.mismatch_percentage,
        )
        return result
