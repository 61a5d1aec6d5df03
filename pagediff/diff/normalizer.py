"""Image normalizer — crops two captures to their shared top-left region."""

from __future__ import annotations

import logging

from pagediff.models.comparison import NormalizedPair, RenderedImage

logger = logging.getLogger(__name__)


def normalize(image_a: RenderedImage, image_b: RenderedImage) -> NormalizedPair:
    """Align both images at the origin and discard any bottom/right excess.

    No content-aware alignment is attempted: when two layouts diverge in
    height early, everything below the divergence shows up as mismatch.
    """
    if image_a.size == image_b.size:
        return NormalizedPair(image_a, image_b)

    width = min(image_a.width, image_b.width)
    height = min(image_a.height, image_b.height)
    logger.debug(
        "Cropping %dx%d and %dx%d to %dx%d",
        image_a.width, image_a.height, image_b.width, image_b.height, width, height,
    )
    return NormalizedPair(image_a.crop(width, height), image_b.crop(width, height))
