"""Data structures flowing through the capture → normalize → diff pipeline."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from pagediff.errors import INVALID_VIEWPORT_MESSAGE, REQUIRED_URLS_MESSAGE, ValidationError


class Viewport(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)

    def as_playwright(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


class CaptureRequest(BaseModel):
    """Two URLs to compare under one viewport."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url_a: str = Field(alias="urlA", min_length=1)
    url_b: str = Field(alias="urlB", min_length=1)
    viewport: Viewport = Field(default_factory=Viewport)

    @classmethod
    def from_payload(cls, payload: Any, default_viewport: Viewport | None = None) -> "CaptureRequest":
        """Build a request from a decoded JSON body.

        Missing or zero viewport dimensions fall back to the default
        viewport, so ``{"viewport": {"width": 0}}`` behaves like an
        omitted viewport.
        """
        if not isinstance(payload, dict):
            raise ValidationError(REQUIRED_URLS_MESSAGE)

        url_a = payload.get("urlA")
        url_b = payload.get("urlB")
        if not _is_url_string(url_a) or not _is_url_string(url_b):
            raise ValidationError(REQUIRED_URLS_MESSAGE)

        default_viewport = default_viewport or Viewport()
        viewport_data = payload.get("viewport") or {}
        if not isinstance(viewport_data, dict):
            raise ValidationError(INVALID_VIEWPORT_MESSAGE)

        try:
            viewport = Viewport(
                width=viewport_data.get("width") or default_viewport.width,
                height=viewport_data.get("height") or default_viewport.height,
            )
        except PydanticValidationError as e:
            raise ValidationError(INVALID_VIEWPORT_MESSAGE) from e

        return cls(url_a=url_a.strip(), url_b=url_b.strip(), viewport=viewport)


def _is_url_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


@dataclass(frozen=True)
class RenderedImage:
    """A raster capture held as raw RGBA bytes (row-major, 4 bytes per pixel)."""

    width: int
    height: int
    pixels: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Image dimensions must be non-negative, got {self.width}x{self.height}")
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer holds {len(self.pixels)} bytes, expected {expected} "
                f"for {self.width}x{self.height} RGBA"
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RenderedImage":
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        return cls(width=rgba.width, height=rgba.height, pixels=rgba.tobytes())

    @classmethod
    def from_png(cls, data: bytes) -> "RenderedImage":
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return cls.from_pil(image)

    def to_pil(self) -> Image.Image:
        return Image.frombytes("RGBA", self.size, self.pixels)

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.to_pil().save(buffer, format="PNG")
        return buffer.getvalue()

    def crop(self, width: int, height: int) -> "RenderedImage":
        """Return the top-left ``width`` x ``height`` region."""
        if (width, height) == self.size:
            return self
        if width > self.width or height > self.height:
            raise ValueError(
                f"Cannot crop {self.width}x{self.height} image to larger {width}x{height}"
            )
        if width == 0 or height == 0:
            return RenderedImage(width=width, height=height, pixels=b"")
        return RenderedImage.from_pil(self.to_pil().crop((0, 0, width, height)))


@dataclass(frozen=True)
class NormalizedPair:
    first: RenderedImage
    second: RenderedImage

    def __post_init__(self) -> None:
        if self.first.size != self.second.size:
            raise ValueError(
                f"Normalized images differ in size: {self.first.size} vs {self.second.size}"
            )

    @property
    def width(self) -> int:
        return self.first.width

    @property
    def height(self) -> int:
        return self.first.height

    @property
    def total_pixels(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class DiffResult:
    mismatch_pixels: int
    total_pixels: int
    diff_image: RenderedImage = field(repr=False)

    @property
    def mismatch_percentage(self) -> float:
        return self.mismatch_pixels / self.total_pixels * 100

    @property
    def similarity_percentage(self) -> float:
        return 100 - self.mismatch_percentage


class ComparisonSummary(BaseModel):
    """Outcome of one comparison, serialized with the camelCase keys clients expect."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url_a: str = Field(alias="urlA")
    url_b: str = Field(alias="urlB")
    viewport: Viewport  # effective region after normalization
    mismatch_pixels: int = Field(alias="mismatchPixels", ge=0)
    total_pixels: int = Field(alias="totalPixels", gt=0)
    mismatch_percentage: float = Field(alias="mismatchPercentage")
    similarity_percentage: float = Field(alias="similarityPercentage")
    screenshot_a_path: str = Field(alias="screenshotAPath")
    screenshot_b_path: str = Field(alias="screenshotBPath")
    diff_image_path: str = Field(alias="diffImagePath")

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
