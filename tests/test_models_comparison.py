"""Tests for request parsing and the image/summary data structures."""

import pytest

from conftest import make_image, make_png
from pagediff.errors import INVALID_VIEWPORT_MESSAGE, REQUIRED_URLS_MESSAGE, ValidationError
from pagediff.models.comparison import (
    CaptureRequest,
    ComparisonSummary,
    NormalizedPair,
    RenderedImage,
    Viewport,
)


class TestCaptureRequestFromPayload:
    """Tests for building a CaptureRequest from a JSON body."""

    def test_full_payload(self):
        request = CaptureRequest.from_payload({
            "urlA": "https://example.com",
            "urlB": "https://example.org",
            "viewport": {"width": 390, "height": 844},
        })
        assert request.url_a == "https://example.com"
        assert request.url_b == "https://example.org"
        assert request.viewport == Viewport(width=390, height=844)

    def test_viewport_defaults_to_1280x720(self):
        request = CaptureRequest.from_payload({"urlA": "https://a.test", "urlB": "https://b.test"})
        assert request.viewport == Viewport(width=1280, height=720)

    def test_partial_viewport_falls_back_per_field(self):
        request = CaptureRequest.from_payload({
            "urlA": "https://a.test", "urlB": "https://b.test", "viewport": {"width": 800},
        })
        assert request.viewport == Viewport(width=800, height=720)

    def test_custom_default_viewport(self):
        request = CaptureRequest.from_payload(
            {"urlA": "https://a.test", "urlB": "https://b.test"},
            default_viewport=Viewport(width=1920, height=1080),
        )
        assert request.viewport.width == 1920

    def test_urls_are_stripped(self):
        request = CaptureRequest.from_payload({"urlA": "  https://a.test ", "urlB": "https://b.test\n"})
        assert request.url_a == "https://a.test"
        assert request.url_b == "https://b.test"

    @pytest.mark.parametrize("payload", [
        {"urlA": "https://a.test"},
        {"urlB": "https://b.test"},
        {"urlA": "", "urlB": "https://b.test"},
        {"urlA": "https://a.test", "urlB": "   "},
        {"urlA": 42, "urlB": "https://b.test"},
        {},
        None,
        ["https://a.test", "https://b.test"],
    ])
    def test_missing_urls_rejected(self, payload):
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.from_payload(payload)
        assert str(exc_info.value) == REQUIRED_URLS_MESSAGE

    @pytest.mark.parametrize("viewport", [
        {"width": -10, "height": 600},
        {"width": 800, "height": "tall"},
        "800x600",
    ])
    def test_invalid_viewport_rejected(self, viewport):
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.from_payload({
                "urlA": "https://a.test", "urlB": "https://b.test", "viewport": viewport,
            })
        assert str(exc_info.value) == INVALID_VIEWPORT_MESSAGE

    def test_request_is_immutable(self):
        request = CaptureRequest(url_a="https://a.test", url_b="https://b.test")
        with pytest.raises(Exception):
            request.url_a = "https://c.test"

    def test_accepts_camel_case_fields(self):
        request = CaptureRequest.model_validate({"urlA": "https://a.test", "urlB": "https://b.test"})
        assert request.url_b == "https://b.test"


class TestRenderedImage:
    """Tests for the raw RGBA image container."""

    def test_buffer_length_checked(self):
        with pytest.raises(ValueError):
            RenderedImage(width=2, height=2, pixels=b"\x00" * 15)

    def test_negative_dimensions_rejected(self):
        with pytest.raises(ValueError):
            RenderedImage(width=-1, height=1, pixels=b"")

    def test_from_png_converts_to_rgba(self):
        image = RenderedImage.from_png(make_png(3, 2, (10, 20, 30, 255)))
        assert image.size == (3, 2)
        assert image.pixels[:4] == bytes([10, 20, 30, 255])

    def test_png_round_trip(self):
        image = make_image(5, 4, (1, 2, 3, 255))
        assert RenderedImage.from_png(image.to_png()) == image

    def test_crop_same_size_returns_self(self):
        image = make_image(5, 4)
        assert image.crop(5, 4) is image

    def test_crop_to_zero_area(self):
        cropped = make_image(5, 4).crop(5, 0)
        assert cropped.size == (5, 0)
        assert cropped.pixels == b""

    def test_crop_larger_rejected(self):
        with pytest.raises(ValueError):
            make_image(5, 4).crop(6, 4)


class TestNormalizedPair:

    def test_requires_matching_sizes(self):
        with pytest.raises(ValueError):
            NormalizedPair(make_image(2, 2), make_image(2, 3))

    def test_dimensions(self):
        pair = NormalizedPair(make_image(4, 3), make_image(4, 3))
        assert (pair.width, pair.height, pair.total_pixels) == (4, 3, 12)


class TestComparisonSummary:

    def test_response_uses_camel_case_keys(self):
        summary = ComparisonSummary(
            url_a="https://a.test",
            url_b="https://b.test",
            viewport=Viewport(width=800, height=600),
            mismatch_pixels=12,
            total_pixels=480000,
            mismatch_percentage=0.0025,
            similarity_percentage=99.9975,
            screenshot_a_path="/screenshots/a-1.png",
            screenshot_b_path="/screenshots/b-1.png",
            diff_image_path="/screenshots/diff-1.png",
        )

        assert summary.to_response() == {
            "urlA": "https://a.test",
            "urlB": "https://b.test",
            "viewport": {"width": 800, "height": 600},
            "mismatchPixels": 12,
            "totalPixels": 480000,
            "mismatchPercentage": 0.0025,
            "similarityPercentage": 99.9975,
            "screenshotAPath": "/screenshots/a-1.png",
            "screenshotBPath": "/screenshots/b-1.png",
            "diffImagePath": "/screenshots/diff-1.png",
        }
