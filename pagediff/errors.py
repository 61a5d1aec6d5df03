"""Exception hierarchy for the comparison pipeline."""

from __future__ import annotations

REQUIRED_URLS_MESSAGE = "Both urlA and urlB are required."
INVALID_VIEWPORT_MESSAGE = "Viewport width and height must be positive integers."


class PageDiffError(Exception):
    """Base class for every failure raised by the pipeline."""


class ValidationError(PageDiffError):
    """The comparison request is missing fields or carries malformed ones."""


class CaptureFailed(PageDiffError):
    """A page could not be captured."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class NavigationError(CaptureFailed):
    """The page failed to load within the navigation timeout."""


class RenderError(CaptureFailed):
    """The page loaded but the screenshot could not be produced or decoded."""


class EmptyRegion(PageDiffError):
    """Normalization produced a zero-area region, so there is nothing to diff."""


class InternalError(PageDiffError):
    """Unexpected failure while normalizing, diffing or storing images."""


class BrowserUnavailable(InternalError):
    """Chromium could not be launched or refused to open a context."""


class ArtifactNotFoundError(PageDiffError, KeyError):
    """A reference does not resolve to a stored artifact."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""
