"""Artifact store — writes capture and diff PNGs and resolves them by reference."""

from __future__ import annotations

import logging
import os
import re
import time
import uuid
from pathlib import Path
from typing import BinaryIO

from pagediff.errors import ArtifactNotFoundError
from pagediff.models.comparison import RenderedImage

logger = logging.getLogger(__name__)

_ROLE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class ArtifactStore:
    """Stores PNG artifacts under ``root`` as ``<role>-<request_id>.png``.

    References handed out are public paths (``<public_prefix>/<file>``) that
    ``retrieve`` maps back onto files inside ``root``; anything resolving
    outside ``root`` is treated as unknown.
    """

    def __init__(self, root: Path, public_prefix: str = "/screenshots"):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_prefix = "/" + public_prefix.strip("/")

    @staticmethod
    def new_request_id() -> str:
        """Millisecond timestamp plus a random discriminator, unique per request."""
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"

    def _filename(self, role: str, request_id: str) -> str:
        return f"{role}-{request_id}.png"

    def reference_for(self, filename: str) -> str:
        return f"{self.public_prefix}/{filename}"

    def store(self, image: RenderedImage, role: str, request_id: str) -> str:
        """Encode ``image`` as PNG and return its reference."""
        if not _ROLE_PATTERN.match(role):
            raise ValueError(f"Invalid artifact role: {role!r}")

        filename = self._filename(role, request_id)
        dest = self.root / filename
        tmp = dest.with_name(f".{filename}.tmp")
        try:
            tmp.write_bytes(image.to_png())
            os.replace(tmp, dest)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

        logger.debug("Stored %s (%dx%d) at %s", role, image.width, image.height, dest)
        return self.reference_for(filename)

    def path_for(self, reference: str) -> Path:
        """Resolve a reference (public path or bare filename) to a file in ``root``."""
        name = reference
        if name.startswith(self.public_prefix + "/"):
            name = name[len(self.public_prefix) + 1:]

        root = self.root.resolve()
        path = (root / name).resolve()
        if path.parent != root or not path.is_file():
            raise ArtifactNotFoundError(f"Unknown artifact: {reference}")
        return path

    def retrieve(self, reference: str) -> BinaryIO:
        """Open a stored artifact for reading; the caller closes the stream."""
        return open(self.path_for(reference), "rb")

    def discard(self, reference: str) -> None:
        """Delete a stored artifact if it still exists."""
        try:
            self.path_for(reference).unlink()
        except ArtifactNotFoundError:
            return
        logger.debug("Discarded %s", reference)
