from __future__ import annotations

from pathlib import Path


class AssetLoadError(Exception):
    """Logo or signature file missing or unreadable."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not load asset {path}: {reason}")
        self.path = path


class AssetDecodeError(Exception):
    """Image bytes the canvas could not decode."""


class DocumentGenerationError(Exception):
    """Rendering failed; no document was produced."""
