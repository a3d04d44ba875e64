from __future__ import annotations

__all__ = ["ImageDiffError", "InvalidImageInput", "UnsupportedColorDepth"]


class ImageDiffError(Exception):
    """Base class for failures raised by the image comparison engine."""


class InvalidImageInput(ImageDiffError, ValueError):
    """Raised when an input image is missing, unreadable or empty."""


class UnsupportedColorDepth(ImageDiffError, ValueError):
    def __init__(self, depth: object) -> None:
        super().__init__(f"unsupported color depth: {depth!r}")
        self.depth = depth
