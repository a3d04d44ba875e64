from __future__ import annotations

from visualdiff.image_diff.compare import compare
from visualdiff.image_diff.errors import ImageDiffError, InvalidImageInput, UnsupportedColorDepth
from visualdiff.image_diff.options import ComparisonOptions
from visualdiff.image_diff.types import ComparisonResult, Difference, DiffReport, RasterImage

__all__ = [
    "compare",
    "ComparisonOptions",
    "ComparisonResult",
    "Difference",
    "DiffReport",
    "ImageDiffError",
    "InvalidImageInput",
    "RasterImage",
    "UnsupportedColorDepth",
]

__version__ = "0.1.0"
