from __future__ import annotations

import logging

import numpy as np
from sentry_sdk.tracing import trace

from visualdiff.image_diff.types import MATCH, UNGROUPED, DiffMatrix, RasterImage

logger = logging.getLogger(__name__)


def is_matched(argb1: int, argb2: int) -> bool:
    """Compare two packed ARGB pixels by alpha and gray level.

    The second pixel is packed with the first pixel's gray level in its blue
    slot. Equality still hinges on alpha and the two gray levels alone.
    """
    a1 = (argb1 >> 24) & 0xFF
    red1 = (argb1 >> 16) & 0xFF
    green1 = (argb1 >> 8) & 0xFF
    blue1 = argb1 & 0xFF
    a2 = (argb2 >> 24) & 0xFF
    red2 = (argb2 >> 16) & 0xFF
    green2 = (argb2 >> 8) & 0xFF
    blue2 = argb2 & 0xFF

    avg1 = (red1 + green1 + blue1) // 3
    avg2 = (red2 + green2 + blue2) // 3

    p1 = (a1 << 24) | (avg1 << 16) | (avg1 << 8) | avg1
    p2 = (a2 << 24) | (avg2 << 16) | (avg2 << 8) | avg1
    return p1 == p2


@trace
def build_matrix(image_a: RasterImage, image_b: RasterImage) -> tuple[DiffMatrix, int]:
    """Mark every pixel of the shared area as matching (0) or differing (1).

    Both images are cropped to the area they share before comparing, so
    pixels outside it are neither matches nor differences. A pixel matches
    when alpha and gray level (``(r + g + b) // 3``) agree, the same test as
    :func:`is_matched`. Returns the matrix and the number of matching pixels.
    """
    width = min(image_a.width, image_b.width)
    height = min(image_a.height, image_b.height)

    arr_a = image_a.rgba_array()[:height, :width].astype(np.int32)
    arr_b = image_b.rgba_array()[:height, :width].astype(np.int32)
    lum_a = arr_a[..., :3].sum(axis=2) // 3
    lum_b = arr_b[..., :3].sum(axis=2) // 3
    matched = (arr_a[..., 3] == arr_b[..., 3]) & (lum_a == lum_b)

    matrix = DiffMatrix(width, height, np.where(matched, MATCH, UNGROUPED))
    match_count = int(np.count_nonzero(matched))

    logger.debug(
        "built difference matrix",
        extra={
            "matrix_size": matrix.size,
            "match_count": match_count,
            "image_a_size": image_a.size,
            "image_b_size": image_b.size,
        },
    )
    return matrix, match_count


def match_percent(match_count: int, image_a: RasterImage) -> float:
    """Percentage of ``image_a``'s full area that matched, to two decimals.

    The denominator is always the first image's area, so pixels of ``image_a``
    outside the shared area count against the match.
    """
    return round(match_count / (image_a.width * image_a.height) * 100, 2)


def strict_match_percent(image_a: RasterImage, image_b: RasterImage) -> float:
    """Exact ARGB equality over the shared area, as a percentage of that area."""
    width = min(image_a.width, image_b.width)
    height = min(image_a.height, image_b.height)
    arr_a = image_a.rgba_array()[:height, :width]
    arr_b = image_b.rgba_array()[:height, :width]
    match_count = np.count_nonzero(np.all(arr_a == arr_b, axis=2))
    return round(match_count / (width * height) * 100, 2)
