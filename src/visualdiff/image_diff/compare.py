from __future__ import annotations

import logging
from collections.abc import Sequence

from PIL import Image
from sentry_sdk.tracing import trace

from visualdiff.image_diff.depth import common_depth, normalize
from visualdiff.image_diff.matrix import build_matrix, match_percent
from visualdiff.image_diff.options import ComparisonOptions, highlight_rgb
from visualdiff.image_diff.regions import FIRST_REGION_ID, group_regions
from visualdiff.image_diff.render import extract_and_render
from visualdiff.image_diff.types import ComparisonResult, RasterImage

logger = logging.getLogger(__name__)

ImageSource = RasterImage | bytes | Image.Image


@trace
def compare(
    baseline: ImageSource,
    actual: ImageSource,
    highlight_color: int | Sequence[int] | None = None,
    options: ComparisonOptions | None = None,
) -> ComparisonResult:
    """Compare ``actual`` against ``baseline`` and outline where they differ.

    Both images are brought to their common color depth, compared pixel by
    pixel over the area they share, and the differing pixels are grouped into
    regions. The annotated image is a copy of ``actual`` with one rectangle
    drawn per region.

    ``highlight_color`` overrides ``options.highlight_color`` when given.
    """
    if options is None:
        options = ComparisonOptions()
    color = highlight_rgb(highlight_color) if highlight_color is not None else options.highlight_color

    image_a: RasterImage | None = None
    image_b: RasterImage | None = None
    try:
        image_a = RasterImage.from_source(baseline)
        image_b = RasterImage.from_source(actual)
        return _compare_rasters(image_a, image_b, color, options)
    finally:
        if image_a is not None and isinstance(baseline, (bytes, bytearray)):
            image_a.pixels.close()
        if image_b is not None and isinstance(actual, (bytes, bytearray)):
            image_b.pixels.close()


def _compare_rasters(
    image_a: RasterImage,
    image_b: RasterImage,
    color: tuple[int, int, int],
    options: ComparisonOptions,
) -> ComparisonResult:
    depth = common_depth(image_a, image_b, options.max_color_depth)
    normalized_a = normalize(image_a, depth)
    normalized_b = normalize(image_b, depth)

    matrix, match_count = build_matrix(normalized_a, normalized_b)
    percent = match_percent(match_count, image_a)

    labeled, last_region_id = group_regions(matrix, options.threshold)
    differences, annotated = extract_and_render(
        labeled, FIRST_REGION_ID, last_region_id, image_b, color, options.line_width
    )

    if image_a.size != image_b.size:
        logger.info(
            "Compared images of different sizes, only the shared area was scanned",
            extra={
                "image_a_size": image_a.size,
                "image_b_size": image_b.size,
                "matrix_size": labeled.size,
            },
        )

    logger.info(
        "Image comparison finished",
        extra={
            "match_percent": percent,
            "region_count": len(differences),
            "color_depth": depth,
        },
    )

    return ComparisonResult(
        match_percent=percent,
        differences=differences,
        annotated_image=annotated,
        matrix=labeled,
        color_depth=depth,
        tolerance=options.tolerance,
        before_width=image_a.width,
        before_height=image_a.height,
        after_width=image_b.width,
        after_height=image_b.height,
    )
