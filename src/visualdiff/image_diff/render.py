from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from PIL import Image, ImageDraw
from sentry_sdk.tracing import trace

from visualdiff.image_diff.options import DEFAULT_HIGHLIGHT_COLOR, highlight_rgb
from visualdiff.image_diff.regions import FIRST_REGION_ID
from visualdiff.image_diff.types import BoundingBox, Difference, DiffMatrix, RasterImage

logger = logging.getLogger(__name__)


def find_bounding_boxes(labeled: DiffMatrix) -> dict[int, BoundingBox]:
    cells = labeled.cells
    ys, xs = np.nonzero(cells >= FIRST_REGION_ID)
    if not len(ys):
        return {}
    ids, inverse = np.unique(cells[ys, xs], return_inverse=True)
    min_x = np.full(len(ids), labeled.width)
    min_y = np.full(len(ids), labeled.height)
    max_x = np.full(len(ids), -1)
    max_y = np.full(len(ids), -1)
    np.minimum.at(min_x, inverse, xs)
    np.minimum.at(min_y, inverse, ys)
    np.maximum.at(max_x, inverse, xs)
    np.maximum.at(max_y, inverse, ys)
    return {
        int(region_id): BoundingBox(int(x0), int(y0), int(x1), int(y1))
        for region_id, x0, y0, x1, y1 in zip(ids, min_x, min_y, max_x, max_y)
    }


@trace
def extract_differences(
    labeled: DiffMatrix,
    start_id: int = FIRST_REGION_ID,
    end_id: int | None = None,
) -> list[Difference]:
    """One rectangle per region id in ``start_id..end_id``, in id order.

    Ids that label no cell are skipped.
    """
    if end_id is None:
        end_id = int(labeled.cells.max(initial=0))

    boxes = find_bounding_boxes(labeled)
    differences: list[Difference] = []
    for region_id in range(start_id, end_id + 1):
        box = boxes.get(region_id)
        if box is None:
            logger.debug("skipping empty region", extra={"region_id": region_id})
            continue
        differences.append(box.to_difference())
    return differences


def render_differences(
    actual: RasterImage | Image.Image,
    differences: Sequence[Difference],
    color: int | Sequence[int] = DEFAULT_HIGHLIGHT_COLOR,
    line_width: int = 1,
) -> Image.Image:
    source = actual.pixels if isinstance(actual, RasterImage) else actual
    working = source.copy()
    if working.mode not in ("RGB", "RGBA"):
        working = working.convert("RGBA")

    outline = highlight_rgb(color)
    draw = ImageDraw.Draw(working)
    for diff in differences:
        draw.rectangle(
            (diff.x, diff.y, diff.x + diff.width - 1, diff.y + diff.height - 1),
            outline=outline,
            width=line_width,
        )
    return working


def extract_and_render(
    labeled: DiffMatrix,
    start_id: int,
    end_id: int,
    actual: RasterImage | Image.Image,
    color: int | Sequence[int] = DEFAULT_HIGHLIGHT_COLOR,
    line_width: int = 1,
) -> tuple[list[Difference], Image.Image]:
    differences = extract_differences(labeled, start_id, end_id)
    return differences, render_differences(actual, differences, color, line_width)
