from __future__ import annotations

import logging

import numpy as np
from sentry_sdk.tracing import trace

from visualdiff.image_diff.options import DEFAULT_THRESHOLD
from visualdiff.image_diff.types import UNGROUPED, DiffMatrix

logger = logging.getLogger(__name__)

FIRST_REGION_ID = 2

_DIRECTIONS = (
    (1, 0),
    (-1, 0),
    (0, 1),
    (0, -1),
    (1, 1),
    (-1, -1),
    (1, -1),
    (-1, 1),
)


def jump_offsets(threshold: int) -> list[tuple[int, int]]:
    """Every (dx, dy) a region may grow by: 8 directions, 1..threshold + 1 cells away.

    A step of ``threshold + 1`` leaves a gap of ``threshold`` matching pixels
    between the two differing ones.
    """
    return [
        (dx * step, dy * step) for step in range(1, threshold + 2) for dx, dy in _DIRECTIONS
    ]


def _flood_fill(
    cells: np.ndarray, seed_x: int, seed_y: int, region_id: int, offsets: list[tuple[int, int]]
) -> int:
    height, width = cells.shape
    cells[seed_y, seed_x] = region_id
    stack = [(seed_x, seed_y)]
    filled = 1
    while stack:
        x, y = stack.pop()
        for dx, dy in offsets:
            nx = x + dx
            ny = y + dy
            if nx < 0 or ny < 0 or nx >= width or ny >= height:
                continue
            if cells[ny, nx] != UNGROUPED:
                continue
            cells[ny, nx] = region_id
            stack.append((nx, ny))
            filled += 1
    return filled


@trace
def group_regions(
    matrix: DiffMatrix, threshold: int = DEFAULT_THRESHOLD
) -> tuple[DiffMatrix, int]:
    """Label each cluster of differing pixels with its own region id.

    Region ids start at 2. Two differing pixels belong to the same region when
    they lie on a straight or diagonal line with at most ``threshold``
    matching pixels between them, which bridges the gaps anti-aliasing leaves
    along edges. ``threshold=0`` only joins direct neighbours.

    Worst case cost is ``8 * (threshold + 1)`` neighbour probes per differing
    pixel, so large images peppered with isolated differences are slow to
    group.

    Returns a labeled copy of ``matrix`` and the last region id handed out
    (``1`` when nothing differed).
    """
    if threshold < 0:
        raise ValueError(f"threshold must not be negative, got {threshold}")

    labeled = matrix.copy()
    cells = labeled.cells
    offsets = jump_offsets(threshold)
    counter = FIRST_REGION_ID
    # np.nonzero walks the grid row-major, so ids follow scan order
    seeds_y, seeds_x = np.nonzero(cells == UNGROUPED)
    for y, x in zip(seeds_y.tolist(), seeds_x.tolist()):
        if cells[y, x] != UNGROUPED:
            continue
        filled = _flood_fill(cells, x, y, counter, offsets)
        logger.debug("grouped region", extra={"region_id": counter, "pixel_count": filled})
        counter += 1

    last_region_id = counter - 1
    logger.debug(
        "grouped difference regions",
        extra={"region_count": last_region_id - FIRST_REGION_ID + 1, "threshold": threshold},
    )
    return labeled, last_region_id
