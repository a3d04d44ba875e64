"""Color depth equalization.

Two captures of the same screen can come out of different pipelines at
different bit depths. Before the pixels are compared both images are brought
down to the lower of the two depths, so the richer capture is not penalized
for detail the poorer one could never have held.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from PIL import Image
from sentry_sdk.tracing import trace

from visualdiff.image_diff.errors import UnsupportedColorDepth
from visualdiff.image_diff.options import DEF_COLOR_DEPTH
from visualdiff.image_diff.palettes import (
    GRAY_4,
    INDEXED_256,
    SUPPORTED_DEPTHS,
    VGA_16,
    palette_image,
)
from visualdiff.image_diff.types import RasterImage

logger = logging.getLogger(__name__)


def _to_rgba(img: Image.Image) -> Image.Image:
    return img.convert("RGBA")


def _to_rgb(img: Image.Image) -> Image.Image:
    return img.convert("RGB")


def _to_rgb565(img: Image.Image) -> Image.Image:
    red, green, blue = img.convert("RGB").split()
    return Image.merge(
        "RGB",
        (
            red.point(lambda v: v & 0xF8),
            green.point(lambda v: v & 0xFC),
            blue.point(lambda v: v & 0xF8),
        ),
    )


def _quantizer(entries: tuple[int, ...]) -> Callable[[Image.Image], Image.Image]:
    def quantize(img: Image.Image) -> Image.Image:
        return img.convert("RGB").quantize(
            palette=palette_image(entries), dither=Image.Dither.NONE
        )

    return quantize


def _to_monochrome(img: Image.Image) -> Image.Image:
    return img.convert("L").convert("1", dither=Image.Dither.NONE)


_CONVERTERS: dict[int, Callable[[Image.Image], Image.Image]] = {
    32: _to_rgba,
    24: _to_rgb,
    16: _to_rgb565,
    8: _quantizer(INDEXED_256),
    4: _quantizer(VGA_16),
    2: _quantizer(GRAY_4),
    1: _to_monochrome,
}


def common_depth(
    first: RasterImage, second: RasterImage, ceiling: int = DEF_COLOR_DEPTH
) -> int:
    if ceiling not in SUPPORTED_DEPTHS:
        raise UnsupportedColorDepth(ceiling)
    return min(first.depth, second.depth, ceiling)


@trace
def normalize(image: RasterImage, target_depth: int) -> RasterImage:
    if target_depth not in SUPPORTED_DEPTHS:
        raise UnsupportedColorDepth(target_depth)

    if image.depth <= target_depth:
        return image

    logger.debug(
        "normalizing image color depth",
        extra={
            "source_depth": image.depth,
            "color_depth": target_depth,
            "image_size": image.size,
        },
    )
    converted = _CONVERTERS[target_depth](image.pixels)
    return RasterImage(pixels=converted, depth=target_depth)
