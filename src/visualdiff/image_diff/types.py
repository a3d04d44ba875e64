from __future__ import annotations

import base64
import io
from collections.abc import Iterator
from typing import NamedTuple

import numpy as np
import orjson
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from visualdiff.image_diff.errors import InvalidImageInput
from visualdiff.image_diff.tolerance import ToleranceVerdict, evaluate_tolerance

MATCH = 0
UNGROUPED = 1

_MODE_DEPTHS = {
    "1": 1,
    "L": 8,
    "P": 8,
    "LA": 16,
    "La": 16,
    "PA": 16,
    "I;16": 16,
    "I;16L": 16,
    "I;16B": 16,
    "I;16N": 16,
    "RGB": 24,
    "YCbCr": 24,
    "LAB": 24,
    "HSV": 24,
    "RGBA": 32,
    "RGBa": 32,
    "RGBX": 32,
    "CMYK": 32,
    "I": 32,
    "F": 32,
}


def infer_depth(img: Image.Image) -> int:
    depth = _MODE_DEPTHS.get(img.mode)
    if depth is None:
        raise InvalidImageInput(f"unsupported image mode: {img.mode}")
    if img.mode == "P":
        colors = len(img.getpalette() or ()) // 3
        if colors <= 2:
            return 1
        if colors <= 4:
            return 2
        if colors <= 16:
            return 4
    return depth


def _as_image(source: bytes | Image.Image) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        try:
            img = Image.open(io.BytesIO(source))
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageInput("image bytes could not be decoded") from e
        try:
            img.load()
        except OSError as e:
            img.close()
            raise InvalidImageInput("image bytes could not be decoded") from e
        return img
    if isinstance(source, Image.Image):
        return source
    if source is None:
        raise InvalidImageInput("image input is missing")
    raise InvalidImageInput(f"unsupported image input type: {type(source).__name__}")


def pack_argb(pixel: tuple[int, int, int, int]) -> int:
    r, g, b, a = pixel
    return (a << 24) | (r << 16) | (g << 8) | b


class RasterImage(BaseModel):
    """A decoded pixel grid together with the color depth it is held at.

    The depth is tracked explicitly because Pillow stores every quantized
    image as an 8-bit ``P`` image regardless of how many palette entries are
    actually in use.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pixels: Image.Image
    depth: int

    _rgba: Image.Image | None = PrivateAttr(default=None)

    @classmethod
    def from_source(cls, source: RasterImage | bytes | Image.Image | None) -> RasterImage:
        if isinstance(source, RasterImage):
            return source
        img = _as_image(source)  # type: ignore[arg-type]
        try:
            if img.width <= 0 or img.height <= 0:
                raise InvalidImageInput(f"image has no pixels: {img.width}x{img.height}")
            return cls(pixels=img, depth=infer_depth(img))
        except InvalidImageInput:
            if img is not source:
                img.close()
            raise

    @property
    def width(self) -> int:
        return self.pixels.width

    @property
    def height(self) -> int:
        return self.pixels.height

    @property
    def size(self) -> tuple[int, int]:
        return self.pixels.size

    def rgba(self) -> Image.Image:
        if self.pixels.mode == "RGBA":
            return self.pixels
        if self._rgba is None:
            self._rgba = self.pixels.convert("RGBA")
        return self._rgba

    def rgba_array(self) -> np.ndarray:
        """The pixels as an ``(height, width, 4)`` RGBA array."""
        return np.asarray(self.rgba(), dtype=np.uint8)

    def packed(self, x: int, y: int) -> int:
        return pack_argb(self.rgba().getpixel((x, y)))


class DiffMatrix:
    """Grid of per-pixel comparison states, held as an ``(height, width)`` array.

    ``0`` marks a matching pixel, ``1`` a differing pixel that has not been
    grouped yet and any value ``>= 2`` the id of the region the pixel belongs
    to. The grid only spans the area both images cover.
    """

    __slots__ = ("width", "height", "cells")

    def __init__(
        self, width: int, height: int, cells: np.ndarray | list[int] | None = None
    ) -> None:
        if cells is None:
            grid = np.full((height, width), MATCH, dtype=np.int32)
        else:
            grid = np.array(cells, dtype=np.int32)
            if grid.size != width * height:
                raise ValueError(f"expected {width * height} cells, got {grid.size}")
            grid = grid.reshape(height, width)
        self.width = width
        self.height = height
        self.cells = grid

    @classmethod
    def from_rows(cls, rows: list[list[int]]) -> DiffMatrix:
        height = len(rows)
        width = len(rows[0]) if rows else 0
        for row in rows:
            if len(row) != width:
                raise ValueError("rows must all have the same length")
        return cls(width, height, [cell for row in rows for cell in row])

    def __getitem__(self, xy: tuple[int, int]) -> int:
        x, y = xy
        return int(self.cells[y, x])

    def __setitem__(self, xy: tuple[int, int], value: int) -> None:
        x, y = xy
        self.cells[y, x] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DiffMatrix):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self.cells, other.cells))

    def __repr__(self) -> str:
        return f"DiffMatrix({self.width}x{self.height})"

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def copy(self) -> DiffMatrix:
        return DiffMatrix(self.width, self.height, self.cells.copy())

    def rows(self) -> Iterator[list[int]]:
        for row in self.cells:
            yield row.tolist()

    def count(self, value: int) -> int:
        return int(np.count_nonzero(self.cells == value))


class BoundingBox(NamedTuple):
    min_x: int
    min_y: int
    max_x: int
    max_y: int

    def to_difference(self) -> Difference:
        return Difference(
            x=self.min_x,
            y=self.min_y,
            width=self.max_x - self.min_x + 1,
            height=self.max_y - self.min_y + 1,
        )


class Difference(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(ge=1)
    height: int = Field(ge=1)


def _encode_png_base64(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


class DiffReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    match_percent: float
    differences: list[Difference]
    color_depth: int
    width: int
    height: int
    before_width: int
    before_height: int
    after_width: int
    after_height: int
    annotated_png: str

    def to_json(self) -> bytes:
        return orjson.dumps(self.model_dump())


class ComparisonResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    match_percent: float = Field(ge=0, le=100)
    differences: list[Difference]
    annotated_image: Image.Image
    matrix: DiffMatrix
    color_depth: int
    tolerance: float | None = None
    before_width: int
    before_height: int
    after_width: int
    after_height: int

    @property
    def matched(self) -> bool:
        return not self.differences

    def evaluate(self, tolerance: float | None = None) -> ToleranceVerdict:
        if tolerance is None:
            tolerance = self.tolerance
        return evaluate_tolerance(self.match_percent, tolerance)

    def to_report(self) -> DiffReport:
        return DiffReport(
            match_percent=self.match_percent,
            differences=list(self.differences),
            color_depth=self.color_depth,
            width=self.matrix.width,
            height=self.matrix.height,
            before_width=self.before_width,
            before_height=self.before_height,
            after_width=self.after_width,
            after_height=self.after_height,
            annotated_png=_encode_png_base64(self.annotated_image),
        )
