from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from visualdiff.image_diff.palettes import SUPPORTED_DEPTHS

DEFAULT_THRESHOLD = 5
DEFAULT_HIGHLIGHT_COLOR = 0xFF0000
DEF_COLOR_DEPTH = 32


def highlight_rgb(color: int | Sequence[int]) -> tuple[int, int, int]:
    """Turn a packed ``0xRRGGBB`` int or an ``(r, g, b)`` sequence into a tuple."""
    if isinstance(color, bool):
        raise ValueError(f"invalid highlight color: {color!r}")
    if isinstance(color, int):
        if not 0 <= color <= 0xFFFFFF:
            raise ValueError(f"highlight color out of range: {color:#x}")
        return (color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF
    try:
        rgb = tuple(color)
    except TypeError as e:
        raise ValueError(f"invalid highlight color: {color!r}") from e
    if len(rgb) != 3 or not all(isinstance(c, int) and 0 <= c <= 255 for c in rgb):
        raise ValueError(f"invalid highlight color: {color!r}")
    return rgb  # type: ignore[return-value]


class ComparisonOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Max jump distance, in pixels, between differing pixels of one region.
    threshold: int = Field(default=DEFAULT_THRESHOLD, ge=0)
    highlight_color: tuple[int, int, int] = highlight_rgb(DEFAULT_HIGHLIGHT_COLOR)
    max_color_depth: int = DEF_COLOR_DEPTH
    line_width: int = Field(default=1, ge=1)
    tolerance: float | None = Field(default=None, ge=0, le=100)

    @field_validator("highlight_color", mode="before")
    @classmethod
    def _coerce_highlight_color(cls, value: object) -> tuple[int, int, int]:
        return highlight_rgb(value)  # type: ignore[arg-type]

    @field_validator("max_color_depth")
    @classmethod
    def _check_max_color_depth(cls, value: int) -> int:
        if value not in SUPPORTED_DEPTHS:
            raise ValueError(f"max_color_depth must be one of {SUPPORTED_DEPTHS}")
        return value
