from __future__ import annotations

from collections.abc import Sequence

from PIL import Image

SUPPORTED_DEPTHS = (32, 24, 16, 8, 4, 2, 1)

PALETTE_SIZE = 256

# 16-color VGA text-mode palette, 0xRRGGBB.
VGA_16 = (
    0x000000,
    0x0000AA,
    0x00AA00,
    0x00AAAA,
    0xAA0000,
    0xAA00AA,
    0xAA5500,
    0xAAAAAA,
    0x555555,
    0x5555FF,
    0x55FF55,
    0x55FFFF,
    0xFF5555,
    0xFF55FF,
    0xFFFF55,
    0xFFFFFF,
)

GRAY_4 = (0x000000, 0x555555, 0xAAAAAA, 0xFFFFFF)

MONOCHROME = (0x000000, 0xFFFFFF)


def _build_indexed_256() -> tuple[int, ...]:
    levels = (0x00, 0x33, 0x66, 0x99, 0xCC, 0xFF)
    cube = [(r << 16) | (g << 8) | b for r in levels for g in levels for b in levels]
    grays = []
    for step in range(1, PALETTE_SIZE - len(cube) + 1):
        v = round(step * 255 / (PALETTE_SIZE - len(cube) + 1))
        grays.append((v << 16) | (v << 8) | v)
    return tuple(cube + grays)


# 6x6x6 color cube followed by a 40-step gray ramp.
INDEXED_256 = _build_indexed_256()

PALETTES: dict[int, tuple[int, ...]] = {
    8: INDEXED_256,
    4: VGA_16,
    2: GRAY_4,
    1: MONOCHROME,
}


def palette_image(entries: Sequence[int]) -> Image.Image:
    """Build a 1x1 ``P`` image carrying ``entries`` as its palette.

    Pillow's quantizer maps onto all 256 palette slots, so the unused slots are
    filled with the first entry rather than left as implicit black.
    """
    if not entries or len(entries) > PALETTE_SIZE:
        raise ValueError(f"palette must hold 1..{PALETTE_SIZE} colors, got {len(entries)}")

    padded = list(entries) + [entries[0]] * (PALETTE_SIZE - len(entries))
    data: list[int] = []
    for color in padded:
        data.extend(((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF))

    img = Image.new("P", (1, 1))
    img.putpalette(data)
    return img
