from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from visualdiff.image_diff.matrix import build_matrix, is_matched, match_percent, strict_match_percent
from visualdiff.image_diff.types import DiffMatrix, RasterImage


def _raster(width: int, height: int, color: tuple[int, ...] = (100, 100, 100, 255)) -> RasterImage:
    return RasterImage.from_source(Image.new("RGBA", (width, height), color))


class TestIsMatched:
    def test_identical_pixels(self):
        assert is_matched(0xFF336699, 0xFF336699)

    def test_same_gray_level(self):
        assert is_matched(0xFF0A141E, 0xFF141414)

    def test_alpha_participates(self):
        assert not is_matched(0xFF141414, 0x80141414)

    def test_different_gray_level(self):
        assert not is_matched(0xFF000000, 0xFFFFFFFF)


class TestBuildMatrix:
    def test_marks_differing_pixels(self):
        image_a = Image.new("RGBA", (3, 2), (100, 100, 100, 255))
        image_b = image_a.copy()
        image_b.putpixel((2, 1), (0, 0, 0, 255))

        matrix, match_count = build_matrix(
            RasterImage.from_source(image_a), RasterImage.from_source(image_b)
        )
        assert match_count == 5
        assert list(matrix.rows()) == [[0, 0, 0], [0, 0, 1]]
        assert matrix[2, 1] == 1

    def test_baseline_larger_than_actual(self):
        matrix, match_count = build_matrix(_raster(4, 4), _raster(2, 3))
        assert matrix.size == (2, 3)
        assert match_count == 6

    def test_baseline_smaller_than_actual(self):
        matrix, match_count = build_matrix(_raster(2, 2), _raster(4, 4))
        assert matrix.size == (2, 2)
        assert match_count == 4
        assert matrix == DiffMatrix(2, 2)

    def test_agrees_with_scalar_pixel_test(self):
        image_a = Image.new("RGBA", (4, 3))
        image_b = Image.new("RGBA", (4, 3))
        pixels_a = [
            (10, 20, 30, 255), (0, 0, 0, 255), (255, 255, 255, 255), (1, 2, 3, 0),
            (9, 9, 9, 128), (200, 10, 10, 255), (0, 0, 3, 255), (254, 255, 255, 255),
            (40, 40, 41, 255), (7, 8, 9, 10), (255, 0, 0, 255), (0, 0, 0, 0),
        ]
        pixels_b = [
            (20, 20, 20, 255), (0, 0, 0, 254), (255, 255, 254, 255), (2, 2, 2, 0),
            (9, 9, 9, 129), (73, 73, 74, 255), (1, 1, 1, 255), (255, 255, 255, 255),
            (40, 41, 41, 255), (8, 8, 8, 10), (85, 85, 85, 255), (255, 255, 255, 0),
        ]
        image_a.putdata(pixels_a)
        image_b.putdata(pixels_b)
        raster_a = RasterImage.from_source(image_a)
        raster_b = RasterImage.from_source(image_b)

        matrix, match_count = build_matrix(raster_a, raster_b)
        expected = [
            [0 if is_matched(raster_a.packed(x, y), raster_b.packed(x, y)) else 1 for x in range(4)]
            for y in range(3)
        ]
        assert list(matrix.rows()) == expected
        assert match_count == sum(row.count(0) for row in expected)
        assert 0 < match_count < 12

    def test_matrix_is_an_array(self):
        matrix, _ = build_matrix(_raster(5, 2), _raster(3, 4))
        assert isinstance(matrix.cells, np.ndarray)
        assert matrix.cells.shape == (2, 3)


class TestMatchPercent:
    def test_rounds_to_two_decimals(self):
        assert match_percent(1, _raster(3, 1)) == 33.33
        assert match_percent(91, _raster(10, 10)) == 91.0

    def test_uses_baseline_area(self):
        assert match_percent(4, _raster(4, 4)) == 25.0


class TestStrictMatchPercent:
    def test_gray_equivalent_pixels_differ(self):
        image_a = _raster(2, 2, (10, 20, 30, 255))
        image_b = _raster(2, 2, (20, 20, 20, 255))
        assert strict_match_percent(image_a, image_b) == 0.0
        _, match_count = build_matrix(image_a, image_b)
        assert match_count == 4

    def test_uses_shared_area(self):
        assert strict_match_percent(_raster(4, 4), _raster(2, 2)) == 100.0


class TestRasterImage:
    def test_packed_argb(self):
        img = RasterImage.from_source(Image.new("RGB", (1, 1), (0x12, 0x34, 0x56)))
        assert img.depth == 24
        assert img.packed(0, 0) == 0xFF123456

    def test_rgba_view_is_cached(self):
        img = RasterImage.from_source(Image.new("RGB", (2, 2), (1, 2, 3)))
        first = img.rgba()
        assert first.mode == "RGBA"
        assert img.rgba() is first
        assert img.packed(1, 1) == 0xFF010203

    def test_rgba_source_is_not_converted(self):
        source = Image.new("RGBA", (2, 2), (1, 2, 3, 4))
        img = RasterImage.from_source(source)
        assert img.rgba() is source


class TestDiffMatrix:
    def test_defaults_to_matching_cells(self):
        matrix = DiffMatrix(3, 2)
        assert matrix.cells.shape == (2, 3)
        assert matrix.count(0) == 6

    def test_indexing_is_x_then_y(self):
        matrix = DiffMatrix.from_rows([[0, 1, 0], [0, 0, 2]])
        assert matrix[1, 0] == 1
        assert matrix[2, 1] == 2
        matrix[0, 1] = 3
        assert list(matrix.rows()) == [[0, 1, 0], [3, 0, 2]]

    def test_accepts_array(self):
        matrix = DiffMatrix(2, 2, np.array([[1, 0], [0, 1]]))
        assert matrix == DiffMatrix.from_rows([[1, 0], [0, 1]])

    def test_copy_is_independent(self):
        matrix = DiffMatrix.from_rows([[1, 0]])
        copied = matrix.copy()
        copied[0, 0] = 5
        assert matrix[0, 0] == 1

    def test_cell_count_must_fit(self):
        with pytest.raises(ValueError):
            DiffMatrix(2, 2, [0, 0, 0])
        with pytest.raises(ValueError):
            DiffMatrix.from_rows([[0, 0], [0]])
