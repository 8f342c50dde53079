"""Tests for corner-cutting path smoothing."""
import numpy as np
import pytest

from cleave.contour import trace_mask
from cleave.smooth import format_number, smooth_contour, smooth_contours


class TestFormatNumber:

    @pytest.mark.parametrize("value, expected", [
        (1.0, "1"),
        (1.5, "1.5"),
        (0.25, "0.25"),
        (2.75, "2.75"),
        (12.0, "12"),
        (-0.0, "0"),
    ])
    def test_minimal_digits(self, value, expected):
        assert format_number(value) == expected


class TestSmoothContour:
    """Test cases for smooth_contour."""

    def test_square(self):
        square = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]

        path = smooth_contour(square)

        assert path == "M 0 1 Q 0 0 1 0 Q 2 0 2 1 Q 2 2 1 2 Q 0 2 0 1 Z"

    def test_starts_at_closing_midpoint(self):
        triangle = [(1.0, 1.0), (3.0, 1.0), (2.0, 3.0)]

        path = smooth_contour(triangle)

        assert path.startswith("M 1.5 2 ")

    @pytest.mark.parametrize("points", [[], [(0.0, 0.0)], [(0.0, 0.0), (1.0, 1.0)]])
    def test_degenerate_contours_dropped(self, points):
        assert smooth_contour(points) == ""

    def test_command_counts_match_corners(self):
        rng = np.random.default_rng(5)
        mask = rng.random((18, 18)) > 0.6

        for contour in trace_mask(mask):
            path = smooth_contour(contour)
            if len(contour) < 3:
                assert path == ""
                continue
            tokens = path.split()
            assert tokens.count("M") == 1
            assert tokens.count("Z") == 1
            assert tokens.count("Q") == len(contour)
            assert tokens[0] == "M" and tokens[-1] == "Z"


class TestSmoothContours:

    def test_joins_and_skips_short(self):
        square = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]

        path = smooth_contours([square, [(5.0, 5.0), (6.0, 6.0)], square])

        assert path.count("M") == 2
        assert path.count("Z") == 2

    def test_no_contours(self):
        assert smooth_contours([]) == ""
