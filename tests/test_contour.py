"""Tests for marching-squares contour tracing."""
import numpy as np
import pytest
from skimage import measure

from cleave.contour import (
    BOTTOM,
    LEFT,
    LINE_LOOKUP,
    RIGHT,
    TOP,
    case_grid,
    edge_point,
    trace_contours,
    trace_mask,
)


class TestLookupTable:
    """The static case -> segment table."""

    def test_sixteen_cases(self):
        assert len(LINE_LOOKUP) == 16

    def test_empty_and_full_have_no_segments(self):
        assert LINE_LOOKUP[0] == ()
        assert LINE_LOOKUP[15] == ()

    def test_saddles_use_fixed_split(self):
        assert LINE_LOOKUP[5] == ((TOP, LEFT), (RIGHT, BOTTOM))
        assert LINE_LOOKUP[10] == ((TOP, RIGHT), (LEFT, BOTTOM))

    def test_other_cases_have_one_segment(self):
        for case in range(1, 15):
            if case in (5, 10):
                continue
            assert len(LINE_LOOKUP[case]) == 1


class TestGridHelpers:

    def test_edge_points(self):
        assert edge_point(2, 3, TOP) == (2.5, 3.0)
        assert edge_point(2, 3, RIGHT) == (3.0, 3.5)
        assert edge_point(2, 3, BOTTOM) == (2.5, 4.0)
        assert edge_point(2, 3, LEFT) == (2.0, 3.5)

    def test_case_weights(self):
        # top-left=8, top-right=4, bottom-right=2, bottom-left=1
        assert case_grid(np.array([[1, 0], [0, 0]], dtype=bool))[0, 0] == 8
        assert case_grid(np.array([[0, 1], [0, 0]], dtype=bool))[0, 0] == 4
        assert case_grid(np.array([[0, 0], [0, 1]], dtype=bool))[0, 0] == 2
        assert case_grid(np.array([[0, 0], [1, 0]], dtype=bool))[0, 0] == 1
        assert case_grid(np.ones((2, 2), dtype=bool))[0, 0] == 15

    def test_saddle_corners(self):
        # 5 is top-right + bottom-left, 10 is top-left + bottom-right
        assert case_grid(np.array([[0, 1], [1, 0]], dtype=bool))[0, 0] == 5
        assert case_grid(np.array([[1, 0], [0, 1]], dtype=bool))[0, 0] == 10

    def test_case_grid_shape(self):
        assert case_grid(np.zeros((5, 7), dtype=bool)).shape == (4, 6)


class TestTraceMask:
    """Test cases for trace_mask."""

    def test_single_pixel_diamond(self):
        mask = np.zeros((3, 3), dtype=bool)
        mask[1, 1] = True

        contours = trace_mask(mask)

        assert contours == [[(0.5, 1.0), (1.0, 0.5), (1.5, 1.0), (1.0, 1.5), (0.5, 1.0)]]

    def test_empty_mask(self):
        assert trace_mask(np.zeros((10, 10), dtype=bool)) == []

    def test_full_mask(self):
        assert trace_mask(np.ones((10, 10), dtype=bool)) == []

    @pytest.mark.parametrize("shape", [(1, 5), (5, 1), (1, 1)])
    def test_grid_without_cells(self, shape):
        assert trace_mask(np.ones(shape, dtype=bool)) == []

    def test_two_separate_blobs(self):
        mask = np.zeros((20, 20), dtype=bool)
        mask[3:7, 3:7] = True
        mask[12:16, 10:18] = True

        contours = trace_mask(mask)

        assert len(contours) == 2

    def test_rectangle_closes_on_itself(self):
        mask = np.zeros((8, 8), dtype=bool)
        mask[2:5, 3:6] = True

        contours = trace_mask(mask)

        assert len(contours) == 1
        contour = contours[0]
        assert contour[0] == contour[-1]
        # 12 boundary cells around a 3x3 block plus the repeated start point
        assert len(contour) == 13

    def test_matches_reference_marching_squares(self):
        mask = np.zeros((12, 14), dtype=bool)
        mask[2:9, 3:7] = True
        mask[5:10, 6:11] = True

        ours = trace_mask(mask)
        reference = measure.find_contours(mask.astype(float), 0.5)

        assert len(ours) == len(reference) == 1
        ours_points = {(round(x, 3), round(y, 3)) for x, y in ours[0]}
        reference_points = {(round(c, 3), round(r, 3)) for r, c in reference[0]}
        assert ours_points == reference_points

    def test_region_touching_border_is_cut_open(self):
        mask = np.zeros((6, 6), dtype=bool)
        mask[:, :3] = True

        contours = trace_mask(mask)

        # Only the vertical boundary between columns 2 and 3 exists
        assert len(contours) == 1
        assert all(x == 2.5 for x, _ in contours[0])

    def test_diagonal_two_by_two(self):
        assert trace_mask(np.array([[1, 0], [0, 1]], dtype=bool)) == [[(0.5, 0.0), (1.0, 0.5)]]
        assert trace_mask(np.array([[0, 1], [1, 0]], dtype=bool)) == [[(0.5, 0.0), (0.0, 0.5)]]

    def test_saddle_lookup_miss_closes_contour_early(self):
        mask = np.zeros((4, 4), dtype=bool)
        mask[1, 1] = True
        mask[2, 2] = True

        contours = trace_mask(mask)

        assert len(contours) == 2
        assert contours[0] == [
            (0.5, 1.0), (1.0, 0.5), (1.5, 1.0), (2.0, 1.5),
            (2.5, 2.0), (2.0, 2.5), (1.5, 2.0),
        ]
        assert contours[1][0] == (1.0, 1.5)
        assert contours[1][-1] == (1.5, 2.0)

    def test_deterministic(self):
        rng = np.random.default_rng(11)
        mask = rng.random((15, 15)) > 0.5

        assert trace_mask(mask) == trace_mask(mask.copy())


class TestTraceContours:

    def test_traces_requested_label(self):
        labels = np.zeros((6, 6), dtype=np.uint8)
        labels[2:4, 2:4] = 1

        inner = trace_contours(labels, 1)
        outer = trace_contours(labels, 0)

        assert len(inner) == 1
        # Background traces the same boundary from the other side
        assert len(outer) == 1
        assert set(inner[0]) == set(outer[0])

    def test_absent_label(self):
        labels = np.zeros((6, 6), dtype=np.uint8)

        assert trace_contours(labels, 3) == []
