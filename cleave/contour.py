"""Marching-squares boundary tracing over a label map."""
import logging
from typing import List, Optional, Tuple

import numpy as np

from cleave.types import Contour, LabelMap, Point

logger = logging.getLogger(__name__)

# Cell edges
TOP, RIGHT, BOTTOM, LEFT = 0, 1, 2, 3

# Case index -> (entry edge, exit edge) segments.
# Corner weights: top-left=8, top-right=4, bottom-right=2, bottom-left=1.
# Saddles 5 and 10 use one fixed split, no center-sample disambiguation.
LINE_LOOKUP: Tuple[Tuple[Tuple[int, int], ...], ...] = (
    (),                                  # 0: empty
    ((LEFT, BOTTOM),),                   # 1: bottom-left
    ((BOTTOM, RIGHT),),                  # 2: bottom-right
    ((LEFT, RIGHT),),                    # 3: bottom band
    ((RIGHT, TOP),),                     # 4: top-right
    ((TOP, LEFT), (RIGHT, BOTTOM)),      # 5: saddle, top-right + bottom-left
    ((BOTTOM, TOP),),                    # 6: right band
    ((LEFT, TOP),),                      # 7: all but top-left
    ((TOP, LEFT),),                      # 8: top-left
    ((TOP, BOTTOM),),                    # 9: left band
    ((TOP, RIGHT), (LEFT, BOTTOM)),      # 10: saddle, top-left + bottom-right
    ((TOP, RIGHT),),                     # 11: all but top-right
    ((RIGHT, LEFT),),                    # 12: top band
    ((RIGHT, BOTTOM),),                  # 13: all but bottom-right
    ((BOTTOM, LEFT),),                   # 14: all but bottom-left
    (),                                  # 15: full
)

# Cell offset when leaving through an edge
_STEP = {
    TOP: (0, -1),
    RIGHT: (1, 0),
    BOTTOM: (0, 1),
    LEFT: (-1, 0),
}


def edge_point(x: int, y: int, edge: int) -> Point:
    """Midpoint of one edge of the cell at (x, y)."""
    if edge == TOP:
        return (x + 0.5, float(y))
    if edge == RIGHT:
        return (float(x + 1), y + 0.5)
    if edge == BOTTOM:
        return (x + 0.5, float(y + 1))
    return (float(x), y + 0.5)


def case_grid(mask: np.ndarray) -> np.ndarray:
    """
    Marching-squares case index of every 2x2 cell.

    Args:
        mask: Boolean (H, W) membership grid

    Returns:
        (H-1, W-1) uint8 array of case indexes in [0, 15]
    """
    m = mask.astype(np.uint8)
    return (
        (m[:-1, :-1] << 3)   # top-left
        | (m[:-1, 1:] << 2)  # top-right
        | (m[1:, 1:] << 1)   # bottom-right
        | m[1:, :-1]         # bottom-left
    )


def _find_segment(case: int, arrival: int) -> Optional[Tuple[int, int]]:
    for segment in LINE_LOOKUP[case]:
        if segment[0] == arrival:
            return segment
    return None


def _walk(
    cases: np.ndarray,
    visited: np.ndarray,
    x: int,
    y: int,
    max_steps: int,
) -> Contour:
    """Follow one boundary from the seed cell (x, y) until it closes or breaks."""
    rows, cols = cases.shape
    start_entry, exit_edge = LINE_LOOKUP[cases[y, x]][0]
    points = [edge_point(x, y, start_entry)]
    cx, cy = x, y
    steps = 0

    while steps < max_steps:
        visited[cy * cols + cx] = True
        points.append(edge_point(cx, cy, exit_edge))

        dx, dy = _STEP[exit_edge]
        cx += dx
        cy += dy
        if cx < 0 or cx >= cols or cy < 0 or cy >= rows:
            break

        case = int(cases[cy, cx])
        if case == 0 or case == 15:
            break

        segment = _find_segment(case, (exit_edge + 2) % 4)
        if segment is None:
            logger.debug(f"No segment entering case {case} at cell ({cx}, {cy}), closing early")
            break

        entry_edge, exit_edge = segment
        if cx == x and cy == y and entry_edge == start_entry:
            break
        steps += 1

    return points


def trace_mask(mask: np.ndarray) -> List[Contour]:
    """
    Trace every boundary of a boolean region mask.

    Cells are scanned row by row; each unvisited boundary cell seeds a new
    contour from its first segment. Walks stop on loop closure, on leaving
    the cell grid, on a segment lookup miss, or when the step budget of
    width * height steps runs out. Contours are returned as gathered,
    including open or short ones.

    Args:
        mask: Boolean (H, W) membership grid

    Returns:
        List of contours, each a list of (x, y) edge midpoints
    """
    h, w = mask.shape[:2]
    if h < 2 or w < 2:
        return []

    cases = case_grid(mask)
    cols = w - 1
    visited = np.zeros(cases.size, dtype=bool)
    max_steps = w * h

    boundary = np.flatnonzero((cases != 0) & (cases != 15))
    contours = []
    for flat_index in boundary:
        if visited[flat_index]:
            continue
        y, x = divmod(int(flat_index), cols)
        contours.append(_walk(cases, visited, x, y, max_steps))

    return contours


def trace_contours(labels: LabelMap, color_index: int) -> List[Contour]:
    """
    Trace the boundaries of the region where labels == color_index.

    Pixels outside the image never belong to the region.

    Args:
        labels: (H, W) label map
        color_index: Palette index to trace

    Returns:
        List of contours for this color (possibly empty)
    """
    return trace_mask(labels == color_index)
