"""Corner-cutting quadratic smoothing of traced contours."""
from typing import Iterable

from cleave.types import Contour


def format_number(x: float, precision: int = 2) -> str:
    """
    Format a coordinate with minimal digits.

    Contour coordinates are multiples of 0.25, so two decimals are exact.
    """
    formatted = f"{x:.{precision}f}"
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    if formatted == "-0":
        formatted = "0"
    return formatted


def smooth_contour(contour: Contour) -> str:
    """
    Convert a closed polyline into a smooth closed SVG path.

    Every contour point acts as the control point of one quadratic segment
    whose end is the midpoint to the following point. The path starts at the
    midpoint between the last and first points so the closure is seamless.

    Args:
        contour: Ordered (x, y) points

    Returns:
        Path data "M ... Q ... Z", or "" for fewer than 3 points
    """
    n = len(contour)
    if n < 3:
        return ""

    fmt = format_number
    last_x, last_y = contour[-1]
    first_x, first_y = contour[0]
    commands = [f"M {fmt((last_x + first_x) / 2)} {fmt((last_y + first_y) / 2)}"]

    for i in range(n):
        cx, cy = contour[i]
        nx, ny = contour[(i + 1) % n]
        commands.append(f"Q {fmt(cx)} {fmt(cy)} {fmt((cx + nx) / 2)} {fmt((cy + ny) / 2)}")

    commands.append("Z")
    return " ".join(commands)


def smooth_contours(contours: Iterable[Contour]) -> str:
    """Smooth all contours of one color into a single path string."""
    paths = (smooth_contour(c) for c in contours)
    return " ".join(p for p in paths if p)
