"""
Point and segment math used for hit-testing annotations.
"""
import math
from typing import Tuple

Point = Tuple[float, float]


def distance_point_to_segment(p: Point, v: Point, w: Point) -> float:
    """
    Euclidean distance from point p to the segment [v, w].

    Args:
        p: Query point
        v: Segment start
        w: Segment end

    Returns:
        Distance to the closest point of the segment. A zero-length
        segment is treated as the single point v.
    """
    length_sq = (w[0] - v[0]) ** 2 + (w[1] - v[1]) ** 2

    if length_sq == 0:
        return math.hypot(p[0] - v[0], p[1] - v[1])

    # Projection parameter, clamped to the segment
    t = ((p[0] - v[0]) * (w[0] - v[0]) + (p[1] - v[1]) * (w[1] - v[1])) / length_sq
    t = max(0.0, min(1.0, t))

    nearest_x = v[0] + t * (w[0] - v[0])
    nearest_y = v[1] + t * (w[1] - v[1])
    return math.hypot(p[0] - nearest_x, p[1] - nearest_y)


def point_in_rect(p: Point, x0: float, y0: float, x1: float, y1: float) -> bool:
    """Check if a point lies inside an axis-aligned rectangle (inclusive)."""
    return x0 <= p[0] <= x1 and y0 <= p[1] <= y1
