from __future__ import annotations

import math
from typing import List

from .types import Point2


def distance(p0: Point2, p1: Point2) -> float:
    return math.hypot(p0[0] - p1[0], p0[1] - p1[1])


def is_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def normalize_angle(angle: float) -> float:
    """Wrap degrees into [0, 360)."""
    a = math.fmod(angle, 360.0)
    if a < 0:
        a += 360.0
    # fmod of a tiny negative can round back up to 360.0
    if a >= 360.0:
        a = 0.0
    return a


def rotate_point(x: float, y: float, degrees: float, cx: float = 0.0, cy: float = 0.0) -> Point2:
    """Rotate (x, y) clockwise on screen (y grows downwards) around (cx, cy)."""
    rads = math.radians(degrees)
    cos_a = math.cos(rads)
    sin_a = math.sin(rads)
    tx = x - cx
    ty = y - cy
    return cx + tx * cos_a - ty * sin_a, cy + tx * sin_a + ty * cos_a


def rect_corners(cx: float, cy: float, half_w: float, half_h: float, degrees: float) -> List[Point2]:
    """Corners (tl, tr, br, bl) of a rectangle rotated about its center."""
    local = [(-half_w, -half_h), (half_w, -half_h), (half_w, half_h), (-half_w, half_h)]
    return [rotate_point(cx + lx, cy + ly, degrees, cx, cy) for lx, ly in local]
