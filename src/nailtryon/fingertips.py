"""
Fingertip estimation from a skin boundary point set (fallback path).

Fingertips are taken to be the topmost boundary points, thinned out with a greedy
non-maximum suppression and then named by their left-to-right rank. The naming only
holds for an upright, palm-facing hand with all five fingers visible.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from .types import FINGER_NAMES, Fingertip, NailPosition
from .utils import distance


MAX_CANDIDATES = 20
MIN_TIP_DISTANCE = 30.0
MAX_TIPS = 5

# Rectangle drawn for each fallback tip (pixels).
NAIL_OFFSET_Y = 10
NAIL_WIDTH = 20
NAIL_HEIGHT = 25


def estimate_fingertips(
    points: Iterable[Tuple[int, int]],
    max_candidates: int = MAX_CANDIDATES,
    min_distance: float = MIN_TIP_DISTANCE,
    max_tips: int = MAX_TIPS,
) -> List[Fingertip]:
    # sorted() is stable, so points on the same row keep their incoming order.
    by_y = sorted(points, key=lambda p: p[1])
    candidates = by_y[:max_candidates]

    accepted: List[Tuple[int, int]] = []
    for pt in candidates:
        if len(accepted) >= max_tips:
            break
        if all(distance(pt, other) > min_distance for other in accepted):
            accepted.append(pt)

    accepted.sort(key=lambda p: p[0])
    return [
        Fingertip(id=i, x=int(x), y=int(y), name=FINGER_NAMES[i])
        for i, (x, y) in enumerate(accepted)
    ]


def fingertip_by_name(tips: Sequence[Fingertip], name: str) -> Optional[Fingertip]:
    for tip in tips:
        if tip.name == name:
            return tip
    return None


def nail_positions(tips: Sequence[Fingertip]) -> List[NailPosition]:
    """Place a fixed-size nail rectangle just above each fingertip."""
    return [
        NailPosition(
            x=float(tip.x),
            y=float(tip.y - NAIL_OFFSET_Y),
            width=float(NAIL_WIDTH),
            height=float(NAIL_HEIGHT),
            rotation=0.0,
            finger_id=tip.id,
            finger_name=tip.name,
        )
        for tip in tips
    ]


def synthetic_nail_positions(width: int, height: int, count: int = MAX_TIPS) -> List[NailPosition]:
    """
    Evenly spaced nail placeholders for when nothing at all was detected.

    Nails span the middle half of the image at 65% of its height; the outer fingers
    sit a little lower than the inner ones.
    """

    if width <= 0 or height <= 0:
        return []

    nail_w = width * 0.04
    nail_h = nail_w * 1.5
    region_w = width * 0.5
    start_x = (width - region_w) / 2
    y_pos = height * 0.65

    out: List[NailPosition] = []
    for i in range(count):
        cx = start_x + (region_w / count) * (i + 0.5)
        y_offset = 0.0
        if i == 0 or i == count - 1:
            y_offset = nail_h * 0.3
        elif i == 1 or i == count - 2:
            y_offset = nail_h * 0.1
        name = FINGER_NAMES[i] if i < len(FINGER_NAMES) else f"finger-{i}"
        out.append(
            NailPosition(
                x=cx,
                y=y_pos + y_offset,
                width=nail_w,
                height=nail_h,
                rotation=0.0,
                finger_id=i,
                finger_name=name,
            )
        )
    return out
