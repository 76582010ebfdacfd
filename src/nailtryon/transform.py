"""
Initial placement of a nail design from hand landmarks.

The constants below are part of the placement contract and are kept exactly:
the design's "up" axis runs along its height (hence +90 degrees), the nail is drawn
1.5x the tip-to-DIP distance, and without an orientation landmark it is 5% of the
hand photo's width.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Optional, Tuple

from .errors import InvalidTransform
from .types import NailTransform, PixelCoordinate, Size2
from .utils import is_finite, normalize_angle


logger = logging.getLogger(__name__)

ANGLE_OFFSET_DEG = 90.0
NAIL_LENGTH_FACTOR = 1.5
HAND_WIDTH_FACTOR = 0.05
DEFAULT_SCALE = 0.1


def calculate_initial_transform(
    nail_width: float,
    nail_height: float,
    target: PixelCoordinate,
    secondary: Optional[PixelCoordinate] = None,
    viewport_width: Optional[float] = None,
    viewport_height: Optional[float] = None,
    hand_width: Optional[float] = None,
    hand_height: Optional[float] = None,
) -> NailTransform:
    """
    Compute position, uniform scale and rotation for a nail layer.

    ``target`` and ``secondary`` are in the hand photo's natural pixel space. The
    returned position is in viewport space when the viewport and hand dimensions are
    all known, otherwise the raw landmark coordinates are used. Orientation from
    ``secondary`` needs the hand photo size; without it the nail is upright.
    Never raises: missing inputs fall back to the defaults.
    """

    angle = 0.0
    scale = DEFAULT_SCALE

    if secondary is not None and hand_width and hand_height:
        dx = target.x - secondary.x
        dy = target.y - secondary.y
        angle = math.atan2(dy, dx) * (180.0 / math.pi) + ANGLE_OFFSET_DEG

        landmark_distance = math.sqrt(dx * dx + dy * dy)
        desired_height = landmark_distance * NAIL_LENGTH_FACTOR
        if nail_height > 0:
            scale = desired_height / nail_height
    elif hand_width:
        if nail_width > 0:
            scale = (hand_width * HAND_WIDTH_FACTOR) / nail_width

    left, top = target.x, target.y
    if viewport_width and viewport_height and hand_width and hand_height:
        left, top = reproject_point(target.x, target.y, (hand_width, hand_height), (viewport_width, viewport_height))

    return NailTransform(
        left=float(left),
        top=float(top),
        scale_x=float(scale),
        scale_y=float(scale),
        angle=normalize_angle(angle) if math.isfinite(angle) else angle,
    )


def check_transform(t: NailTransform) -> NailTransform:
    if not is_finite(t.left, t.top, t.scale_x, t.scale_y, t.angle):
        raise InvalidTransform(f"Non-finite transform component in {t}")
    if t.scale_x <= 0 or t.scale_y <= 0:
        raise InvalidTransform(f"Non-positive scale in {t}")
    return t


def is_valid_transform(t: Optional[NailTransform]) -> bool:
    if t is None:
        return False
    try:
        check_transform(t)
    except InvalidTransform:
        return False
    return True


def sanitize_transform(
    candidate: NailTransform, last_good: Optional[NailTransform]
) -> Optional[NailTransform]:
    """
    Return ``candidate`` with its angle wrapped into [0, 360), or ``last_good`` when
    the candidate has non-finite or non-positive components.
    """

    try:
        check_transform(candidate)
    except InvalidTransform as e:
        logger.warning("%s; keeping %s", e, last_good)
        return last_good
    angle = normalize_angle(candidate.angle)
    if angle == candidate.angle:
        return candidate
    return replace(candidate, angle=angle)


def reproject_point(
    x: float, y: float, from_size: Size2, to_size: Size2
) -> Tuple[float, float]:
    """Map a point between two pixel spaces with independent x/y factors."""
    fw, fh = from_size
    tw, th = to_size
    if not fw or not fh:
        return x, y
    return x * (tw / fw), y * (th / fh)
