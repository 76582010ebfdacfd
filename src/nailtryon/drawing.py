from __future__ import annotations

from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np

from .types import Fingertip, NailPosition
from .utils import rect_corners


def draw_point(frame, pt: Tuple[float, float], color=(0, 0, 255), radius=5, thickness=-1):
    cv2.circle(frame, (int(round(pt[0])), int(round(pt[1]))), radius, color, thickness, cv2.LINE_AA)
    return frame


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.6, thickness=2):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def draw_polyline(frame, points: Iterable[Tuple[float, float]], color=(255, 255, 0), thickness=2, closed=False):
    pts = np.array([(int(round(x)), int(round(y))) for x, y in points], dtype=np.int32)
    if pts.shape[0] < 2:
        return frame
    cv2.polylines(frame, [pts], closed, color, thickness, cv2.LINE_AA)
    return frame


def draw_fingertips(frame, tips: Sequence[Fingertip], color=(0, 255, 0)):
    """Debug view of the fallback estimator: a ring and the id next to each tip."""
    for tip in tips:
        draw_point(frame, (tip.x, tip.y), color=color, radius=5, thickness=2)
        draw_text(frame, str(tip.id), (tip.x + 8, tip.y - 8), color=color, scale=0.45, thickness=1)
    return frame


def draw_nail_positions(frame, positions: Sequence[NailPosition], color=(0, 0, 255)):
    for nail in positions:
        corners = rect_corners(nail.x, nail.y, nail.width / 2.0, nail.height / 2.0, nail.rotation)
        draw_polyline(frame, corners, color=color, thickness=2, closed=True)
    return frame


def draw_layer_controls(frame, corners, handles, color=(246, 92, 139), corner_size=10):
    """Border around the active layer plus filled square handles (BGR color)."""
    draw_polyline(frame, corners, color=color, thickness=1, closed=True)
    half = corner_size // 2
    for key, (x, y) in handles:
        if key == "rotate":
            top_mid = ((corners[0][0] + corners[1][0]) / 2.0, (corners[0][1] + corners[1][1]) / 2.0)
            draw_polyline(frame, [top_mid, (x, y)], color=color, thickness=1)
        x0, y0 = int(round(x)) - half, int(round(y)) - half
        cv2.rectangle(frame, (x0, y0), (x0 + corner_size, y0 + corner_size), color, -1)
    return frame
