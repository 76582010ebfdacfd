"""
HSV skin classifier.

A pixel is skin when its hue sits in the red/orange wedge around 0 degrees and its
saturation and value are in a mid range. Black pixels fail on value; blown-out
highlights (value above 0.95) are rejected on purpose.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np


HUE_RANGES: Tuple[Tuple[float, float], ...] = ((0.0, 25.0), (335.0, 360.0))
SATURATION_RANGE: Tuple[float, float] = (0.2, 0.7)
VALUE_RANGE: Tuple[float, float] = (0.4, 0.95)


def _round_half_up(x: float) -> float:
    return math.floor(x + 0.5)


def rgb_to_hsv(r: int, g: int, b: int) -> Tuple[float, float, float]:
    """
    Convert 8-bit RGB to (hue in whole degrees, saturation, value).

    Hue is rounded to the nearest degree and wrapped into [0, 360).
    """

    rf = r / 255.0
    gf = g / 255.0
    bf = b / 255.0

    mx = max(rf, gf, bf)
    mn = min(rf, gf, bf)
    diff = mx - mn

    h = 0.0
    if diff != 0:
        if mx == rf:
            h = math.fmod((gf - bf) / diff, 6.0)
        elif mx == gf:
            h = (bf - rf) / diff + 2.0
        else:
            h = (rf - gf) / diff + 4.0
    h = _round_half_up(h * 60.0)
    if h < 0:
        h += 360.0

    s = 0.0 if mx == 0 else diff / mx
    return float(h), s, mx


def is_skin_hsv(h: float, s: float, v: float) -> bool:
    hue_ok = any(lo <= h <= hi for lo, hi in HUE_RANGES)
    return (
        hue_ok
        and SATURATION_RANGE[0] <= s <= SATURATION_RANGE[1]
        and VALUE_RANGE[0] <= v <= VALUE_RANGE[1]
    )


def is_skin(r: int, g: int, b: int) -> bool:
    return is_skin_hsv(*rgb_to_hsv(r, g, b))


def skin_mask(frame_rgb: np.ndarray) -> np.ndarray:
    """
    Classify every pixel of an RGB(A) uint8 raster.

    Vectorized version of :func:`is_skin`; both give identical answers per pixel.
    Returns an HxW bool array.
    """

    if frame_rgb.ndim != 3 or frame_rgb.shape[2] not in (3, 4):
        raise ValueError(f"Expected an HxWx3 or HxWx4 raster, got shape {frame_rgb.shape}")

    rgb = frame_rgb[:, :, :3].astype(np.float64) / 255.0
    r = rgb[:, :, 0]
    g = rgb[:, :, 1]
    b = rgb[:, :, 2]

    mx = rgb.max(axis=2)
    mn = rgb.min(axis=2)
    diff = mx - mn

    with np.errstate(divide="ignore", invalid="ignore"):
        hue = np.where(
            mx == r,
            np.fmod((g - b) / diff, 6.0),
            np.where(mx == g, (b - r) / diff + 2.0, (r - g) / diff + 4.0),
        )
        hue = np.where(diff == 0, 0.0, hue)
        hue = np.floor(hue * 60.0 + 0.5)
        hue = np.where(hue < 0, hue + 360.0, hue)

        sat = np.where(mx == 0, 0.0, diff / mx)

    hue_ok = np.zeros(hue.shape, dtype=bool)
    for lo, hi in HUE_RANGES:
        hue_ok |= (hue >= lo) & (hue <= hi)

    return (
        hue_ok
        & (sat >= SATURATION_RANGE[0])
        & (sat <= SATURATION_RANGE[1])
        & (mx >= VALUE_RANGE[0])
        & (mx <= VALUE_RANGE[1])
    )
