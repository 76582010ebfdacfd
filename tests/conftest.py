"""
Shared fixtures for nailtryon tests.

Provides synthetic hand / design rasters and a scripted hand-pose model, so the
suite runs without MediaPipe or a camera.
"""
import os
import sys

import cv2
import numpy as np
import pytest

# Ensure src is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from nailtryon.images import DecodedImage, decode_image  # noqa: E402
from nailtryon.landmarks import HandPoseModel  # noqa: E402
from nailtryon.types import NormalizedLandmark  # noqa: E402


# ── Colours ─────────────────────────────────────────────────────────────

# RGB (200, 150, 120): hue ~22, saturation 0.4, value 0.78 -> skin
SKIN_RGB = (200, 150, 120)
# RGB (40, 90, 200): hue ~221 -> not skin
NON_SKIN_RGB = (40, 90, 200)

FINGER_XS = (60, 130, 200, 270, 340)


def rgb_raster(width, height, rgb=NON_SKIN_RGB):
    out = np.zeros((height, width, 3), dtype=np.uint8)
    out[:, :] = rgb
    return out


def hand_frame_bgr(width=400, height=300, xs=FINGER_XS, top=30):
    """
    A crude upright "hand": a skin-coloured palm with five thin finger bars whose
    top rows all sit at `top`. The fallback estimator reports each tip at x - 1.
    """

    rgb = rgb_raster(width, height)
    for x in xs:
        rgb[top : height - 60, x - 1 : x + 2] = SKIN_RGB
    rgb[height - 100 : height - 10, 40:360] = SKIN_RGB
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


class FakeHandModel(HandPoseModel):
    """HandPoseModel that replays scripted results, one per process() call."""

    def __init__(self, results=None, fail_open=False):
        super().__init__()
        self.results = list(results or [])
        self.fail_open = fail_open
        self.calls = 0
        self.open_count = 0
        self.close_count = 0

    def open(self):
        if self.fail_open:
            raise RuntimeError("model runtime not available")
        self.open_count += 1
        super().open()

    def close(self):
        self.close_count += 1
        super().close()

    def process(self, frame_rgb):
        self.calls += 1
        if not self.results:
            return []
        if len(self.results) == 1:
            return self.results[0]
        return self.results.pop(0)


def hand_landmarks(points):
    """
    21 normalized landmarks with the given {index: (x, y)} overrides; the rest sit
    at the frame center.
    """

    out = [NormalizedLandmark(x=0.5, y=0.5) for _ in range(21)]
    for idx, (x, y) in points.items():
        out[idx] = NormalizedLandmark(x=x, y=y)
    return out


# ── Fixtures ────────────────────────────────────────────────────────────

@pytest.fixture
def hand_500x800():
    """A 500x800 hand photo (content irrelevant to the scripted model)."""
    return decode_image(np.full((800, 500, 3), 180, dtype=np.uint8))


@pytest.fixture
def other_hand_500x800():
    return decode_image(np.full((800, 500, 3), 90, dtype=np.uint8))


@pytest.fixture
def nail_100x300():
    """Opaque red 100x300 nail design."""
    pixels = np.zeros((300, 100, 4), dtype=np.uint8)
    pixels[:, :] = (0, 0, 255, 255)
    return DecodedImage(pixels=pixels, key="nail-100x300")


@pytest.fixture
def pipeline_model():
    """
    Index tip at (50, 50) and DIP at (50, 20) in a 500x800 photo.

    With a 100x300 design and a 250x400 viewport this places the nail at (25, 25),
    scale 0.15, angle 180.
    """

    return FakeHandModel([[hand_landmarks({8: (50 / 500, 50 / 800), 7: (50 / 500, 20 / 800)})]])


@pytest.fixture
def png_bytes():
    ok, buf = cv2.imencode(".png", np.full((30, 40, 3), 100, dtype=np.uint8))
    assert ok
    return buf.tobytes()
