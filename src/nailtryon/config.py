from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .types import FINGER_NAMES


@dataclass(frozen=True)
class TryOnConfig:
    """
    Settings shared by the render surface, the session and the landmark providers.

    Colors are RGB.
    """

    # --- Surface ---
    default_width: int = 500
    default_aspect: Tuple[int, int] = (4, 3)  # width : height before a background is loaded
    background_color: Tuple[int, int, int] = (240, 240, 240)

    # --- Layer controls ---
    control_color: Tuple[int, int, int] = (139, 92, 246)
    corner_size: int = 10
    rotation_handle_offset: int = 30
    default_opacity: float = 1.0

    # --- Landmarks ---
    finger: str = "index"
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.5
    model_path: str = "models/hand_landmarker.task"

    def validate(self) -> "TryOnConfig":
        if self.default_width <= 0:
            raise ValueError("default_width must be positive")
        aw, ah = self.default_aspect
        if aw <= 0 or ah <= 0:
            raise ValueError("default_aspect components must be positive")
        for name, color in (("background_color", self.background_color), ("control_color", self.control_color)):
            if len(color) != 3 or any(not (0 <= c <= 255) for c in color):
                raise ValueError(f"{name} must be an RGB triple in 0-255")
        if self.corner_size <= 0:
            raise ValueError("corner_size must be positive")
        if self.rotation_handle_offset < 0:
            raise ValueError("rotation_handle_offset must not be negative")
        if not (0.0 <= self.default_opacity <= 1.0):
            raise ValueError("default_opacity must be within 0-1")
        if self.finger not in FINGER_NAMES:
            raise ValueError(f"Unknown finger '{self.finger}'. Available: {list(FINGER_NAMES)}")
        for name in ("min_detection_confidence", "min_tracking_confidence"):
            if not (0.0 < getattr(self, name) <= 1.0):
                raise ValueError(f"{name} must be within (0, 1]")
        return self


DEFAULT_CONFIG = TryOnConfig()
