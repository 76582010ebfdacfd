from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .images import DecodedImage


Point2 = Tuple[float, float]
Size2 = Tuple[int, int]  # (width, height)

FINGER_NAMES: Tuple[str, ...] = ("thumb", "index", "middle", "ring", "pinky")


@dataclass(frozen=True)
class PixelCoordinate:
    """A landmark in the pixel space of one specific source image."""

    id: int
    x: float
    y: float


@dataclass(frozen=True)
class NormalizedLandmark:
    """One hand-pose model output point, x/y normalized to the frame size."""

    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None


@dataclass(frozen=True)
class Fingertip:
    id: int
    x: int
    y: int
    name: str


@dataclass(frozen=True)
class LandmarkPair:
    """Target (fingertip) and optional orientation landmark for one frame."""

    target: PixelCoordinate
    secondary: Optional[PixelCoordinate]
    frame_width: int
    frame_height: int


@dataclass(frozen=True)
class NailPosition:
    """Axis-aligned nail rectangle centred on a detected fingertip."""

    x: float
    y: float
    width: float
    height: float
    rotation: float
    finger_id: int
    finger_name: str


@dataclass(frozen=True)
class NailTransform:
    """Placement of a nail-design layer, anchored at the layer's center."""

    left: float
    top: float
    scale_x: float
    scale_y: float
    angle: float


@dataclass(eq=False)
class Layer:
    design: "DecodedImage"
    transform: NailTransform
    opacity: float = 1.0
    name: str = "nailDesign"
    stale: bool = False


class SurfaceState(enum.Enum):
    EMPTY = "empty"
    BACKGROUND_LOADED = "background_loaded"
    COMPOSITED = "composited"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class Snapshot:
    """What the host observes after each command."""

    loading: bool
    has_landmark: bool
    current_transform: Optional[NailTransform]
    state: SurfaceState
    opacity: float
