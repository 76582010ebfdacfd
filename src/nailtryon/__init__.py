from .config import TryOnConfig
from .errors import ImageDecodeFailure, InvalidTransform, LandmarkUnavailable, SurfaceDisposed, TryOnError
from .images import DecodedImage, decode_image, encode_png, extract_nail_design
from .landmarks import (
    FallbackLandmarkProvider,
    HandPoseModel,
    LandmarkProvider,
    MediaPipeHandModel,
    SkinContourProvider,
)
from .session import TryOnSession
from .surface import RenderSurface
from .transform import calculate_initial_transform
from .types import (
    Fingertip,
    LandmarkPair,
    Layer,
    NailPosition,
    NailTransform,
    NormalizedLandmark,
    PixelCoordinate,
    Snapshot,
    SurfaceState,
)

__all__ = [
    "TryOnConfig",
    "TryOnError",
    "LandmarkUnavailable",
    "ImageDecodeFailure",
    "InvalidTransform",
    "SurfaceDisposed",
    "DecodedImage",
    "decode_image",
    "encode_png",
    "extract_nail_design",
    "HandPoseModel",
    "MediaPipeHandModel",
    "LandmarkProvider",
    "SkinContourProvider",
    "FallbackLandmarkProvider",
    "TryOnSession",
    "RenderSurface",
    "calculate_initial_transform",
    "Fingertip",
    "LandmarkPair",
    "Layer",
    "NailPosition",
    "NailTransform",
    "NormalizedLandmark",
    "PixelCoordinate",
    "Snapshot",
    "SurfaceState",
]
