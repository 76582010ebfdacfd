from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import Optional, Union

import cv2
import numpy as np

from .errors import ImageDecodeFailure


ImageSource = Union[bytes, bytearray, memoryview, str, "os.PathLike[str]", np.ndarray]

# Nail designs are cut into an upright ellipse of this width and 1.5x the height.
DESIGN_EXTRACT_WIDTH = 200


@dataclass(frozen=True, eq=False)
class DecodedImage:
    """A decoded raster, always BGRA uint8."""

    pixels: np.ndarray
    key: Optional[str] = None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def same_source(self, other: Optional["DecodedImage"]) -> bool:
        if other is None:
            return False
        if other is self:
            return True
        return self.key is not None and self.key == other.key

    def to_bgr(self) -> np.ndarray:
        return cv2.cvtColor(self.pixels, cv2.COLOR_BGRA2BGR)


def _to_bgra(pixels: np.ndarray) -> np.ndarray:
    if pixels.dtype == np.uint16:
        pixels = (pixels >> 8).astype(np.uint8)
    elif pixels.dtype != np.uint8:
        raise ImageDecodeFailure(f"Unsupported pixel type: {pixels.dtype}")

    if pixels.ndim == 2:
        return cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGRA)
    if pixels.ndim == 3 and pixels.shape[2] == 1:
        return cv2.cvtColor(np.ascontiguousarray(pixels[:, :, 0]), cv2.COLOR_GRAY2BGRA)
    if pixels.ndim == 3 and pixels.shape[2] == 3:
        return cv2.cvtColor(pixels, cv2.COLOR_BGR2BGRA)
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return np.ascontiguousarray(pixels)
    raise ImageDecodeFailure(f"Unsupported raster shape: {pixels.shape}")


def _decode_bytes(data: bytes) -> np.ndarray:
    buf = np.frombuffer(data, dtype=np.uint8)
    if buf.size == 0:
        raise ImageDecodeFailure("Empty image buffer")
    try:
        pixels = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise ImageDecodeFailure(f"Could not decode image buffer ({buf.size} bytes)") from e
    if pixels is None:
        raise ImageDecodeFailure(f"Could not decode image buffer ({buf.size} bytes)")
    return pixels


def decode_image(source: ImageSource) -> DecodedImage:
    """
    Decode a hand photo or nail design.

    Accepts encoded bytes, a file path, or an already decoded BGR/BGRA/gray array.
    Raises ImageDecodeFailure if the source cannot be turned into a non-empty raster.
    """

    if isinstance(source, np.ndarray):
        if source.size == 0:
            raise ImageDecodeFailure("Image has zero dimensions")
        pixels = _to_bgra(source)
        key = hashlib.sha1(pixels.tobytes() + repr(pixels.shape).encode()).hexdigest()
    elif isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        pixels = _to_bgra(_decode_bytes(data))
        key = hashlib.sha1(data).hexdigest()
    elif isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ImageDecodeFailure(f"Could not read image: {path}") from e
        pixels = _to_bgra(_decode_bytes(data))
        key = hashlib.sha1(data).hexdigest()
    else:
        raise ImageDecodeFailure(f"Unsupported image source type: {type(source).__name__}")

    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ImageDecodeFailure("Image has zero dimensions")
    return DecodedImage(pixels=pixels, key=key)


def extract_nail_design(design: DecodedImage, width: int = DESIGN_EXTRACT_WIDTH) -> DecodedImage:
    """
    Cut a nail-shaped (elliptical) swatch out of an arbitrary design image.

    The design is centre-cropped to a 2:3 aspect, resized to ``width`` x ``1.5*width``
    and everything outside the inscribed ellipse is made transparent.
    """

    out_w = int(width)
    out_h = int(round(width * 1.5))
    src = design.pixels
    src_h, src_w = src.shape[:2]

    source_aspect = src_w / src_h
    target_aspect = out_w / out_h
    sx, sy, sw, sh = 0, 0, src_w, src_h
    if source_aspect > target_aspect:
        sw = max(1, int(round(src_h * target_aspect)))
        sx = (src_w - sw) // 2
    else:
        sh = max(1, int(round(src_w / target_aspect)))
        sy = (src_h - sh) // 2

    crop = src[sy : sy + sh, sx : sx + sw]
    swatch = cv2.resize(crop, (out_w, out_h), interpolation=cv2.INTER_AREA).copy()

    ellipse = np.zeros((out_h, out_w), dtype=np.uint8)
    cv2.ellipse(ellipse, (out_w // 2, out_h // 2), (out_w // 2, out_h // 2), 0, 0, 360, 255, -1)
    swatch[:, :, 3] = np.minimum(swatch[:, :, 3], ellipse)

    key = f"{design.key}:nail{out_w}" if design.key is not None else None
    return DecodedImage(pixels=swatch, key=key)


def encode_png(frame: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", frame)
    if not ok:
        raise RuntimeError("Could not encode composite as PNG")
    return buf.tobytes()
