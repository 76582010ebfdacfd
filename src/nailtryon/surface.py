"""
Compositing surface for the nail try-on.

The surface owns a BGR canvas sized to its container, a background hand photo scaled
to fill the canvas width, and an ordered list of nail-design layers. Each layer is
drawn centred on its transform position, scaled and rotated clockwise about its own
center, and alpha-blended with its opacity. At most one layer is active; the active
layer is the one that opacity edits and on-surface handles act on.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from .config import DEFAULT_CONFIG, TryOnConfig
from .drawing import draw_layer_controls
from .errors import SurfaceDisposed
from .handles import DragContext, HandleSet, LayerGeometry
from .images import DecodedImage
from .transform import sanitize_transform
from .types import Layer, NailTransform, Size2, SurfaceState
from .utils import rect_corners


logger = logging.getLogger(__name__)


def _bgr(rgb: Tuple[int, int, int]) -> Tuple[int, int, int]:
    return (int(rgb[2]), int(rgb[1]), int(rgb[0]))


def _valid_opacity(value: float) -> bool:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and 0.0 <= value <= 1.0


class ResizeObserver:
    """Forwards container size changes to a callback until disconnected."""

    def __init__(self, callback: Callable[[int, Optional[int]], None]) -> None:
        self._callback: Optional[Callable[[int, Optional[int]], None]] = callback

    @property
    def connected(self) -> bool:
        return self._callback is not None

    def notify(self, width: int, height: Optional[int] = None) -> None:
        if self._callback is not None:
            self._callback(width, height)

    def disconnect(self) -> None:
        self._callback = None


class RenderSurface:
    def __init__(self, width: Optional[int] = None, config: Optional[TryOnConfig] = None) -> None:
        self._config = (config or DEFAULT_CONFIG).validate()
        self._background: Optional[DecodedImage] = None
        self._layers: List[Layer] = []
        self._active: Optional[Layer] = None
        self._drag: Optional[DragContext] = None
        self._canvas: Optional[np.ndarray] = None
        self._observer: Optional[ResizeObserver] = None
        self._disposed = False

        try:
            w = int(width or self._config.default_width)
            if w <= 0:
                raise ValueError(f"Surface width must be positive, got {w}")
            aw, ah = self._config.default_aspect
            self.viewport_width = w
            self.viewport_height = max(1, int(round(w * ah / aw)))
            self._handles = HandleSet(self._config.corner_size, self._config.rotation_handle_offset)
            self._canvas = self._allocate()
            self._observer = ResizeObserver(self.resize)
        except Exception:
            self.dispose()
            raise

    # ------------------------------------------------------------------ lifecycle

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._drag = None
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None
        self._canvas = None
        self._background = None
        self._layers = []
        self._active = None
        logger.info("Render surface disposed")

    def __enter__(self) -> "RenderSurface":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def _check_alive(self) -> None:
        if self._disposed:
            raise SurfaceDisposed("Render surface has been disposed")

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> SurfaceState:
        if self._disposed:
            return SurfaceState.DISPOSED
        if self._background is None:
            return SurfaceState.EMPTY
        if self._active is not None and not self._active.stale:
            return SurfaceState.COMPOSITED
        return SurfaceState.BACKGROUND_LOADED

    @property
    def background(self) -> Optional[DecodedImage]:
        return self._background

    @property
    def layers(self) -> Tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def active_layer(self) -> Optional[Layer]:
        return self._active

    @property
    def viewport_size(self) -> Size2:
        return self.viewport_width, self.viewport_height

    @property
    def observer(self) -> Optional[ResizeObserver]:
        return self._observer

    @property
    def interaction(self) -> Optional[str]:
        return self._drag.operation if self._drag is not None else None

    # ------------------------------------------------------------------ background

    def set_background(self, image: DecodedImage) -> bool:
        """
        Replace the hand photo and match the surface aspect to it.

        Existing layers are marked stale because their transforms were computed
        against the previous photo. Supplying the current photo again does nothing.
        Returns True if the background changed.
        """

        self._check_alive()
        if image.same_source(self._background):
            return False

        self._background = image
        self.viewport_height = max(1, int(round(self.viewport_width * image.height / image.width)))
        self._canvas = self._allocate()
        self._drag = None
        for layer in self._layers:
            layer.stale = True
        logger.info(
            "Background set: %dx%d -> viewport %dx%d (%d layer(s) invalidated)",
            image.width,
            image.height,
            self.viewport_width,
            self.viewport_height,
            len(self._layers),
        )
        return True

    # ------------------------------------------------------------------ layers

    def upsert_active_layer(
        self,
        design: DecodedImage,
        transform: NailTransform,
        opacity: Optional[float] = None,
        name: str = "nailDesign",
    ) -> Optional[Layer]:
        """
        Create the active layer, or replace it in place.

        An invalid transform falls back to the replaced layer's transform unless that
        layer is stale; with nothing to fall back to, the call is skipped and None is
        returned.
        """

        self._check_alive()
        previous = self._active
        # a stale layer's transform belongs to the previous photo
        last_good = previous.transform if previous is not None and not previous.stale else None
        safe = sanitize_transform(transform, last_good)
        if safe is None:
            logger.warning("Skipping nail layer %r: no valid transform available", name)
            return None

        if opacity is None or not _valid_opacity(opacity):
            if opacity is not None:
                logger.warning("Rejected layer opacity %r", opacity)
            opacity = previous.opacity if previous is not None else self._config.default_opacity

        layer = Layer(design=design, transform=safe, opacity=float(opacity), name=name)
        if previous is not None and previous in self._layers:
            self._layers[self._layers.index(previous)] = layer
        else:
            self._layers.append(layer)
        self._active = layer
        self._drag = None
        return layer

    def add_layer(
        self,
        design: DecodedImage,
        transform: NailTransform,
        opacity: Optional[float] = None,
        name: str = "nailDesign",
        activate: bool = True,
    ) -> Optional[Layer]:
        """Append a new layer on top of the others."""
        self._check_alive()
        safe = sanitize_transform(transform, None)
        if safe is None:
            logger.warning("Skipping nail layer %r: invalid transform", name)
            return None
        if opacity is None or not _valid_opacity(opacity):
            opacity = self._config.default_opacity
        layer = Layer(design=design, transform=safe, opacity=float(opacity), name=name)
        self._layers.append(layer)
        if activate:
            self._active = layer
            self._drag = None
        return layer

    def select_layer(self, name: str) -> Optional[Layer]:
        self._check_alive()
        for layer in self._layers:
            if layer.name == name:
                self._active = layer
                self._drag = None
                return layer
        return None

    def select_layer_at(self, x: float, y: float) -> Optional[Layer]:
        """Make the topmost live layer under (x, y) active."""
        self._check_alive()
        for layer in reversed(self._layers):
            if not layer.stale and LayerGeometry.of(layer).contains(x, y):
                self._active = layer
                self._drag = None
                return layer
        return None

    def set_opacity(self, value: float) -> bool:
        """Set the active layer's opacity. Out-of-range values are rejected."""
        self._check_alive()
        if self._active is None:
            return False
        if not _valid_opacity(value):
            logger.warning("Rejected opacity %r; keeping %.3f", value, self._active.opacity)
            return False
        self._active.opacity = float(value)
        return True

    def apply_manual_transform(self, transform: NailTransform) -> bool:
        """Write a user-edited transform straight into the active layer."""
        self._check_alive()
        if self._active is None:
            return False
        safe = sanitize_transform(transform, self._active.transform)
        if safe is None or safe is self._active.transform:
            return False
        self._active.transform = safe
        return True

    # ------------------------------------------------------------------ interaction

    def begin_interaction(self, x: float, y: float) -> Optional[str]:
        """
        Start a pointer interaction at (x, y).

        Hits on the active layer's handles take priority; otherwise the topmost
        layer under the pointer is selected and moved. Returns the operation name.
        """

        self._check_alive()
        self._drag = None
        handle = None
        layer = self._active
        if layer is not None and not layer.stale:
            handle = self._handles.handle_at(x, y, LayerGeometry.of(layer))
        if handle is None:
            layer = self.select_layer_at(x, y)
            if layer is None:
                return None
            handle = self._handles.handles["move"]

        self._drag = DragContext(operation=handle.key, start_x=x, start_y=y, start_transform=layer.transform)
        return handle.key

    def drag_interaction(self, x: float, y: float, snap: bool = False) -> Optional[NailTransform]:
        self._check_alive()
        if self._drag is None or self._active is None:
            return None
        handle = self._handles.handles[self._drag.operation]
        proposed = handle.drag(x, y, self._drag, snap=snap)
        safe = sanitize_transform(proposed, self._active.transform)
        if safe is not None:
            self._active.transform = safe
        return self._active.transform

    def end_interaction(self) -> Optional[NailTransform]:
        self._check_alive()
        self._drag = None
        return self._active.transform if self._active is not None else None

    # ------------------------------------------------------------------ sizing / rendering

    def resize(self, width: int, height: Optional[int] = None) -> None:
        """
        Follow a container size change.

        Height tracks the background's aspect when one is loaded. Layer transforms
        are left exactly as they are.
        """

        self._check_alive()
        width = int(width)
        if width <= 0:
            logger.debug("Ignoring resize to non-positive width %d", width)
            return

        if self._background is not None:
            new_h = int(round(width * self._background.height / self._background.width))
        elif height is not None and int(height) > 0:
            new_h = int(height)
        else:
            aw, ah = self._config.default_aspect
            new_h = int(round(width * ah / aw))

        self.viewport_width = width
        self.viewport_height = max(1, new_h)
        self._canvas = self._allocate()
        self.render()

    def _allocate(self) -> np.ndarray:
        return np.empty((self.viewport_height, self.viewport_width, 3), dtype=np.uint8)

    def render(self, show_controls: bool = True) -> np.ndarray:
        """Draw everything and return a copy of the canvas (BGR)."""
        self._check_alive()
        canvas = self._canvas
        canvas[:] = _bgr(self._config.background_color)

        if self._background is not None:
            self._draw_background(canvas, self._background)

        for layer in self._layers:
            if not layer.stale:
                self._composite(canvas, layer)

        active = self._active
        if show_controls and active is not None and not active.stale:
            geom = LayerGeometry.of(active)
            draw_layer_controls(
                canvas,
                rect_corners(geom.cx, geom.cy, geom.half_w, geom.half_h, geom.angle),
                self._handles.positions(geom),
                color=_bgr(self._config.control_color),
                corner_size=self._config.corner_size,
            )
        return canvas.copy()

    def _draw_background(self, canvas: np.ndarray, image: DecodedImage) -> None:
        vw, vh = self.viewport_width, self.viewport_height
        scale = vw / image.width
        scaled_h = max(1, int(round(image.height * scale)))
        scaled = cv2.resize(image.pixels, (vw, scaled_h), interpolation=cv2.INTER_AREA)
        h = min(vh, scaled_h)
        _blend(canvas[:h], scaled[:h], 1.0)

    def _composite(self, canvas: np.ndarray, layer: Layer) -> None:
        t = layer.transform
        design = layer.design.pixels
        dh, dw = design.shape[:2]
        rad = math.radians(t.angle)
        cos_a, sin_a = math.cos(rad), math.sin(rad)

        a, b = cos_a * t.scale_x, -sin_a * t.scale_y
        c, d = sin_a * t.scale_x, cos_a * t.scale_y
        m = np.array(
            [
                [a, b, t.left - (a * dw / 2.0 + b * dh / 2.0)],
                [c, d, t.top - (c * dw / 2.0 + d * dh / 2.0)],
            ],
            dtype=np.float64,
        )
        warped = cv2.warpAffine(
            design,
            m,
            (self.viewport_width, self.viewport_height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        )
        _blend(canvas, warped, layer.opacity)


def _blend(dst: np.ndarray, src_bgra: np.ndarray, opacity: float) -> None:
    alpha = (src_bgra[:, :, 3:4].astype(np.float32) / 255.0) * float(opacity)
    out = dst.astype(np.float32) * (1.0 - alpha) + src_bgra[:, :, :3].astype(np.float32) * alpha
    dst[:] = np.clip(out + 0.5, 0, 255).astype(np.uint8)
