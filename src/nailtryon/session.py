"""
Command/snapshot front end of the try-on engine.

The host drives a :class:`TryOnSession` with commands (``set_background``,
``set_nail_design``, ``set_opacity``, ``apply_manual_transform``, ``process_frame``)
and observes immutable :class:`Snapshot` objects. Every mutation happens on the
caller's thread. Image decodes may run on an injected executor; their results are
queued and applied by :meth:`TryOnSession.poll`, and a result whose request has been
superseded by a newer one is dropped.
"""

from __future__ import annotations

import logging
import queue
from concurrent.futures import CancelledError, Executor, Future
from typing import Callable, Dict, List, Optional, Set, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, TryOnConfig
from .errors import ImageDecodeFailure, LandmarkUnavailable
from .images import DecodedImage, ImageSource, decode_image, extract_nail_design
from .landmarks import BaseLandmarkProvider, SkinContourProvider
from .surface import RenderSurface
from .transform import calculate_initial_transform
from .types import LandmarkPair, NailTransform, Snapshot


logger = logging.getLogger(__name__)

BACKGROUND = "background"
DESIGN = "design"

SnapshotListener = Callable[[Snapshot], None]


def _as_decode_failure(kind: str, error: BaseException) -> ImageDecodeFailure:
    """Any decoder fault, cancellation included, counts as a failed load."""
    if isinstance(error, ImageDecodeFailure):
        return error
    failure = ImageDecodeFailure(f"{kind} decode failed: {error!r}")
    failure.__cause__ = error
    return failure


class TryOnSession:
    def __init__(
        self,
        surface: Optional[RenderSurface] = None,
        provider: Optional[BaseLandmarkProvider] = None,
        config: Optional[TryOnConfig] = None,
        executor: Optional[Executor] = None,
        extract_design: bool = False,
    ) -> None:
        self._config = (config or DEFAULT_CONFIG).validate()
        self._owns_surface = surface is None
        self._owns_provider = provider is None
        self.surface = surface if surface is not None else RenderSurface(config=self._config)
        self.provider = provider if provider is not None else SkinContourProvider(self._config.finger)
        self._executor = executor
        self._extract_design = extract_design

        self._tokens: Dict[str, int] = {BACKGROUND: 0, DESIGN: 0}
        self._loading: Set[str] = set()
        self._completions: "queue.SimpleQueue[Tuple[str, int, Future]]" = queue.SimpleQueue()
        self._design: Optional[DecodedImage] = None
        self._landmarks: Optional[LandmarkPair] = None
        self._opacity = self._config.default_opacity
        self._listeners: List[SnapshotListener] = []
        self._closed = False

    # ------------------------------------------------------------------ lifecycle

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        if self._owns_provider:
            self.provider.close()
        if self._owns_surface:
            self.surface.dispose()

    def __enter__(self) -> "TryOnSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ observation

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> Snapshot:
        active = self.surface.active_layer
        current = active.transform if active is not None and not active.stale else None
        return Snapshot(
            loading=bool(self._loading),
            has_landmark=self._landmarks is not None,
            current_transform=current,
            state=self.surface.state,
            opacity=self._opacity,
        )

    def _emit(self) -> Snapshot:
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)
        return snap

    @property
    def landmarks(self) -> Optional[LandmarkPair]:
        return self._landmarks

    @property
    def design(self) -> Optional[DecodedImage]:
        return self._design

    # ------------------------------------------------------------------ commands

    def set_background(self, source: ImageSource) -> int:
        """Load a new hand photo. Returns the request token."""
        return self._request(BACKGROUND, source)

    def set_nail_design(self, source: ImageSource) -> int:
        """Load a new nail design. Returns the request token."""
        return self._request(DESIGN, source)

    def set_opacity(self, value: float) -> bool:
        """
        Change the active layer's opacity.

        Without an active layer nothing is recorded; out-of-range values are
        rejected and the previous opacity stays.
        """

        if self.surface.active_layer is None:
            return False
        ok = self.surface.set_opacity(value)
        if ok:
            self._opacity = float(value)
        self._emit()
        return ok

    def apply_manual_transform(self, transform: NailTransform) -> bool:
        ok = self.surface.apply_manual_transform(transform)
        self._emit()
        return ok

    def begin_interaction(self, x: float, y: float) -> Optional[str]:
        op = self.surface.begin_interaction(x, y)
        if op is not None:
            self._sync_opacity()
            self._emit()
        return op

    def drag_interaction(self, x: float, y: float, snap: bool = False) -> Optional[NailTransform]:
        transform = self.surface.drag_interaction(x, y, snap=snap)
        if transform is not None:
            self._emit()
        return transform

    def end_interaction(self) -> Optional[NailTransform]:
        transform = self.surface.end_interaction()
        self._emit()
        return transform

    def process_frame(self, frame: np.ndarray, update_background: bool = False) -> Optional[LandmarkPair]:
        """
        Track the hand in a live frame.

        With no hand in view the existing layer is left exactly as it is; otherwise
        the layer is re-placed on the new landmarks. ``update_background`` also makes
        the frame the new background.
        """

        if update_background:
            try:
                image = decode_image(frame)
            except ImageDecodeFailure as e:
                logger.warning("Frame rejected: %s", e)
                self._emit()
                return None
            self.surface.set_background(image)

        self._landmarks = self._locate(frame)
        if self._landmarks is not None:
            self._refresh_layer()
        self._emit()
        return self._landmarks

    def render(self, show_controls: bool = True) -> np.ndarray:
        return self.surface.render(show_controls=show_controls)

    # ------------------------------------------------------------------ decoding

    def _request(self, kind: str, source: ImageSource) -> int:
        self._tokens[kind] += 1
        token = self._tokens[kind]
        self._loading.add(kind)
        self._emit()

        if self._executor is None:
            try:
                image = decode_image(source)
            except Exception as e:
                self._complete(kind, token, None, _as_decode_failure(kind, e))
            else:
                self._complete(kind, token, image, None)
        else:
            future = self._executor.submit(decode_image, source)
            future.add_done_callback(lambda f, kind=kind, token=token: self._completions.put((kind, token, f)))
        return token

    def poll(self) -> int:
        """Apply decodes finished on the executor. Returns how many were handled."""
        handled = 0
        while True:
            try:
                kind, token, future = self._completions.get_nowait()
            except queue.Empty:
                break
            try:
                image = future.result()
            except (Exception, CancelledError) as e:
                self._complete(kind, token, None, _as_decode_failure(kind, e))
            else:
                self._complete(kind, token, image, None)
            handled += 1
        return handled

    def _complete(
        self, kind: str, token: int, image: Optional[DecodedImage], error: Optional[ImageDecodeFailure]
    ) -> None:
        if token != self._tokens[kind]:
            logger.debug("Discarding superseded %s decode #%d (current #%d)", kind, token, self._tokens[kind])
            return
        self._loading.discard(kind)

        if error is not None:
            logger.warning("Could not load %s: %s", kind, error)
        elif kind == BACKGROUND:
            self._on_background(image)
        else:
            self._on_design(image)
        self._emit()

    def _on_background(self, image: DecodedImage) -> None:
        if not self.surface.set_background(image):
            return
        self._landmarks = self._locate(image.to_bgr())
        if self._landmarks is not None:
            self._refresh_layer()

    def _on_design(self, image: DecodedImage) -> None:
        if self._extract_design:
            image = extract_nail_design(image)
        self._design = image
        self._refresh_layer()

    # ------------------------------------------------------------------ layer placement

    def _locate(self, frame: np.ndarray) -> Optional[LandmarkPair]:
        try:
            return self.provider.require(frame)
        except LandmarkUnavailable:
            logger.info("No hand found; nail overlay left as it was")
            return None

    def _refresh_layer(self) -> None:
        pair = self._landmarks
        design = self._design
        if pair is None or design is None or self.surface.background is None:
            return

        vw, vh = self.surface.viewport_size
        transform = calculate_initial_transform(
            design.width,
            design.height,
            pair.target,
            pair.secondary,
            viewport_width=vw,
            viewport_height=vh,
            hand_width=pair.frame_width,
            hand_height=pair.frame_height,
        )
        self.surface.upsert_active_layer(design, transform, self._opacity)

    def _sync_opacity(self) -> None:
        active = self.surface.active_layer
        if active is not None:
            self._opacity = active.opacity
