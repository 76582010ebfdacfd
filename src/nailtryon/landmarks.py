"""
Landmark providers: where the fingertip the nail is placed on comes from.

The preferred path consumes a 21-point hand-pose model (MediaPipe Hands layout) through
an explicitly owned :class:`HandPoseModel`. The fallback path runs the skin / contour /
fingertip heuristics and only yields a target point, without an orientation landmark.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .config import DEFAULT_CONFIG, TryOnConfig
from .contour import boundary_points
from .errors import LandmarkUnavailable
from .fingertips import estimate_fingertips, fingertip_by_name
from .model_assets import ensure_hand_landmarker_task
from .skin import skin_mask
from .types import Fingertip, LandmarkPair, NormalizedLandmark, PixelCoordinate


logger = logging.getLogger(__name__)

# finger -> (tip, DIP) landmark indices in the MediaPipe Hands layout
FINGER_LANDMARKS: Dict[str, Tuple[int, int]] = {
    "thumb": (4, 3),
    "index": (8, 7),
    "middle": (12, 11),
    "ring": (16, 15),
    "pinky": (20, 19),
}


def frame_to_rgb(frame: np.ndarray) -> np.ndarray:
    """BGR / BGRA / gray (OpenCV layout) to RGB."""
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGB)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)


def all_hand_pixel_coordinates(
    hands: Sequence[Sequence[NormalizedLandmark]], width: int, height: int
) -> List[List[PixelCoordinate]]:
    return [
        [PixelCoordinate(id=i, x=lm.x * width, y=lm.y * height) for i, lm in enumerate(hand)]
        for hand in hands
    ]


# --------------------------------------------------------------------------- models


class HandPoseModel:
    """
    Handle on an external hand-pose estimator.

    Subclasses acquire their runtime in :meth:`open` and release it in :meth:`close`;
    :meth:`process` returns zero or more hands of normalized landmarks.
    """

    def __init__(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self._open = False

    def process(self, frame_rgb: np.ndarray) -> List[List[NormalizedLandmark]]:
        raise NotImplementedError

    def __enter__(self) -> "HandPoseModel":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass(frozen=True)
class _SolutionsBackend:
    mp: object
    hands: object


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    landmarker: object


def _create_solutions_backend(
    static_image_mode: bool,
    max_num_hands: int,
    model_complexity: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = mp.solutions.hands.Hands(
        static_image_mode=static_image_mode,
        max_num_hands=max_num_hands,
        model_complexity=model_complexity,
        min_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _SolutionsBackend(mp=mp, hands=hands)


def _create_tasks_backend(
    model_path: str,
    static_image_mode: bool,
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """Builds for MediaPipe distributions without `mp.solutions` (Tasks HandLandmarker)."""

    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python.vision import HandLandmarker, HandLandmarkerOptions, RunningMode  # type: ignore

    model_path = ensure_hand_landmarker_task(model_path)
    options = HandLandmarkerOptions(
        base_options=BaseOptions(model_asset_path=model_path),
        running_mode=RunningMode.IMAGE if static_image_mode else RunningMode.VIDEO,
        num_hands=max_num_hands,
        min_hand_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _TasksBackend(mp=mp, landmarker=HandLandmarker.create_from_options(options))


def _convert(landmarks) -> List[NormalizedLandmark]:
    out = []
    for lm in landmarks:
        visibility = getattr(lm, "visibility", None)
        out.append(
            NormalizedLandmark(
                x=float(lm.x),
                y=float(lm.y),
                z=float(getattr(lm, "z", 0.0) or 0.0),
                visibility=float(visibility) if visibility is not None else None,
            )
        )
    return out


class MediaPipeHandModel(HandPoseModel):
    """
    MediaPipe Hands behind the :class:`HandPoseModel` interface.

    Prefers the legacy Solutions API and falls back to the Tasks HandLandmarker,
    which needs a `.task` model file on disk (downloaded on first use).
    """

    def __init__(
        self,
        static_image_mode: bool = True,
        max_num_hands: int = 1,
        model_complexity: int = 1,
        min_detection_confidence: float = DEFAULT_CONFIG.min_detection_confidence,
        min_tracking_confidence: float = DEFAULT_CONFIG.min_tracking_confidence,
        tasks_model_path: str = DEFAULT_CONFIG.model_path,
    ) -> None:
        super().__init__()
        self._static_image_mode = static_image_mode
        self._max_num_hands = max_num_hands
        self._model_complexity = model_complexity
        self._min_detection_confidence = min_detection_confidence
        self._min_tracking_confidence = min_tracking_confidence
        self._tasks_model_path = tasks_model_path
        self._solutions: Optional[_SolutionsBackend] = None
        self._tasks: Optional[_TasksBackend] = None
        self._tasks_timestamp_ms = 0

    @classmethod
    def from_config(cls, config: TryOnConfig, static_image_mode: bool = True) -> "MediaPipeHandModel":
        return cls(
            static_image_mode=static_image_mode,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
            tasks_model_path=config.model_path,
        )

    def open(self) -> None:
        if self.is_open:
            return
        try:
            self._solutions = _create_solutions_backend(
                static_image_mode=self._static_image_mode,
                max_num_hands=self._max_num_hands,
                model_complexity=self._model_complexity,
                min_detection_confidence=self._min_detection_confidence,
                min_tracking_confidence=self._min_tracking_confidence,
            )
            if self._solutions is None:
                self._tasks = _create_tasks_backend(
                    model_path=self._tasks_model_path,
                    static_image_mode=self._static_image_mode,
                    max_num_hands=self._max_num_hands,
                    min_detection_confidence=self._min_detection_confidence,
                    min_tracking_confidence=self._min_tracking_confidence,
                )
        except ImportError as e:
            raise RuntimeError("MediaPipe is not installed; `pip install mediapipe`") from e
        except FileNotFoundError as e:
            raise RuntimeError(
                "MediaPipe does not provide `mp.solutions` here and the Tasks HandLandmarker model is missing:\n"
                f"  {self._tasks_model_path}"
            ) from e
        super().open()
        logger.info("MediaPipe hand model opened (%s backend)", "solutions" if self._solutions else "tasks")

    def close(self) -> None:
        solutions, tasks = self._solutions, self._tasks
        self._solutions = None
        self._tasks = None
        was_open = self.is_open
        try:
            if solutions is not None:
                solutions.hands.close()
        finally:
            try:
                if tasks is not None:
                    tasks.landmarker.close()
            finally:
                super().close()
                if was_open:
                    logger.info("MediaPipe hand model closed")

    def process(self, frame_rgb: np.ndarray) -> List[List[NormalizedLandmark]]:
        if not self.is_open:
            raise RuntimeError("MediaPipeHandModel.process() called before open()")

        if self._solutions is not None:
            results = self._solutions.hands.process(frame_rgb)
            return [_convert(h.landmark) for h in (results.multi_hand_landmarks or [])]

        mp = self._tasks.mp
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(frame_rgb))
        if self._static_image_mode:
            result = self._tasks.landmarker.detect(mp_image)
        else:
            # VIDEO mode needs monotonically increasing timestamps.
            self._tasks_timestamp_ms += 33
            result = self._tasks.landmarker.detect_for_video(mp_image, self._tasks_timestamp_ms)
        return [_convert(h) for h in (getattr(result, "hand_landmarks", None) or [])]


# --------------------------------------------------------------------------- providers


class BaseLandmarkProvider:
    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def locate(self, frame: np.ndarray) -> Optional[LandmarkPair]:
        raise NotImplementedError

    def require(self, frame: np.ndarray) -> LandmarkPair:
        """Like locate(), but raise LandmarkUnavailable when there is no hand."""
        pair = self.locate(frame)
        if pair is None:
            raise LandmarkUnavailable("No hand landmarks in frame")
        return pair

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class LandmarkProvider(BaseLandmarkProvider):
    """
    Reads the configured finger's tip (target) and DIP joint (orientation) from the
    first detected hand. Input frames use OpenCV channel order (BGR/BGRA).
    """

    def __init__(self, model: HandPoseModel, finger: str = "index") -> None:
        if finger not in FINGER_LANDMARKS:
            raise ValueError(f"Unknown finger '{finger}'. Available: {list(FINGER_LANDMARKS)}")
        self.model = model
        self.finger = finger
        self.tip_index, self.dip_index = FINGER_LANDMARKS[finger]

    def open(self) -> None:
        if not self.model.is_open:
            self.model.open()

    def close(self) -> None:
        self.model.close()

    def locate(self, frame: np.ndarray) -> Optional[LandmarkPair]:
        self.open()
        h, w = frame.shape[:2]
        hands = self.model.process(frame_to_rgb(frame))
        if not hands:
            logger.debug("No hand detected in %dx%d frame", w, h)
            return None

        hand = all_hand_pixel_coordinates(hands[:1], w, h)[0]
        if len(hand) <= self.tip_index:
            logger.debug("Hand has %d landmarks; tip %d missing", len(hand), self.tip_index)
            return None
        secondary = hand[self.dip_index] if len(hand) > self.dip_index else None
        return LandmarkPair(target=hand[self.tip_index], secondary=secondary, frame_width=w, frame_height=h)


class SkinContourProvider(BaseLandmarkProvider):
    """Heuristic fingertip from skin colour; no orientation landmark."""

    def __init__(self, finger: str = "index") -> None:
        if finger not in FINGER_LANDMARKS:
            raise ValueError(f"Unknown finger '{finger}'. Available: {list(FINGER_LANDMARKS)}")
        self.finger = finger
        self.last_fingertips: List[Fingertip] = []

    def locate(self, frame: np.ndarray) -> Optional[LandmarkPair]:
        h, w = frame.shape[:2]
        mask = skin_mask(frame_to_rgb(frame))
        self.last_fingertips = estimate_fingertips(boundary_points(mask))
        tip = fingertip_by_name(self.last_fingertips, self.finger)
        if tip is None:
            logger.debug("Fallback found %d fingertip(s), none named %s", len(self.last_fingertips), self.finger)
            return None
        return LandmarkPair(
            target=PixelCoordinate(id=tip.id, x=float(tip.x), y=float(tip.y)),
            secondary=None,
            frame_width=w,
            frame_height=h,
        )


class FallbackLandmarkProvider(BaseLandmarkProvider):
    """
    Uses ``primary`` unless it cannot be opened, then ``fallback`` for good.

    A working primary that sees no hand is a miss, not a reason to fall back.
    """

    def __init__(self, primary: BaseLandmarkProvider, fallback: BaseLandmarkProvider) -> None:
        self.primary = primary
        self.fallback = fallback
        self._active: Optional[BaseLandmarkProvider] = None

    @property
    def using_fallback(self) -> bool:
        return self._active is self.fallback

    def open(self) -> None:
        if self._active is not None:
            return
        try:
            self.primary.open()
            self._active = self.primary
        except (RuntimeError, ImportError) as e:
            logger.warning("Hand-pose model unavailable (%s); using skin-colour fallback", e)
            self.fallback.open()
            self._active = self.fallback

    def close(self) -> None:
        try:
            self.primary.close()
        finally:
            self.fallback.close()
            self._active = None

    def locate(self, frame: np.ndarray) -> Optional[LandmarkPair]:
        self.open()
        return self._active.locate(frame)
