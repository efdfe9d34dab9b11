from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2

from . import config
from .errors import ModelLoadFailed
from .model_assets import ensure_hand_landmarker_task
from .types import (
    FINGER_TIP_MCP,
    NUM_HAND_LANDMARKS,
    PALM_BASE_INDICES,
    DetectionResult,
    HandLandmark,
    HandLandmarks,
    PalmBounds,
)
from .utils import bbox_from_points, clamp01


logger = logging.getLogger(__name__)


HAND_CONNECTIONS: List[Tuple[int, int]] = [
    # thumb
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    # index
    (0, 5),
    (5, 6),
    (6, 7),
    (7, 8),
    # middle
    (5, 9),
    (9, 10),
    (10, 11),
    (11, 12),
    # ring
    (9, 13),
    (13, 14),
    (14, 15),
    (15, 16),
    # pinky
    (13, 17),
    (17, 18),
    (18, 19),
    (19, 20),
    # palm base
    (0, 17),
]

OPEN_PALM_COLOR = (128, 222, 74)  # green: ready to capture
CLOSED_PALM_COLOR = (36, 191, 251)  # amber: keep opening the hand


@dataclass(frozen=True)
class _RawHand:
    landmarks: Sequence  # backend landmark objects exposing .x/.y/.z
    label: Optional[str]
    score: float


class _SolutionsBackend:
    def __init__(self, hands) -> None:
        self._hands = hands

    def detect(self, frame_rgb, timestamp_ms: int) -> List[_RawHand]:
        results = self._hands.process(frame_rgb)
        if not results.multi_hand_landmarks:
            return []

        handedness_list = results.multi_handedness or []
        hands: List[_RawHand] = []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            label: Optional[str] = None
            score = 0.0
            if i < len(handedness_list) and handedness_list[i].classification:
                c = handedness_list[i].classification[0]
                label = getattr(c, "label", None)
                score = float(getattr(c, "score", 0.0))
            hands.append(_RawHand(hand_landmarks.landmark, label, score))
        return hands

    def close(self) -> None:
        self._hands.close()


class _TasksBackend:
    def __init__(self, mp, landmarker) -> None:
        self._mp = mp
        self._landmarker = landmarker

    def detect(self, frame_rgb, timestamp_ms: int) -> List[_RawHand]:
        mp = self._mp
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        hand_landmarks_list = getattr(result, "hand_landmarks", None) or []
        handedness_list = getattr(result, "handedness", None) or []

        hands: List[_RawHand] = []
        for i, landmarks in enumerate(hand_landmarks_list):
            label = None
            score = 0.0
            if i < len(handedness_list) and handedness_list[i]:
                cat0 = handedness_list[i][0]
                label = getattr(cat0, "category_name", None) or getattr(cat0, "display_name", None)
                score = float(getattr(cat0, "score", 0.0))
            hands.append(_RawHand(landmarks, label, score))
        return hands

    def close(self) -> None:
        self._landmarker.close()


def _try_create_solutions_backend(
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = mp.solutions.hands.Hands(
        static_image_mode=False,
        max_num_hands=max_num_hands,
        model_complexity=1,
        min_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _SolutionsBackend(hands)


def _try_create_tasks_backend(
    model_path: str,
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """
    Fallback for MediaPipe distributions that do not include `mp.solutions`.

    Uses the MediaPipe Tasks HandLandmarker API in VIDEO mode, which requires a `.task` model asset on disk.
    """

    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python.vision import HandLandmarker, HandLandmarkerOptions, RunningMode  # type: ignore

    model_path = ensure_hand_landmarker_task(model_path)

    options = HandLandmarkerOptions(
        base_options=BaseOptions(model_asset_path=model_path),
        running_mode=RunningMode.VIDEO,
        num_hands=max_num_hands,
        min_hand_detection_confidence=min_detection_confidence,
        min_hand_presence_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _TasksBackend(mp, HandLandmarker.create_from_options(options))


def _create_backend(
    model_path: str,
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
):
    try:
        backend = _try_create_solutions_backend(max_num_hands, min_detection_confidence, min_tracking_confidence)
        if backend is not None:
            return backend
        return _try_create_tasks_backend(model_path, max_num_hands, min_detection_confidence, min_tracking_confidence)
    except ModelLoadFailed:
        raise
    except Exception as e:
        raise ModelLoadFailed(
            "Could not initialize MediaPipe hand landmarks.\n"
            "Neither `mp.solutions.hands` nor the Tasks HandLandmarker could be created."
        ) from e


class LandmarkTracker:
    """
    Single-hand landmark tracker on top of MediaPipe.

    Input frames are expected as **BGR** images (OpenCV default). Use `initialize_tracker()` to get the
    shared instance rather than constructing one directly.
    """

    def __init__(self, backend) -> None:
        self._backend = backend
        self._last_timestamp_ms = -1

    def close(self) -> None:
        self._backend.close()

    def __enter__(self) -> "LandmarkTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def detect(self, frame_bgr, timestamp_ms: float) -> DetectionResult:
        """
        Detect the most confident hand in `frame_bgr`.

        Never raises for frames with zero or many hands. A backend failure degrades this frame
        to `detected=False` so the caller can keep sampling.
        """
        # VIDEO mode requires strictly increasing timestamps.
        ts = int(timestamp_ms)
        if ts <= self._last_timestamp_ms:
            ts = self._last_timestamp_ms + 1
        self._last_timestamp_ms = ts

        try:
            frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
            hands = self._backend.detect(frame_rgb, ts)
        except Exception as e:
            logger.debug("Hand detection failed for frame at %d ms: %s", ts, e)
            return DetectionResult.empty()

        if not hands:
            return DetectionResult.empty()

        best = max(hands, key=lambda h: h.score)
        landmarks = [
            HandLandmark(idx=idx, x=float(lm.x), y=float(lm.y), z=float(getattr(lm, "z", 0.0)))
            for idx, lm in enumerate(best.landmarks)
        ]
        if len(landmarks) != NUM_HAND_LANDMARKS:
            logger.debug("Discarding hand with %d landmarks", len(landmarks))
            return DetectionResult.empty()

        handedness = best.label if best.label in ("Left", "Right") else None
        return DetectionResult(
            detected=True,
            landmarks=landmarks,
            handedness=handedness,
            confidence=clamp01(best.score),
        )

    def detect_image(self, image_bgr) -> DetectionResult:
        """Detect a hand in a single still image (e.g. an uploaded photo)."""
        return self.detect(image_bgr, self._last_timestamp_ms + 1)


_tracker: Optional[LandmarkTracker] = None
_tracker_lock = threading.Lock()


def initialize_tracker(
    model_path: str = config.HAND_LANDMARKER_MODEL_PATH,
    max_num_hands: int = 2,
    min_detection_confidence: float = config.MIN_DETECTION_CONFIDENCE,
    min_tracking_confidence: float = config.MIN_TRACKING_CONFIDENCE,
) -> LandmarkTracker:
    """
    Return the shared tracker, loading the model on first use.

    Safe to call from several threads: concurrent callers wait for the in-flight load and get the
    same instance. Raises `ModelLoadFailed` if the model cannot be loaded; nothing is cached in that
    case, so a later call tries again.
    """
    global _tracker

    tracker = _tracker
    if tracker is not None:
        return tracker

    with _tracker_lock:
        if _tracker is None:
            logger.info("Initializing hand landmarker")
            backend = _create_backend(model_path, max_num_hands, min_detection_confidence, min_tracking_confidence)
            _tracker = LandmarkTracker(backend)
            logger.info("Hand landmarker ready (%s)", type(backend).__name__)
        return _tracker


def close_tracker() -> None:
    global _tracker

    with _tracker_lock:
        if _tracker is not None:
            _tracker.close()
            _tracker = None


def compute_palm_bounds(landmarks: HandLandmarks, padding: float = config.PALM_BOUNDS_PADDING) -> PalmBounds:
    """
    Padded box around the palm base (wrist, thumb CMC and the four MCP joints).

    The box grows by `padding` times its extent on every side and is clamped to the unit square.
    """
    x0, y0, x1, y1 = bbox_from_points((landmarks[i].x, landmarks[i].y) for i in PALM_BASE_INDICES)
    pad_x = (x1 - x0) * padding
    pad_y = (y1 - y0) * padding

    left = clamp01(x0 - pad_x)
    top = clamp01(y0 - pad_y)
    right = clamp01(x1 + pad_x)
    bottom = clamp01(y1 + pad_y)
    return PalmBounds(x=left, y=top, width=right - left, height=bottom - top)


def is_open_palm(landmarks: HandLandmarks, min_extended: int = config.OPEN_PALM_MIN_FINGERS) -> bool:
    """
    Heuristic "palm is open" gate.

    A finger counts as extended when its tip sits above its MCP joint in image coordinates (y grows
    downward). Assumes an upright hand facing the camera; a sideways or inverted hand will fail it.
    """
    extended = sum(1 for tip, mcp in FINGER_TIP_MCP if landmarks[tip].y < landmarks[mcp].y)
    return extended >= min_extended


def draw_hand_skeleton(frame_bgr, landmarks: HandLandmarks, color=OPEN_PALM_COLOR, thickness: int = 3, radius: int = 5):
    """Draw the landmark skeleton for the live preview."""
    h, w = frame_bgr.shape[:2]
    pts = [(int(round(lm.x * w)), int(round(lm.y * h))) for lm in landmarks]

    for a, b in HAND_CONNECTIONS:
        if a < len(pts) and b < len(pts):
            cv2.line(frame_bgr, pts[a], pts[b], color, thickness, cv2.LINE_AA)
    for pt in pts:
        cv2.circle(frame_bgr, pt, radius, color, -1, lineType=cv2.LINE_AA)
    return frame_bgr


class FrameThrottle:
    """
    Minimum-interval gate for the tracking loop.

    Frames arriving before `interval_ms` has elapsed since the last accepted one are dropped,
    never queued.
    """

    def __init__(self, interval_ms: float = config.TRACKING_INTERVAL_MS) -> None:
        self.interval_ms = interval_ms
        self._last_ms: Optional[float] = None

    def should_process(self, now_ms: float) -> bool:
        if self._last_ms is not None and now_ms - self._last_ms < self.interval_ms:
            return False
        self._last_ms = now_ms
        return True

    def reset(self) -> None:
        self._last_ms = None
