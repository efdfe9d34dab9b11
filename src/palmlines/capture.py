from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import cv2

from . import config
from .fusion import FusionResult, LineFusionEngine
from .tracker import FrameThrottle, LandmarkTracker, compute_palm_bounds, is_open_palm
from .types import DetectionResult, HandLandmarks, PalmBounds


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingState:
    detection: DetectionResult
    palm_open: bool
    palm_bounds: Optional[PalmBounds]

    @property
    def ready(self) -> bool:
        return self.detection.detected and self.palm_open


@dataclass(frozen=True)
class CaptureTicket:
    generation: int
    image_bgr: object
    landmarks: Optional[HandLandmarks]
    palm_bounds: Optional[PalmBounds]
    future: "Future[FusionResult]"
    handedness: Optional[str] = None


class CaptureOrchestrator:
    """
    Drives the live tracking loop and hands captured stills to the fusion engine.

    `process_frame` is meant to be called once per delivered frame; it drops frames that arrive
    inside the throttle interval. Each capture runs fusion on its own worker, so a retake never
    queues behind an abandoned capture. `abandon()` marks every outstanding capture as stale: its
    work still finishes, but `collect()` will not return it.
    """

    def __init__(
        self,
        tracker: LandmarkTracker,
        engine: LineFusionEngine,
        interval_ms: float = config.TRACKING_INTERVAL_MS,
        jpeg_quality: int = config.CAPTURE_JPEG_QUALITY,
    ) -> None:
        self.tracker = tracker
        self.engine = engine
        self.jpeg_quality = jpeg_quality
        self._throttle = FrameThrottle(interval_ms)
        self._lock = threading.Lock()
        self._generation = 0

    def close(self) -> None:
        self.abandon()

    def __enter__(self) -> "CaptureOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def process_frame(self, frame_bgr, now_ms: float) -> Optional[TrackingState]:
        if not self._throttle.should_process(now_ms):
            return None

        detection = self.tracker.detect(frame_bgr, now_ms)
        if not detection.detected or detection.landmarks is None:
            return TrackingState(detection=detection, palm_open=False, palm_bounds=None)

        return TrackingState(
            detection=detection,
            palm_open=is_open_palm(detection.landmarks),
            palm_bounds=compute_palm_bounds(detection.landmarks),
        )

    def capture(self, frame_bgr, state: Optional[TrackingState] = None) -> CaptureTicket:
        """Freeze `frame_bgr` (and the landmarks seen with it) and start line detection."""
        image = frame_bgr.copy()
        ok, encoded = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            raise ValueError("could not encode captured frame as JPEG")

        landmarks = state.detection.landmarks if state is not None else None
        bounds = state.palm_bounds if state is not None else None
        handedness = state.detection.handedness if state is not None else None

        with self._lock:
            generation = self._generation
        worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"palmlines-fusion-{generation}")
        future = worker.submit(self.engine.detect_lines, encoded.tobytes(), landmarks, bounds, handedness)
        worker.shutdown(wait=False)
        logger.info("Captured %dx%d still (generation %d)", image.shape[1], image.shape[0], generation)
        return CaptureTicket(generation, image, landmarks, bounds, future, handedness)

    def abandon(self) -> None:
        with self._lock:
            self._generation += 1

    def is_current(self, ticket: CaptureTicket) -> bool:
        with self._lock:
            return ticket.generation == self._generation

    def collect(self, ticket: CaptureTicket) -> Optional[FusionResult]:
        """The fusion result once it is ready, or None while pending or if the capture was abandoned."""
        if not ticket.future.done():
            return None
        if not self.is_current(ticket):
            logger.debug("Discarding result of abandoned capture (generation %d)", ticket.generation)
            return None
        return ticket.future.result()
