from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import cv2
import numpy as np

from . import config
from .errors import DetectorError, ErrorKind
from .labels import normalize_line_label
from .primary_detector import RoboflowLineDetector
from .synthesis import MOCK_LINES, anatomical_lines, depth_from_confidence, synthesize_points
from .types import (
    NUM_HAND_LANDMARKS,
    BoundingBox,
    BoxGeometry,
    DetectedLine,
    DetectorReport,
    HandLandmarks,
    PalmBounds,
    PointsGeometry,
    RawLine,
)
from .vision_detector import GeminiLineDetector


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FusionResult:
    success: bool
    lines: Tuple[DetectedLine, ...]
    error: Optional[ErrorKind] = None
    sources: Tuple[str, ...] = ()  # "primary" / "secondary" / "mock"
    hand_type: Optional[str] = None


@dataclass(frozen=True)
class _Outcome:
    source: str
    report: Optional[DetectorReport] = None
    error: Optional[ErrorKind] = None


def resolve_line(raw: RawLine) -> Optional[DetectedLine]:
    """
    Turn one detector candidate into a canonical `DetectedLine`.

    Unknown labels yield None. Candidates with real keypoints keep them; box-only candidates get a
    synthesized polyline, so every returned line carries at least two points.
    """
    line_type = normalize_line_label(raw.label)
    if line_type is None:
        return None

    box: Optional[BoundingBox] = None
    if isinstance(raw.geometry, PointsGeometry) and len(raw.geometry.points) >= 2:
        points = raw.geometry.points
    elif isinstance(raw.geometry, BoxGeometry):
        box = raw.geometry.box
        points = synthesize_points(line_type, box, raw.curvature)
    else:
        logger.warning("Dropping %s line without usable geometry", line_type.value)
        return None

    return DetectedLine(
        type=line_type,
        points=tuple(points),
        confidence=raw.confidence,
        depth=depth_from_confidence(raw.confidence),
        bounding_box=box,
        curvature=raw.curvature,
    )


def _uncrop(raw: RawLine, bounds: PalmBounds) -> RawLine:
    """Map a candidate detected on the palm crop back into full-image coordinates."""

    def pt(x: float, y: float) -> Tuple[float, float]:
        return (bounds.x + x * bounds.width, bounds.y + y * bounds.height)

    if isinstance(raw.geometry, PointsGeometry):
        geometry = PointsGeometry(tuple(pt(x, y) for x, y in raw.geometry.points))
    else:
        b = raw.geometry.box
        x, y = pt(b.x, b.y)
        geometry = BoxGeometry(BoundingBox(x=x, y=y, width=b.width * bounds.width, height=b.height * bounds.height))
    return replace(raw, geometry=geometry)


def _decode(image_bytes: bytes):
    buf = np.frombuffer(image_bytes, dtype=np.uint8)
    if buf.size == 0:
        return None
    return cv2.imdecode(buf, cv2.IMREAD_COLOR)


def crop_to_bounds(image_bgr, bounds: PalmBounds):
    h, w = image_bgr.shape[:2]
    x0 = int(round(bounds.x * w))
    y0 = int(round(bounds.y * h))
    x1 = int(round(bounds.right * w))
    y1 = int(round(bounds.bottom * h))
    if x1 - x0 < 2 or y1 - y0 < 2:
        return None
    return image_bgr[y0:y1, x0:x1]


class LineFusionEngine:
    """
    Reconcile the primary and secondary line detectors into one canonical line set.

    Primary lines take priority. Secondary lines are used when the primary contributes nothing and,
    with `fill_missing_types`, also add line types the primary missed. When no detector gives a
    valid answer (no credentials, network errors, malformed replies) a mock set is returned so
    callers always have something to draw.
    """

    def __init__(
        self,
        primary=None,
        secondary=None,
        fill_missing_types: bool = config.FILL_MISSING_TYPES,
        crop_to_palm_bounds: bool = config.CROP_TO_PALM_BOUNDS,
        jpeg_quality: int = config.CAPTURE_JPEG_QUALITY,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.fill_missing_types = fill_missing_types
        self.crop_to_palm_bounds = crop_to_palm_bounds
        self.jpeg_quality = jpeg_quality

    @classmethod
    def from_config(cls) -> "LineFusionEngine":
        return cls(primary=RoboflowLineDetector(), secondary=GeminiLineDetector())

    def _run(self, detector, image_bytes: bytes, image_size: Tuple[int, int]) -> _Outcome:
        name = detector.name
        try:
            return _Outcome(name, report=detector.detect(image_bytes, image_size))
        except DetectorError as e:
            if e.kind is ErrorKind.SERVICE_UNAVAILABLE:
                logger.info("Line detector %s unavailable: %s", name, e)
            else:
                logger.warning("Discarding %s detector output: %s", name, e)
            return _Outcome(name, error=e.kind)
        except Exception:
            logger.exception("Line detector %s failed unexpectedly", name)
            return _Outcome(name, error=ErrorKind.MALFORMED_RESPONSE)

    def _primary_input(self, image_bgr, image_bytes: bytes, palm_bounds: Optional[PalmBounds]):
        h, w = image_bgr.shape[:2]
        if palm_bounds is None or not self.crop_to_palm_bounds:
            return image_bytes, (w, h), None

        crop = crop_to_bounds(image_bgr, palm_bounds)
        if crop is None:
            return image_bytes, (w, h), None
        ok, encoded = cv2.imencode(".jpg", crop, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            return image_bytes, (w, h), None
        ch, cw = crop.shape[:2]
        logger.debug("Cropped primary input to palm bounds: %dx%d", cw, ch)
        return encoded.tobytes(), (cw, ch), palm_bounds

    def detect_lines(
        self,
        image_bytes: bytes,
        landmarks: Optional[HandLandmarks] = None,
        palm_bounds: Optional[PalmBounds] = None,
        handedness: Optional[str] = None,
    ) -> FusionResult:
        """
        Detect palm lines in one captured still.

        `landmarks` and `handedness` come from the tracker at capture time. Landmarks anchor the mock
        set; handedness ("Left"/"Right") fills `hand_type` when the vision detector does not report one.
        """
        tracked_hand = handedness.lower() if handedness in ("Left", "Right") else None
        image_bgr = _decode(image_bytes)
        if image_bgr is None:
            logger.error("Could not decode captured image (%d bytes)", len(image_bytes))
            return FusionResult(success=False, lines=(), error=ErrorKind.INVALID_IMAGE)

        h, w = image_bgr.shape[:2]
        primary_bytes, primary_size, crop_bounds = self._primary_input(image_bgr, image_bytes, palm_bounds)

        jobs = []
        for detector, payload, size in ((self.primary, primary_bytes, primary_size), (self.secondary, image_bytes, (w, h))):
            if detector is None:
                continue
            if not getattr(detector, "available", True):
                logger.info("Line detector %s not configured, skipping", detector.name)
                continue
            jobs.append((detector, payload, size))

        outcomes: List[_Outcome] = []
        if jobs:
            with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
                futures = [pool.submit(self._run, *job) for job in jobs]
                outcomes = [f.result() for f in futures]

        reports = {o.source: o.report for o in outcomes if o.report is not None}
        if not reports:
            return replace(self._mock_result(landmarks), hand_type=tracked_hand)

        primary_lines: List[DetectedLine] = []
        primary_report = reports.get(RoboflowLineDetector.name)
        if primary_report is not None:
            for raw in primary_report.lines:
                if crop_bounds is not None:
                    raw = _uncrop(raw, crop_bounds)
                line = resolve_line(raw)
                if line is not None:
                    primary_lines.append(line)

        secondary_lines: List[DetectedLine] = []
        secondary_report = reports.get(GeminiLineDetector.name)
        if secondary_report is not None:
            secondary_lines = [line for line in map(resolve_line, secondary_report.lines) if line is not None]

        lines = list(primary_lines)
        sources = ["primary"] if primary_lines else []
        if secondary_lines:
            if not lines:
                lines = secondary_lines
                sources.append("secondary")
            elif self.fill_missing_types:
                seen = {line.type for line in lines}
                extra = [line for line in secondary_lines if line.type not in seen]
                if extra:
                    lines.extend(extra)
                    sources.append("secondary")

        hand_type = (secondary_report.hand_type if secondary_report is not None else None) or tracked_hand
        if not lines:
            logger.info("Detectors answered but found no palm lines")
            return FusionResult(success=True, lines=(), error=ErrorKind.NO_LINES_DETECTED, hand_type=hand_type)

        logger.info("Fused %d palm lines from %s", len(lines), "+".join(sources))
        return FusionResult(success=True, lines=tuple(lines), sources=tuple(sources), hand_type=hand_type)

    def _mock_result(self, landmarks: Optional[HandLandmarks]) -> FusionResult:
        if landmarks is not None and len(landmarks) == NUM_HAND_LANDMARKS:
            logger.info("No line detector available, placing lines from hand landmarks")
            lines = anatomical_lines(landmarks)
        else:
            logger.info("No line detector available, using generic mock lines")
            lines = MOCK_LINES
        return FusionResult(success=True, lines=lines, sources=("mock",))
