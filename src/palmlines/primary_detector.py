from __future__ import annotations

import base64
import logging
from typing import List, Optional, Tuple

import requests

from . import config
from .errors import MalformedResponse, ServiceUnavailable
from .types import BoundingBox, BoxGeometry, DetectorReport, PointsGeometry, RawLine
from .utils import as_float, clamp01


logger = logging.getLogger(__name__)

SOURCE = "primary"


def _image_size(data: dict, fallback: Optional[Tuple[int, int]]) -> Tuple[float, float]:
    image = data.get("image")
    if isinstance(image, dict):
        w = as_float(image.get("width"))
        h = as_float(image.get("height"))
        if w and h and w > 0 and h > 0:
            return w, h
    if fallback is not None and fallback[0] > 0 and fallback[1] > 0:
        return float(fallback[0]), float(fallback[1])
    raise MalformedResponse(SOURCE, "response has no usable image size")


def _parse_points(raw_points, img_w: float, img_h: float) -> Optional[PointsGeometry]:
    if not isinstance(raw_points, list) or len(raw_points) < 2:
        return None
    points = []
    for p in raw_points:
        if not isinstance(p, dict):
            return None
        x = as_float(p.get("x"))
        y = as_float(p.get("y"))
        if x is None or y is None:
            return None
        points.append((clamp01(x / img_w), clamp01(y / img_h)))
    return PointsGeometry(tuple(points))


def _parse_box(pred: dict, img_w: float, img_h: float) -> Optional[BoxGeometry]:
    cx, cy, w, h = (as_float(pred.get(k)) for k in ("x", "y", "width", "height"))
    if cx is None or cy is None or w is None or h is None or w < 0 or h < 0:
        return None
    # Detector boxes are centre-based pixels; ours are top-left based and normalized.
    left = clamp01((cx - w / 2.0) / img_w)
    top = clamp01((cy - h / 2.0) / img_h)
    right = clamp01((cx + w / 2.0) / img_w)
    bottom = clamp01((cy + h / 2.0) / img_h)
    return BoxGeometry(BoundingBox(x=left, y=top, width=right - left, height=bottom - top))


def parse_roboflow_response(data: object, fallback_size: Optional[Tuple[int, int]] = None) -> DetectorReport:
    """
    Convert a hosted-inference response into normalized `RawLine`s.

    Predictions with at least two keypoints keep them; the rest fall back to their bounding box.
    Coordinates are divided by the image size the detector reports, or by `fallback_size` (the
    size of the image that was sent) when the response leaves it out. Individual predictions that
    cannot be read are skipped; a response without a predictions list is malformed.
    """
    if not isinstance(data, dict) or not isinstance(data.get("predictions"), list):
        raise MalformedResponse(SOURCE, "response has no predictions list")

    predictions = data["predictions"]
    if not predictions:
        return DetectorReport(source=SOURCE, lines=())

    img_w, img_h = _image_size(data, fallback_size)

    lines: List[RawLine] = []
    for pred in predictions:
        if not isinstance(pred, dict):
            logger.warning("Skipping non-object prediction: %r", pred)
            continue
        label = pred.get("class")
        confidence = as_float(pred.get("confidence"))
        if not isinstance(label, str) or confidence is None:
            logger.warning("Skipping prediction without class/confidence: %r", pred)
            continue

        geometry = _parse_points(pred.get("points"), img_w, img_h) or _parse_box(pred, img_w, img_h)
        if geometry is None:
            logger.warning("Skipping prediction %r without points or box", label)
            continue
        lines.append(RawLine(label=label, confidence=clamp01(confidence), geometry=geometry))

    return DetectorReport(source=SOURCE, lines=tuple(lines))


class RoboflowLineDetector:
    """Primary line detector: a hosted Roboflow model returning keypoints or boxes per line class."""

    name = SOURCE

    def __init__(
        self,
        api_key: str = config.ROBOFLOW_API_KEY,
        api_url: str = config.ROBOFLOW_API_URL,
        model: str = config.ROBOFLOW_MODEL,
        timeout_s: float = config.DETECTOR_TIMEOUT_S,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.model = model.strip("/")
        self.timeout_s = timeout_s

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def detect(self, image_bytes: bytes, image_size: Optional[Tuple[int, int]] = None) -> DetectorReport:
        if not self.api_key:
            raise ServiceUnavailable(self.name, "ROBOFLOW_API_KEY not configured")

        url = f"{self.api_url}/{self.model}"
        logger.debug("Calling primary line detector: %s", url)
        try:
            response = requests.post(
                url,
                params={"api_key": self.api_key},
                data=base64.b64encode(image_bytes),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise ServiceUnavailable(self.name, f"request failed: {e}") from e

        if not response.ok:
            raise ServiceUnavailable(self.name, f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(self.name, "response is not JSON") from e

        report = parse_roboflow_response(data, image_size)
        logger.info("Primary detector returned %d line candidates", len(report.lines))
        return report
