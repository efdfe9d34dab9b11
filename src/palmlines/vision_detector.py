from __future__ import annotations

import base64
import json
import logging
import re
from typing import List, Optional, Tuple

import requests

from . import config
from .errors import MalformedResponse, ServiceUnavailable
from .types import BoundingBox, BoxGeometry, DetectorReport, RawLine
from .utils import as_float, clamp01


logger = logging.getLogger(__name__)

SOURCE = "secondary"

PALM_ANALYSIS_PROMPT = """You are an expert palm reader analyzing a palm image.
Locate these palm lines:

1. Heart Line - the top horizontal line across the palm, starting at the edge under the pinky
2. Head Line - the middle horizontal line, starting at the edge between thumb and index finger
3. Life Line - the curved line around the base of the thumb
4. Fate Line - the vertical line up the centre of the palm (if visible)

For each line you find, give:
- type: one of "heart", "head", "life", "fate"
- boundingBox: the line's region in normalized coordinates (0-1)
  - x: left edge (0 = left of image, 1 = right)
  - y: top edge (0 = top of image, 1 = bottom)
  - width, height: size of the region (0-1)
- confidence: how sure you are (0-1)
- curvature: "straight", "curved" or "forked"
- depth: "faint", "medium" or "deep"

Also report:
- handType: "left" or "right", judged from the thumb position
- imageQuality: "poor", "acceptable" or "good"

Respond ONLY with JSON in exactly this shape:
{
  "lines": [
    {
      "type": "heart",
      "boundingBox": { "x": 0.1, "y": 0.2, "width": 0.8, "height": 0.1 },
      "confidence": 0.9,
      "curvature": "curved",
      "depth": "deep"
    }
  ],
  "handType": "right",
  "imageQuality": "good"
}"""

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


def extract_json_object(text: str) -> dict:
    """
    Pull the JSON object out of a model reply.

    Replies are often wrapped in markdown fences or surrounded by prose. A fenced block wins;
    otherwise the span from the first "{" to the last "}" is tried.
    """
    candidates = [m.group(1) for m in _FENCED_JSON.finditer(text)]
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    raise MalformedResponse(SOURCE, "no JSON object in model reply")


def _parse_box(raw) -> Optional[BoundingBox]:
    if not isinstance(raw, dict):
        return None
    x, y, w, h = (as_float(raw.get(k)) for k in ("x", "y", "width", "height"))
    if x is None or y is None or w is None or h is None or w < 0 or h < 0:
        return None
    left, top = clamp01(x), clamp01(y)
    return BoundingBox(x=left, y=top, width=clamp01(x + w) - left, height=clamp01(y + h) - top)


def parse_vision_reply(parsed: dict) -> DetectorReport:
    raw_lines = parsed.get("lines", [])
    if not isinstance(raw_lines, list):
        raise MalformedResponse(SOURCE, "'lines' is not a list")

    lines: List[RawLine] = []
    for entry in raw_lines:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-object line entry: %r", entry)
            continue
        label = entry.get("type")
        confidence = as_float(entry.get("confidence"))
        box = _parse_box(entry.get("boundingBox"))
        if not isinstance(label, str) or confidence is None or box is None:
            logger.warning("Skipping unreadable line entry: %r", entry)
            continue
        curvature = entry.get("curvature") if isinstance(entry.get("curvature"), str) else None
        lines.append(RawLine(label=label, confidence=clamp01(confidence), geometry=BoxGeometry(box), curvature=curvature))

    hand_type = parsed.get("handType")
    image_quality = parsed.get("imageQuality")
    return DetectorReport(
        source=SOURCE,
        lines=tuple(lines),
        hand_type=hand_type if isinstance(hand_type, str) else None,
        image_quality=image_quality if isinstance(image_quality, str) else None,
    )


class GeminiLineDetector:
    """Secondary line detector: a multimodal model asked for coarse line regions as JSON."""

    name = SOURCE

    def __init__(
        self,
        api_key: str = config.GEMINI_API_KEY,
        api_url: str = config.GEMINI_API_URL,
        temperature: float = config.GEMINI_TEMPERATURE,
        max_output_tokens: int = config.GEMINI_MAX_OUTPUT_TOKENS,
        timeout_s: float = config.DETECTOR_TIMEOUT_S,
        prompt: str = PALM_ANALYSIS_PROMPT,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_s = timeout_s
        self.prompt = prompt

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _payload(self, image_bytes: bytes) -> dict:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt},
                        {
                            "inline_data": {
                                "mime_type": "image/jpeg",
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    def detect(self, image_bytes: bytes, image_size: Optional[Tuple[int, int]] = None) -> DetectorReport:
        if not self.api_key:
            raise ServiceUnavailable(self.name, "GEMINI_API_KEY not configured")

        try:
            response = requests.post(
                self.api_url,
                params={"key": self.api_key},
                json=self._payload(image_bytes),
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise ServiceUnavailable(self.name, f"request failed: {e}") from e

        if not response.ok:
            raise ServiceUnavailable(self.name, f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponse(self.name, "reply has no text part (blocked or empty)") from e
        if not isinstance(text, str) or not text.strip():
            raise MalformedResponse(self.name, "empty reply text")

        logger.debug("Raw vision reply: %s", text[:500])
        report = parse_vision_reply(extract_json_object(text))
        logger.info("Secondary detector returned %d line regions", len(report.lines))
        return report
