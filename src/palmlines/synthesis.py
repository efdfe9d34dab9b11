"""
Fallback geometry for palm lines.

Two things live here: turning a detector's bounding box into a plausible polyline, and the mock
line sets the fusion engine returns when no detector is reachable. None of these shapes are
measurements. The box curves only need to look like the named line and keep heart and head
distinguishable when their boxes are identical.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from . import config
from .types import (
    INDEX_MCP,
    MIDDLE_MCP,
    PINKY_MCP,
    RING_MCP,
    THUMB_CMC,
    THUMB_MCP,
    WRIST,
    BoundingBox,
    DetectedLine,
    HandLandmarks,
    LineDepth,
    LineType,
    NormalizedPoint,
)
from .utils import clamp01, lerp


def depth_from_confidence(confidence: float) -> LineDepth:
    if confidence > config.DEPTH_DEEP_THRESHOLD:
        return LineDepth.DEEP
    if confidence > config.DEPTH_MEDIUM_THRESHOLD:
        return LineDepth.MEDIUM
    return LineDepth.FAINT


def _clamp_points(points: List[NormalizedPoint]) -> Tuple[NormalizedPoint, ...]:
    return tuple((clamp01(x), clamp01(y)) for x, y in points)


def synthesize_points(
    line_type: LineType,
    box: BoundingBox,
    curvature: Optional[str] = None,
    bow: float = config.SYNTH_ARC_BOW,
) -> Tuple[NormalizedPoint, ...]:
    """Build a polyline inside `box` whose shape depends on the line type."""
    left, top, right, bottom = box.x, box.y, box.right, box.bottom
    cx, cy = box.center
    w, h = box.width, box.height

    if line_type in (LineType.HEART, LineType.HEAD):
        if curvature == "straight":
            bow /= 2.0
        # y grows downward: the heart line bows up toward the fingers, the head line bows down.
        sign = -1.0 if line_type is LineType.HEART else 1.0
        offsets = (0.0, 1.0, 2.0, 1.0, 0.0)
        return _clamp_points([(left + w * i / 4.0, cy + sign * bow * o) for i, o in enumerate(offsets)])

    if line_type is LineType.LIFE:
        # Sweeps from the top-right corner down to the bottom-left, bulging around the thumb mount.
        return _clamp_points(
            [
                (right, top),
                (cx + w * 0.2, top + h * 0.2),
                (cx - w * 0.1, cy),
                (left + w * 0.1, bottom - h * 0.2),
                (left, bottom),
            ]
        )

    if line_type is LineType.FATE:
        return _clamp_points([(cx, bottom - h * i / 4.0) for i in range(5)])

    return _clamp_points([(left, cy), (right, cy)])


def _line(line_type: LineType, points: List[NormalizedPoint], confidence: float, depth: LineDepth) -> DetectedLine:
    return DetectedLine(type=line_type, points=_clamp_points(points), confidence=confidence, depth=depth)


# Generic positions for a centred, upright palm.
MOCK_LINES: Tuple[DetectedLine, ...] = (
    _line(
        LineType.HEART,
        [(0.15, 0.28), (0.30, 0.26), (0.45, 0.25), (0.60, 0.27), (0.75, 0.30), (0.85, 0.33)],
        0.85,
        LineDepth.MEDIUM,
    ),
    _line(
        LineType.HEAD,
        [(0.15, 0.42), (0.28, 0.40), (0.42, 0.39), (0.55, 0.41), (0.68, 0.45)],
        0.82,
        LineDepth.MEDIUM,
    ),
    _line(
        LineType.LIFE,
        [(0.40, 0.30), (0.32, 0.38), (0.26, 0.48), (0.23, 0.58), (0.25, 0.68), (0.30, 0.78)],
        0.88,
        LineDepth.DEEP,
    ),
    _line(
        LineType.FATE,
        [(0.50, 0.78), (0.49, 0.65), (0.48, 0.52), (0.47, 0.40)],
        0.65,
        LineDepth.FAINT,
    ),
)


def anatomical_lines(landmarks: HandLandmarks) -> Tuple[DetectedLine, ...]:
    """
    Place the four major lines relative to the hand skeleton.

    Heart sits just below the finger bases, head a little further down, life arcs around the thumb
    mount toward the wrist and fate runs from above the wrist toward the middle finger.
    """
    wrist = landmarks[WRIST]
    thumb_cmc = landmarks[THUMB_CMC]
    thumb_mcp = landmarks[THUMB_MCP]
    index_mcp = landmarks[INDEX_MCP]
    middle_mcp = landmarks[MIDDLE_MCP]
    ring_mcp = landmarks[RING_MCP]
    pinky_mcp = landmarks[PINKY_MCP]

    palm_h = wrist.y - middle_mcp.y
    palm_w = abs(pinky_mcp.x - thumb_cmc.x)
    base_y = (index_mcp.y + middle_mcp.y + ring_mcp.y + pinky_mcp.y) / 4.0

    heart_y = base_y + palm_h * 0.18
    heart = [
        (pinky_mcp.x, heart_y),
        (lerp(pinky_mcp.x, ring_mcp.x, 0.5), heart_y - palm_h * 0.02),
        (middle_mcp.x, heart_y - palm_h * 0.03),
        (lerp(middle_mcp.x, index_mcp.x, 0.5), heart_y - palm_h * 0.02),
        (index_mcp.x, heart_y + palm_h * 0.01),
    ]

    head_x0 = lerp(index_mcp.x, thumb_cmc.x, 0.3)
    head_y0 = base_y + palm_h * 0.38
    head_mid = (middle_mcp.x, head_y0 + palm_h * 0.03)
    head_end = (pinky_mcp.x - palm_w * 0.05, head_y0 + palm_h * 0.08)
    head = [
        (head_x0, head_y0),
        (lerp(head_x0, middle_mcp.x, 0.5), head_y0 + palm_h * 0.01),
        head_mid,
        (lerp(head_mid[0], head_end[0], 0.5), lerp(head_mid[1], head_end[1], 0.5)),
        head_end,
    ]

    life_y0 = head_y0 - palm_h * 0.05
    life_y1 = wrist.y - palm_h * 0.15
    life = [
        (head_x0, life_y0),
        (thumb_mcp.x + palm_w * 0.08, lerp(life_y0, life_y1, 0.35)),
        (thumb_cmc.x + palm_w * 0.12, lerp(life_y0, life_y1, 0.65)),
        (thumb_cmc.x + palm_w * 0.15, life_y1),
    ]

    fate_x0 = middle_mcp.x + palm_w * 0.02
    fate_y0 = wrist.y - palm_h * 0.08
    fate_y1 = base_y + palm_h * 0.25
    fate = [
        (fate_x0, fate_y0),
        (fate_x0 - palm_w * 0.02, lerp(fate_y0, fate_y1, 0.33)),
        (middle_mcp.x + palm_w * 0.01, lerp(fate_y0, fate_y1, 0.66)),
        (middle_mcp.x, fate_y1),
    ]

    return (
        _line(LineType.HEART, heart, 0.90, LineDepth.MEDIUM),
        _line(LineType.HEAD, head, 0.88, LineDepth.MEDIUM),
        _line(LineType.LIFE, life, 0.92, LineDepth.DEEP),
        _line(LineType.FATE, fate, 0.70, LineDepth.FAINT),
    )
