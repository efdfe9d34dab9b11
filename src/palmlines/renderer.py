from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np

from . import config
from .animation import line_progress, visible_point_count
from .layout import map_to_pixels
from .types import DetectedLine, ImageLayout, LineDepth, LineType, PixelPoint
from .utils import hex_to_bgr


logger = logging.getLogger(__name__)

# Fixed-point bits for sub-pixel polylines.
_SHIFT = 4
_SCALE = 1 << _SHIFT


@dataclass(frozen=True)
class LineStyle:
    color: Tuple[int, int, int]  # BGR
    label: str


@dataclass(frozen=True)
class DepthStyle:
    width: int
    glow: float


LINE_STYLES: Dict[LineType, LineStyle] = {
    LineType.HEART: LineStyle(hex_to_bgr("#FFD700"), "Heart"),
    LineType.HEAD: LineStyle(hex_to_bgr("#A78BFA"), "Head"),
    LineType.LIFE: LineStyle(hex_to_bgr("#34D399"), "Life"),
    LineType.FATE: LineStyle(hex_to_bgr("#F472B6"), "Fate"),
    LineType.SUN: LineStyle(hex_to_bgr("#FBBF24"), "Sun"),
    LineType.MARRIAGE: LineStyle(hex_to_bgr("#FB7185"), "Marriage"),
}

DEPTH_STYLES: Dict[LineDepth, DepthStyle] = {
    LineDepth.DEEP: DepthStyle(width=8, glow=1.2),
    LineDepth.MEDIUM: DepthStyle(width=6, glow=1.0),
    LineDepth.FAINT: DepthStyle(width=4, glow=0.7),
}

OUTLINE_COLOR = (0, 0, 0)
HIGHLIGHT_COLOR = (255, 255, 255)
GLOW_BLUR_PX = 20.0


def smooth_path(points: Sequence[PixelPoint], samples: int = config.SMOOTH_SAMPLES_PER_SEGMENT) -> List[PixelPoint]:
    """
    Densify a polyline into one smooth stroke.

    Each interior point is the control point of a quadratic curve ending at the midpoint to its
    successor; the path closes with a straight segment to the last point. Two points stay a
    straight segment.
    """
    if len(points) < 3:
        return list(points)

    out: List[PixelPoint] = [points[0]]
    x0, y0 = points[0]
    for i in range(1, len(points) - 1):
        cx, cy = points[i]
        nx, ny = points[i + 1]
        ex, ey = (cx + nx) / 2.0, (cy + ny) / 2.0
        for s in range(1, samples + 1):
            t = s / samples
            u = 1.0 - t
            out.append((u * u * x0 + 2 * u * t * cx + t * t * ex, u * u * y0 + 2 * u * t * cy + t * t * ey))
        x0, y0 = ex, ey
    out.append(points[-1])
    return out


def _polyline(canvas, path: Sequence[PixelPoint], color, width: int) -> None:
    pts = np.round(np.asarray(path, dtype=np.float64) * _SCALE).astype(np.int32)
    cv2.polylines(canvas, [pts], False, color, max(1, int(width)), cv2.LINE_AA, shift=_SHIFT)


def _blend(canvas, layer, alpha: float) -> None:
    alpha = float(min(1.0, max(0.0, alpha)))
    if alpha <= 0.0:
        return
    cv2.addWeighted(layer, alpha, canvas, 1.0 - alpha, 0.0, dst=canvas)


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.45, thickness=1):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


class GeometryRenderer:
    """
    Draws canonical palm lines over a letterboxed image.

    `render` is deterministic: same lines, layout and progress give the same pixels. Lines reveal one
    after another and each draws itself from its first point onward.
    """

    def __init__(self, show_labels: bool = True) -> None:
        self.show_labels = show_labels

    def render(self, canvas, lines: Sequence[DetectedLine], layout: ImageLayout, progress: float):
        for index, line in enumerate(lines):
            style = LINE_STYLES.get(line.type)
            if style is None:
                continue

            local = line_progress(progress, index)
            if local <= 0.0:
                continue

            pixel_points = [map_to_pixels(p, layout) for p in line.points]
            visible = pixel_points[: visible_point_count(len(pixel_points), local)]
            if len(visible) < 2:
                continue

            self._draw_line(canvas, visible, line, style, local)

            if self.show_labels and local > config.LABEL_PROGRESS_THRESHOLD:
                self._draw_label(canvas, style.label, pixel_points[0], local)
        return canvas

    def _draw_line(self, canvas, points: Sequence[PixelPoint], line: DetectedLine, style: LineStyle, local: float) -> None:
        depth = DEPTH_STYLES.get(line.depth, DEPTH_STYLES[LineDepth.MEDIUM])
        confidence_alpha = max(config.CONFIDENCE_ALPHA_FLOOR, line.confidence)
        path = smooth_path(points)

        # Dark outline for contrast.
        layer = canvas.copy()
        _polyline(layer, path, OUTLINE_COLOR, depth.width + 6)
        _blend(canvas, layer, local * 0.6 * confidence_alpha)

        # Coloured stroke with a blurred glow under it.
        glow = np.zeros_like(canvas)
        _polyline(glow, path, style.color, depth.width + 4)
        sigma = GLOW_BLUR_PX * depth.glow / 2.0
        glow = cv2.GaussianBlur(glow, (0, 0), sigmaX=sigma, sigmaY=sigma)
        glow_strength = local * confidence_alpha * min(1.0, depth.glow)
        cv2.add(canvas, cv2.convertScaleAbs(glow, alpha=glow_strength), dst=canvas)

        layer = canvas.copy()
        _polyline(layer, path, style.color, depth.width)
        _blend(canvas, layer, local * confidence_alpha)

        # Bright centre highlight.
        layer = canvas.copy()
        _polyline(layer, path, HIGHLIGHT_COLOR, max(1, depth.width // 3))
        _blend(canvas, layer, local * 0.4 * confidence_alpha)

    def _draw_label(self, canvas, text: str, anchor: PixelPoint, local: float) -> None:
        alpha = (local - config.LABEL_PROGRESS_THRESHOLD) / (1.0 - config.LABEL_PROGRESS_THRESHOLD)
        (tw, _), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.45, 1)
        org = (int(round(anchor[0] - tw / 2.0)), int(round(anchor[1] - 10)))
        layer = canvas.copy()
        draw_text(layer, text, org)
        _blend(canvas, layer, alpha)
