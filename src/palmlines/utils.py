from __future__ import annotations

from typing import Iterable, Optional, Tuple


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def clamp01(v: float) -> float:
    return clamp(v, 0.0, 1.0)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def bbox_from_points(points: Iterable[Tuple[float, float]]) -> Tuple[float, float, float, float]:
    """Return (x_min, y_min, x_max, y_max) of the points, or zeros when empty."""
    xs = []
    ys = []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return (0.0, 0.0, 0.0, 0.0)
    return (min(xs), min(ys), max(xs), max(ys))


def hex_to_bgr(color: str) -> Tuple[int, int, int]:
    """'#RRGGBB' -> OpenCV (B, G, R)."""
    c = color.lstrip("#")
    r, g, b = int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16)
    return (b, g, r)


def as_float(value: object) -> Optional[float]:
    """Coerce a JSON number to float; None for anything else (bools and NaN included)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    f = float(value)
    if f != f:
        return None
    return f
