from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from .types import ImageLayout, NormalizedPoint, PixelPoint


def compute_layout(container_w: float, container_h: float, natural_w: float, natural_h: float) -> ImageLayout:
    """
    Where a "contain"-fit image lands inside its container.

    A relatively wider image fills the container width and is centred vertically; otherwise it fills
    the height and is centred horizontally.
    """
    if container_w <= 0 or container_h <= 0 or natural_w <= 0 or natural_h <= 0:
        raise ValueError(
            f"layout needs positive sizes, got container {container_w}x{container_h}, image {natural_w}x{natural_h}"
        )

    container_ratio = container_w / container_h
    image_ratio = natural_w / natural_h

    if image_ratio > container_ratio:
        display_w = float(container_w)
        display_h = container_w / image_ratio
    else:
        display_h = float(container_h)
        display_w = container_h * image_ratio

    return ImageLayout(
        offset_x=(container_w - display_w) / 2.0,
        offset_y=(container_h - display_h) / 2.0,
        display_width=display_w,
        display_height=display_h,
    )


def map_to_pixels(point: NormalizedPoint, layout: ImageLayout) -> PixelPoint:
    x, y = point
    return (layout.offset_x + x * layout.display_width, layout.offset_y + y * layout.display_height)


def fit_image(image_bgr, container_w: int, container_h: int, background=(16, 5, 5)) -> Tuple[np.ndarray, ImageLayout]:
    """Letterbox `image_bgr` into a fresh container-sized canvas. The layout is recomputed every call."""
    h, w = image_bgr.shape[:2]
    layout = compute_layout(container_w, container_h, w, h)

    canvas = np.empty((container_h, container_w, 3), dtype=np.uint8)
    canvas[:, :] = background

    x0 = int(round(layout.offset_x))
    y0 = int(round(layout.offset_y))
    dw = min(container_w - x0, max(1, int(round(layout.display_width))))
    dh = min(container_h - y0, max(1, int(round(layout.display_height))))
    interp = cv2.INTER_AREA if dw < w else cv2.INTER_LINEAR
    canvas[y0 : y0 + dh, x0 : x0 + dw] = cv2.resize(image_bgr, (dw, dh), interpolation=interp)
    return canvas, layout
