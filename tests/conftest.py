import os
import sys

import cv2
import numpy as np
import pytest

# Allow running without installing the package (repo-local usage).
SRC_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from palmlines.types import HandLandmark  # noqa: E402


# Upright right hand facing the camera, fingers spread upward.
OPEN_HAND_XY = [
    (0.50, 0.80),  # wrist
    (0.40, 0.72), (0.35, 0.65), (0.32, 0.58), (0.30, 0.52),  # thumb
    (0.42, 0.50), (0.41, 0.42), (0.40, 0.36), (0.40, 0.30),  # index
    (0.50, 0.48), (0.50, 0.39), (0.50, 0.32), (0.50, 0.26),  # middle
    (0.57, 0.50), (0.58, 0.42), (0.59, 0.36), (0.59, 0.31),  # ring
    (0.63, 0.54), (0.65, 0.48), (0.66, 0.44), (0.67, 0.40),  # pinky
]


def make_landmarks(xy):
    return [HandLandmark(idx=i, x=x, y=y, z=0.0) for i, (x, y) in enumerate(xy)]


def curl_fingers(xy, fingers):
    """Move the tips of the given fingers (1=index .. 4=pinky) below their MCP joints."""
    out = list(xy)
    for f in fingers:
        mcp = 1 + 4 * f
        tip = mcp + 3
        mx, my = out[mcp]
        out[tip] = (mx, my + 0.05)
    return out


@pytest.fixture
def open_hand():
    return make_landmarks(OPEN_HAND_XY)


@pytest.fixture
def jpeg_bytes():
    def _make(width=60, height=90):
        image = np.full((height, width, 3), 127, dtype=np.uint8)
        ok, encoded = cv2.imencode(".jpg", image)
        assert ok
        return encoded.tobytes()

    return _make
