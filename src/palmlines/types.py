from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union


NormalizedPoint = Tuple[float, float]  # (x, y) in [0, 1], relative to the original image
PixelPoint = Tuple[float, float]

# MediaPipe hand landmark indices.
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_TIP = 12
RING_MCP = 13
RING_TIP = 16
PINKY_MCP = 17
PINKY_TIP = 20

NUM_HAND_LANDMARKS = 21

PALM_BASE_INDICES: Tuple[int, ...] = (WRIST, THUMB_CMC, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)

# (tip, mcp) for the four non-thumb fingers
FINGER_TIP_MCP: Tuple[Tuple[int, int], ...] = (
    (INDEX_TIP, INDEX_MCP),
    (MIDDLE_TIP, MIDDLE_MCP),
    (RING_TIP, RING_MCP),
    (PINKY_TIP, PINKY_MCP),
)


@dataclass(frozen=True)
class HandLandmark:
    """A single hand landmark in normalized image coordinates."""

    idx: int
    x: float
    y: float
    z: float  # depth relative to the wrist


HandLandmarks = List[HandLandmark]  # length 21


@dataclass(frozen=True)
class DetectionResult:
    """Per-frame output of the landmark tracker."""

    detected: bool
    landmarks: Optional[HandLandmarks] = None
    handedness: Optional[str] = None  # "Left" / "Right"
    confidence: float = 0.0

    @classmethod
    def empty(cls) -> "DetectionResult":
        return cls(detected=False)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in normalized space, anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> NormalizedPoint:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


# Palm bounds share the box shape; kept as a separate name for readability at call sites.
PalmBounds = BoundingBox


class LineType(str, Enum):
    HEART = "heart"
    HEAD = "head"
    LIFE = "life"
    FATE = "fate"
    SUN = "sun"
    MARRIAGE = "marriage"


class LineDepth(str, Enum):
    FAINT = "faint"
    MEDIUM = "medium"
    DEEP = "deep"


@dataclass(frozen=True)
class DetectedLine:
    """
    Canonical palm line record.

    `points` always holds at least two normalized points once a line leaves the fusion stage,
    whether they came from a detector or were synthesized from a bounding box.
    """

    type: LineType
    points: Tuple[NormalizedPoint, ...]
    confidence: float
    depth: LineDepth
    bounding_box: Optional[BoundingBox] = None  # originating region, diagnostics only
    curvature: Optional[str] = None  # "straight" / "curved" / "forked" hint


@dataclass(frozen=True)
class PointsGeometry:
    points: Tuple[NormalizedPoint, ...]


@dataclass(frozen=True)
class BoxGeometry:
    box: BoundingBox


LineGeometry = Union[PointsGeometry, BoxGeometry]


@dataclass(frozen=True)
class RawLine:
    """A single detector candidate before label normalization and geometry reconciliation."""

    label: str
    confidence: float
    geometry: LineGeometry
    curvature: Optional[str] = None


@dataclass(frozen=True)
class ImageLayout:
    """Pixel placement of a contain-fit image inside its container."""

    offset_x: float
    offset_y: float
    display_width: float
    display_height: float


@dataclass(frozen=True)
class DetectorReport:
    """Everything one remote detector contributed, already in normalized coordinates."""

    source: str
    lines: Tuple[RawLine, ...]
    hand_type: Optional[str] = None
    image_quality: Optional[str] = None
