from .animation import RevealAnimation
from .capture import CaptureOrchestrator
from .errors import ErrorKind, ModelLoadFailed
from .fusion import FusionResult, LineFusionEngine
from .layout import compute_layout, fit_image, map_to_pixels
from .renderer import GeometryRenderer
from .tracker import LandmarkTracker, close_tracker, compute_palm_bounds, initialize_tracker, is_open_palm
from .types import DetectedLine, ImageLayout, LineDepth, LineType, PalmBounds

__all__ = [
    "CaptureOrchestrator",
    "DetectedLine",
    "ErrorKind",
    "FusionResult",
    "GeometryRenderer",
    "ImageLayout",
    "LandmarkTracker",
    "LineDepth",
    "LineFusionEngine",
    "LineType",
    "ModelLoadFailed",
    "PalmBounds",
    "RevealAnimation",
    "close_tracker",
    "compute_layout",
    "compute_palm_bounds",
    "fit_image",
    "initialize_tracker",
    "is_open_palm",
    "map_to_pixels",
]
