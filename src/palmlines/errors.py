from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    SERVICE_UNAVAILABLE = "service_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    NO_LINES_DETECTED = "no_lines_detected"
    INVALID_IMAGE = "invalid_image"


class PalmLinesError(Exception):
    """Base class for errors raised by this package."""


class ModelLoadFailed(PalmLinesError):
    """The hand landmark model could not be loaded. Tracking is unavailable."""


class DetectorError(PalmLinesError):
    kind: ErrorKind = ErrorKind.MALFORMED_RESPONSE

    def __init__(self, detector: str, message: str) -> None:
        super().__init__(f"{detector}: {message}")
        self.detector = detector


class ServiceUnavailable(DetectorError):
    """No credentials configured, or the service could not be reached."""

    kind = ErrorKind.SERVICE_UNAVAILABLE


class MalformedResponse(DetectorError):
    """The detector answered, but its payload could not be interpreted."""

    kind = ErrorKind.MALFORMED_RESPONSE
