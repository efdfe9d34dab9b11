import threading
from types import SimpleNamespace

import numpy as np
import pytest

from conftest import OPEN_HAND_XY, curl_fingers
from palmlines.capture import CaptureOrchestrator
from palmlines.fusion import FusionResult
from palmlines.synthesis import MOCK_LINES
from palmlines.tracker import LandmarkTracker, _RawHand


class StaticBackend:
    def __init__(self, xy=None):
        self.xy = xy

    def detect(self, frame_rgb, timestamp_ms):
        if self.xy is None:
            return []
        return [_RawHand([SimpleNamespace(x=x, y=y, z=0.0) for x, y in self.xy], "Right", 0.9)]

    def close(self):
        pass


class GatedEngine:
    def __init__(self):
        self.gate = threading.Event()
        self.calls = []

    def detect_lines(self, image_bytes, landmarks=None, palm_bounds=None, handedness=None):
        self.calls.append((image_bytes, landmarks, palm_bounds, handedness))
        self.gate.wait(timeout=5)
        return FusionResult(success=True, lines=MOCK_LINES, sources=("mock",))


FRAME = np.full((120, 80, 3), 90, dtype=np.uint8)


@pytest.fixture
def engine():
    return GatedEngine()


def orchestrator(engine, xy=OPEN_HAND_XY):
    return CaptureOrchestrator(LandmarkTracker(StaticBackend(xy)), engine, interval_ms=50)


def test_throttle_drops_frames(engine):
    with orchestrator(engine) as orch:
        states = [orch.process_frame(FRAME, t) for t in (0, 20, 40, 50, 60, 110)]
    assert [s is not None for s in states] == [True, False, False, True, False, True]


def test_open_palm_is_ready(engine):
    with orchestrator(engine) as orch:
        state = orch.process_frame(FRAME, 0)
    assert state.ready
    assert state.palm_bounds is not None


def test_fist_is_not_ready(engine):
    with orchestrator(engine, curl_fingers(OPEN_HAND_XY, [1, 2, 3, 4])) as orch:
        state = orch.process_frame(FRAME, 0)
    assert state.detection.detected
    assert not state.ready


def test_no_hand_is_not_ready(engine):
    with orchestrator(engine, None) as orch:
        state = orch.process_frame(FRAME, 0)
    assert not state.detection.detected
    assert state.palm_bounds is None
    assert not state.ready


def test_capture_hands_landmarks_to_engine(engine):
    with orchestrator(engine) as orch:
        state = orch.process_frame(FRAME, 0)
        ticket = orch.capture(FRAME, state)
        assert orch.collect(ticket) is None  # still pending

        engine.gate.set()
        ticket.future.result(timeout=5)
        result = orch.collect(ticket)

    assert result.success and result.lines == MOCK_LINES
    image_bytes, landmarks, bounds, handedness = engine.calls[0]
    assert image_bytes[:2] == b"\xff\xd8"
    assert landmarks == state.detection.landmarks
    assert bounds == state.palm_bounds
    assert handedness == "Right" == ticket.handedness
    assert ticket.image_bgr is not FRAME
    assert np.array_equal(ticket.image_bgr, FRAME)


def test_abandoned_capture_is_discarded(engine):
    with orchestrator(engine) as orch:
        ticket = orch.capture(FRAME)
        orch.abandon()
        engine.gate.set()
        ticket.future.result(timeout=5)
        assert not orch.is_current(ticket)
        assert orch.collect(ticket) is None

        retake = orch.capture(FRAME)
        retake.future.result(timeout=5)
        assert orch.collect(retake) is not None


class FirstCallBlocksEngine:
    """Holds the first capture's fusion until released; later captures answer at once."""

    def __init__(self):
        self.first_started = threading.Event()
        self.release_first = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def detect_lines(self, image_bytes, landmarks=None, palm_bounds=None, handedness=None):
        with self._lock:
            self.calls += 1
            first = self.calls == 1
        if first:
            self.first_started.set()
            self.release_first.wait(timeout=10)
        return FusionResult(success=True, lines=MOCK_LINES[:1] if first else MOCK_LINES, sources=("mock",))


def test_retake_does_not_wait_for_abandoned_capture():
    engine = FirstCallBlocksEngine()
    with orchestrator(engine) as orch:
        stale = orch.capture(FRAME)
        assert engine.first_started.wait(timeout=5)
        orch.abandon()
        retake = orch.capture(FRAME)

        result = retake.future.result(timeout=2)
        assert not stale.future.done()
        assert engine.calls == 2
        assert orch.collect(retake) is result
        assert result.lines == MOCK_LINES

        engine.release_first.set()
        stale.future.result(timeout=5)
        assert orch.collect(stale) is None
