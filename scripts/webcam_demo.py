from __future__ import annotations

import argparse
import logging
import os
import platform
import sys
import time

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from palmlines import config  # noqa: E402
from palmlines.animation import RevealAnimation  # noqa: E402
from palmlines.capture import CaptureOrchestrator  # noqa: E402
from palmlines.errors import ModelLoadFailed  # noqa: E402
from palmlines.fusion import LineFusionEngine  # noqa: E402
from palmlines.layout import fit_image  # noqa: E402
from palmlines.renderer import GeometryRenderer, draw_text  # noqa: E402
from palmlines.tracker import (  # noqa: E402
    CLOSED_PALM_COLOR,
    OPEN_PALM_COLOR,
    close_tracker,
    draw_hand_skeleton,
    initialize_tracker,
)


log = logging.getLogger("webcam_demo")


def _status(state) -> str:
    if state is None or not state.detection.detected:
        return "Show your palm to the camera"
    if not state.palm_open:
        return "Open your hand flat"
    return "Press SPACE to capture"


def main() -> int:
    ap = argparse.ArgumentParser(description="Live palm tracking, capture and line overlay demo.")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=1280, help="Capture width (best effort)")
    ap.add_argument("--height", type=int, default=720, help="Capture height (best effort)")
    ap.add_argument("--view-width", type=int, default=540, help="Result view width")
    ap.add_argument("--view-height", type=int, default=720, help="Result view height")
    ap.add_argument("--no-labels", action="store_true", help="Hide line labels")
    ap.add_argument(
        "--no-mirror",
        action="store_true",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    args = ap.parse_args()

    logging.basicConfig(
        level=config.PALMLINES_LOG_LEVEL,
        format="%(asctime)s │ %(levelname)-7s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        tracker = initialize_tracker()
    except ModelLoadFailed as e:
        log.error("Hand tracking unavailable: %s", e)
        return 1

    if platform.system() == "Darwin":
        cap = cv2.VideoCapture(args.camera, cv2.CAP_AVFOUNDATION)
    else:
        cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        raise RuntimeError(
            f"Could not open camera index {args.camera}. "
            "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal."
        )

    cap.set(cv2.CAP_PROP_FRAME_WIDTH, args.width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, args.height)

    renderer = GeometryRenderer(show_labels=not args.no_labels)
    reveal = RevealAnimation()
    ticket = None
    result = None
    state = None

    with CaptureOrchestrator(tracker, LineFusionEngine.from_config()) as orchestrator:
        while True:
            if ticket is None:
                ok, frame = cap.read()
                if not ok:
                    break
                if not args.no_mirror:
                    frame = cv2.flip(frame, 1)

                now_ms = time.monotonic() * 1000.0
                new_state = orchestrator.process_frame(frame, now_ms)
                if new_state is not None:
                    state = new_state

                view = frame.copy()
                if state is not None and state.detection.landmarks:
                    color = OPEN_PALM_COLOR if state.palm_open else CLOSED_PALM_COLOR
                    draw_hand_skeleton(view, state.detection.landmarks, color=color)
                draw_text(view, _status(state), (12, 28), scale=0.8, thickness=2)
                cv2.imshow("palmlines", view)
            else:
                if result is None:
                    result = orchestrator.collect(ticket)
                    if result is not None:
                        reveal.restart()
                canvas, layout = fit_image(ticket.image_bgr, args.view_width, args.view_height)
                if result is None:
                    draw_text(canvas, "Reading your palm...", (12, 28), scale=0.7, thickness=2)
                else:
                    renderer.render(canvas, result.lines, layout, reveal.progress())
                    draw_text(canvas, "r: retake | q: quit", (12, 28), scale=0.6)
                cv2.imshow("palmlines", canvas)

            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                break
            if key == ord(" ") and ticket is None and state is not None and state.ready:
                ticket = orchestrator.capture(frame, state)
                result = None
            elif key == ord("r") and ticket is not None:
                orchestrator.abandon()
                ticket = None
                result = None
                state = None

    cap.release()
    cv2.destroyAllWindows()
    close_tracker()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
