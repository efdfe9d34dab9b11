from __future__ import annotations

import argparse
import logging
import os
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from palmlines import config  # noqa: E402
from palmlines.animation import settled_progress  # noqa: E402
from palmlines.errors import ModelLoadFailed  # noqa: E402
from palmlines.fusion import LineFusionEngine  # noqa: E402
from palmlines.layout import fit_image  # noqa: E402
from palmlines.renderer import GeometryRenderer  # noqa: E402
from palmlines.tracker import close_tracker, compute_palm_bounds, initialize_tracker  # noqa: E402


log = logging.getLogger("image_demo")


def main() -> int:
    ap = argparse.ArgumentParser(description="Detect palm lines in a photo and write the overlay.")
    ap.add_argument("--image", required=True, help="Path to input image")
    ap.add_argument("--out", required=True, help="Path to output image (annotated)")
    ap.add_argument("--view-width", type=int, default=540, help="Output width")
    ap.add_argument("--view-height", type=int, default=720, help="Output height")
    ap.add_argument("--no-landmarks", action="store_true", help="Skip hand tracking (no palm crop)")
    args = ap.parse_args()

    logging.basicConfig(level=config.PALMLINES_LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    with open(args.image, "rb") as f:
        image_bytes = f.read()
    frame = cv2.imread(args.image)
    if frame is None:
        raise RuntimeError(f"Could not read image: {args.image}")

    landmarks = None
    bounds = None
    handedness = None
    if not args.no_landmarks:
        try:
            detection = initialize_tracker().detect_image(frame)
        except ModelLoadFailed as e:
            log.warning("Hand tracking unavailable, continuing without landmarks: %s", e)
        else:
            if detection.detected:
                landmarks = detection.landmarks
                bounds = compute_palm_bounds(landmarks)
                handedness = detection.handedness
            close_tracker()

    result = LineFusionEngine.from_config().detect_lines(image_bytes, landmarks, bounds, handedness)

    canvas, layout = fit_image(frame, args.view_width, args.view_height)
    GeometryRenderer().render(canvas, result.lines, layout, settled_progress(len(result.lines)))

    ok = cv2.imwrite(args.out, canvas)
    if not ok:
        raise RuntimeError(f"Could not write output image: {args.out}")

    print(f"success={result.success} sources={','.join(result.sources) or '-'} hand={result.hand_type or '-'} error={result.error}")
    for i, line in enumerate(result.lines):
        print(f"[{i}] {line.type.value} depth={line.depth.value} confidence={line.confidence:.2f} points={len(line.points)}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
