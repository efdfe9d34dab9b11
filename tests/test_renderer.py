import numpy as np
import pytest

from palmlines.layout import compute_layout
from palmlines.renderer import LINE_STYLES, GeometryRenderer, smooth_path
from palmlines.synthesis import MOCK_LINES
from palmlines.types import DetectedLine, LineDepth, LineType


LAYOUT = compute_layout(200, 300, 400, 600)


def blank():
    return np.full((300, 200, 3), 40, dtype=np.uint8)


def test_every_line_type_has_a_style():
    assert set(LINE_STYLES) == set(LineType)


def test_nothing_drawn_at_zero_progress():
    canvas = blank()
    GeometryRenderer().render(canvas, MOCK_LINES, LAYOUT, 0.0)
    assert np.array_equal(canvas, blank())


def test_empty_line_set():
    canvas = blank()
    GeometryRenderer().render(canvas, [], LAYOUT, 1.0)
    assert np.array_equal(canvas, blank())


def test_full_progress_draws_every_line():
    canvas = blank()
    GeometryRenderer(show_labels=False).render(canvas, MOCK_LINES, LAYOUT, 1.0)
    for line in MOCK_LINES:
        x, y = line.points[0]
        px, py = int(x * 200), int(y * 300)
        assert not np.array_equal(canvas[py, px], [40, 40, 40])


def test_render_is_deterministic():
    a, b = blank(), blank()
    GeometryRenderer().render(a, MOCK_LINES, LAYOUT, 0.6)
    GeometryRenderer().render(b, MOCK_LINES, LAYOUT, 0.6)
    assert np.array_equal(a, b)


def test_later_lines_wait_their_turn():
    # At progress 0.1 only the first line has started.
    canvas = blank()
    GeometryRenderer(show_labels=False).render(canvas, MOCK_LINES, LAYOUT, 0.1)
    first_only = blank()
    GeometryRenderer(show_labels=False).render(first_only, MOCK_LINES[:1], LAYOUT, 0.1)
    assert np.array_equal(canvas, first_only)


def test_low_confidence_is_still_visible():
    line = DetectedLine(
        type=LineType.HEAD,
        points=((0.1, 0.5), (0.5, 0.52), (0.9, 0.5)),
        confidence=0.05,
        depth=LineDepth.FAINT,
    )
    canvas = blank()
    GeometryRenderer(show_labels=False).render(canvas, [line], LAYOUT, 1.0)
    assert not np.array_equal(canvas[154, 100], [40, 40, 40])


def test_smooth_path_keeps_endpoints():
    points = [(0.0, 0.0), (10.0, 5.0), (20.0, 0.0), (30.0, 5.0)]
    path = smooth_path(points, samples=8)
    assert path[0] == points[0]
    assert path[-1] == points[-1]
    assert len(path) == 2 + 2 * 8
    xs = [p[0] for p in path]
    assert xs == sorted(xs)


def test_smooth_path_short_input_unchanged():
    assert smooth_path([(1.0, 2.0), (3.0, 4.0)]) == [(1.0, 2.0), (3.0, 4.0)]
    assert smooth_path([]) == []


def test_smooth_path_passes_through_midpoints():
    points = [(0.0, 0.0), (10.0, 10.0), (20.0, 0.0)]
    path = smooth_path(points, samples=4)
    assert path[4] == pytest.approx((15.0, 5.0))


def head_line(confidence=0.9):
    return DetectedLine(
        type=LineType.HEAD,
        points=((0.3, 0.5), (0.5, 0.5), (0.7, 0.5)),
        confidence=confidence,
        depth=LineDepth.MEDIUM,
    )


@pytest.mark.parametrize("local,label_shown", [(0.79, False), (0.9, True)])
def test_label_appears_after_threshold_above_first_point(local, label_shown):
    line = head_line()
    progress = local * 0.4  # single line, no stagger offset
    with_label, without_label = blank(), blank()
    GeometryRenderer(show_labels=True).render(with_label, [line], LAYOUT, progress)
    GeometryRenderer(show_labels=False).render(without_label, [line], LAYOUT, progress)

    # First point maps to (60, 150); the label sits just above it.
    above = (slice(120, 146), slice(30, 91))
    assert np.array_equal(with_label[above], without_label[above]) is not label_shown
    assert np.array_equal(with_label[160:, :], without_label[160:, :])


def _ink(canvas):
    return int(np.abs(canvas.astype(np.int32) - 40).sum())


def test_opacity_scales_with_confidence():
    canvases = {}
    for confidence in (0.3, 0.6, 0.95):
        canvas = blank()
        GeometryRenderer(show_labels=False).render(canvas, [head_line(confidence)], LAYOUT, 1.0)
        canvases[confidence] = canvas

    assert _ink(canvases[0.95]) > _ink(canvases[0.3])
    # Below the floor every confidence renders the same.
    assert np.array_equal(canvases[0.3], canvases[0.6])
