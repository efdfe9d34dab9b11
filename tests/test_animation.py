import pytest

from palmlines.animation import RevealAnimation, line_progress, reveal_progress, settled_progress, visible_point_count


class FakeClock:
    def __init__(self, t=100.0):
        self.t = t

    def __call__(self):
        return self.t


def test_reveal_progress_clamped():
    assert reveal_progress(-5, 2000) == 0.0
    assert reveal_progress(1000, 2000) == pytest.approx(0.5)
    assert reveal_progress(5000, 2000) == 1.0
    assert reveal_progress(10, 0) == 1.0


@pytest.mark.parametrize(
    "progress,index,expected",
    [
        (0.0, 0, 0.0),
        (0.2, 0, 0.5),
        (0.4, 0, 1.0),
        (0.15, 1, 0.0),
        (0.35, 1, 0.5),
        (0.55, 1, 1.0),
        (0.5, 3, 0.125),
        (1.0, 3, 1.0),
    ],
)
def test_line_progress_staggered(progress, index, expected):
    assert line_progress(progress, index) == pytest.approx(expected)


def test_visible_point_count_monotonic():
    counts = [visible_point_count(7, p / 100.0) for p in range(101)]
    assert counts == sorted(counts)
    assert counts[0] == 0
    assert counts[-1] == 7
    assert visible_point_count(7, 1.5) == 7
    assert visible_point_count(5, 0.01) == 1


def test_animation_uses_injected_clock():
    clock = FakeClock()
    anim = RevealAnimation(duration_ms=2000, clock=clock)
    assert anim.done is False
    assert anim.progress() == 0.0

    clock.t += 0.5
    assert anim.progress() == pytest.approx(0.25)
    clock.t += 2.0
    assert anim.progress() == 1.0
    assert anim.done

    anim.restart()
    assert anim.progress() == 0.0
    assert anim.done is False


def test_sixth_line_is_partial_at_full_progress():
    assert line_progress(1.0, 4) == pytest.approx(1.0)
    assert line_progress(1.0, 5) == pytest.approx(0.625)


@pytest.mark.parametrize("num_lines", [0, 1, 4, 6, 9])
def test_settled_progress_completes_every_line(num_lines):
    progress = settled_progress(num_lines)
    assert progress >= 1.0
    assert all(line_progress(progress, i) == pytest.approx(1.0) for i in range(num_lines))
