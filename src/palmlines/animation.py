from __future__ import annotations

import math
import time
from typing import Callable, Optional

from . import config
from .utils import clamp01


def reveal_progress(elapsed_ms: float, duration_ms: float = config.REVEAL_DURATION_MS) -> float:
    if duration_ms <= 0:
        return 1.0
    return clamp01(elapsed_ms / duration_ms)


def line_progress(
    progress: float,
    index: int,
    stagger: float = config.REVEAL_STAGGER,
    ramp: float = config.REVEAL_RAMP,
) -> float:
    """
    Local progress of line `index`: starts at `index * stagger` and completes `ramp` later.

    The schedule is not normalised to the line count. With the default stagger and ramp, lines past
    index 4 are still partial (and unlabelled) at progress 1.0; line 5 of six sits at 0.625. Use
    `settled_progress` for a frame where every line is complete.
    """
    return clamp01((progress - index * stagger) / ramp)


def settled_progress(
    num_lines: int,
    stagger: float = config.REVEAL_STAGGER,
    ramp: float = config.REVEAL_RAMP,
) -> float:
    """Smallest overall progress at which every one of `num_lines` lines is fully revealed."""
    return max(1.0, (num_lines - 1) * stagger + ramp)


def visible_point_count(num_points: int, local_progress: float) -> int:
    return min(num_points, int(math.ceil(num_points * clamp01(local_progress))))


class RevealAnimation:
    """
    Owns the clock for the line reveal.

    Only this class samples time; everything it feeds (`GeometryRenderer.render`) is a pure
    function of the returned progress. Call `restart()` whenever the line set changes.
    """

    def __init__(
        self,
        duration_ms: float = config.REVEAL_DURATION_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration_ms = duration_ms
        self._clock = clock
        self._start: Optional[float] = None

    def restart(self) -> None:
        self._start = self._clock()

    def progress(self) -> float:
        if self._start is None:
            self.restart()
        elapsed_ms = (self._clock() - self._start) * 1000.0
        return reveal_progress(elapsed_ms, self.duration_ms)

    @property
    def done(self) -> bool:
        return self._start is not None and self.progress() >= 1.0
