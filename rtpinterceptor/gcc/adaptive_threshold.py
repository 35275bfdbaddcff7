"""Overuse threshold that adapts to the current delay estimates."""

from __future__ import annotations

import time

from rtpinterceptor.gcc.mathutil import clamp_duration, min_int
from rtpinterceptor.gcc.state import Usage

_MICROSECOND = 1_000
_MILLISECOND = 1_000_000
_MAX_DELTAS = 60
_MAX_TIME_DELTA_MS = 100


def _truncating_div(d: int, unit: int) -> int:
    return d // unit if d >= 0 else -((-d) // unit)


class AdaptiveThreshold:
    """Threshold that grows fast when estimates leave [-thresh, thresh] and shrinks slowly inside it.

    Durations are integer nanoseconds.
    """

    def __init__(self, initial_threshold: int = 12_500 * _MICROSECOND) -> None:
        self.thresh = initial_threshold
        self.overuse_coefficient_up = 0.01
        self.overuse_coefficient_down = 0.00018
        self.min = 6 * _MILLISECOND
        self.max = 600 * _MILLISECOND
        self._last_update: int | None = None
        self._num_deltas = 0

    def compare(self, estimate: int, delta: int) -> tuple[Usage, int, int]:
        """Classify ``estimate``; return the usage, the scaled estimate and the threshold used."""
        self._num_deltas += 1
        if self._num_deltas < 2:
            return Usage.NORMAL, estimate, self.max
        scaled = min_int(self._num_deltas, _MAX_DELTAS) * estimate
        use = Usage.NORMAL
        if scaled > self.thresh:
            use = Usage.OVER
        elif scaled < -self.thresh:
            use = Usage.UNDER
        thresh = self.thresh
        self._update(scaled)
        return use, scaled, thresh

    def _update(self, estimate: int) -> None:
        now = time.monotonic_ns()
        if self._last_update is None:
            self._last_update = now
        abs_estimate = abs(_truncating_div(estimate, _MICROSECOND)) * _MICROSECOND
        if abs_estimate > self.thresh + 15 * _MILLISECOND:
            self._last_update = now
            return
        k = self.overuse_coefficient_up
        if abs_estimate < self.thresh:
            k = self.overuse_coefficient_down
        elapsed_ms = _truncating_div(now - self._last_update, _MILLISECOND)
        time_delta_ms = min_int(elapsed_ms, _MAX_TIME_DELTA_MS)
        d_ms = _truncating_div(abs_estimate - self.thresh, _MILLISECOND)
        add = k * float(d_ms) * float(time_delta_ms)
        self.thresh += int(add * 1000) * _MICROSECOND
        self.thresh = clamp_duration(self.thresh, self.min, self.max)
        self._last_update = now