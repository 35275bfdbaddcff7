"""Delay-based target bitrate controller."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from rtpinterceptor.gcc.mathutil import clamp_int
from rtpinterceptor.gcc.state import DelayStats, State

_DECREASE_EMA_ALPHA = 0.95
_BETA = 0.85
_MILLISECOND = 1_000_000


def _milliseconds(d: int) -> int:
    return d // _MILLISECOND if d >= 0 else -((-d) // _MILLISECOND)


@dataclass
class ExponentialMovingAverage:
    """Moving average and deviation of the received rates at decrease time."""

    average: float = 0.0
    variance: float = 0.0
    std_deviation: float = 0.0

    def update(self, value: float) -> None:
        if self.average == 0.0:
            self.average = value
            return
        x = value - self.average
        self.average += _DECREASE_EMA_ALPHA * x
        self.variance = (1 - _DECREASE_EMA_ALPHA) * (self.variance + _DECREASE_EMA_ALPHA * x * x)
        self.std_deviation = math.sqrt(self.variance)


class RateController:
    """Raises or lowers the target bitrate following the delay-based state machine.

    ``now`` returns the current time in nanoseconds; durations are nanoseconds.
    """

    def __init__(
        self,
        now: Callable[[], int],
        initial_target_bitrate: int,
        min_bitrate: int,
        max_bitrate: int,
        delay_stats_writer: Callable[[DelayStats], None],
    ) -> None:
        self.now = now
        self.initial_target_bitrate = initial_target_bitrate
        self.min_bitrate = min_bitrate
        self.max_bitrate = max_bitrate
        self.delay_stats_writer = delay_stats_writer
        self._lock = threading.Lock()
        self._initialised = False
        self.delay_stats = DelayStats()
        self.target = initial_target_bitrate
        self._last_update = 0
        self.latest_rtt = 0
        self.latest_received_rate = 0
        self.latest_decrease_rate = ExponentialMovingAverage()

    def on_received_rate(self, rate: int) -> None:
        with self._lock:
            self.latest_received_rate = rate

    def update_rtt(self, rtt: int) -> None:
        with self._lock:
            self.latest_rtt = rtt

    def on_delay_stats(self, stats: DelayStats) -> None:
        now = time.time_ns()
        if not self._initialised:
            self.delay_stats = replace(stats, state=State.INCREASE)
            self._initialised = True
            return
        self.delay_stats = replace(stats, state=stats.state.transition(stats.usage))
        if self.delay_stats.state == State.HOLD:
            return

        with self._lock:
            if self.delay_stats.state == State.INCREASE:
                target = self._increase(now)
            else:
                target = self._decrease()
            self.target = clamp_int(target, self.min_bitrate, self.max_bitrate)
            update = replace(self.delay_stats, target_bitrate=self.target)

        self.delay_stats_writer(update)

    def _increase(self, now: int) -> int:
        ema = self.latest_decrease_rate
        received = float(self.latest_received_rate)
        if (
            ema.average > 0
            and received > ema.average - 3 * ema.std_deviation
            and received < ema.average + 3 * ema.std_deviation
        ):
            bits_per_frame = float(self.target) / 30.0
            packets_per_frame = math.ceil(bits_per_frame / (1200 * 8))
            expected_packet_size_bits = bits_per_frame / packets_per_frame
            response_time = 100 * _MILLISECOND + self.latest_rtt
            alpha = 0.5 * min(
                float(_milliseconds(now - self._last_update))
                / float(_milliseconds(response_time)),
                1.0,
            )
            increase = int(max(1000.0, alpha * expected_packet_size_bits))
            self._last_update = now
            return int(min(float(self.target + increase), 1.5 * received))

        eta = math.pow(1.08, min(float(_milliseconds(now - self._last_update)) / 1000, 1.0))
        self._last_update = now
        rate = int(eta * float(self.target))
        # Never increase beyond 1.5 times the received rate.
        ceiling = int(1.5 * received)
        if rate > ceiling and ceiling > self.target:
            return ceiling
        if rate < self.target:
            return self.target
        return rate

    def _decrease(self) -> int:
        target = int(_BETA * float(self.latest_received_rate))
        self.latest_decrease_rate.update(float(self.latest_received_rate))
        self._last_update = self.now()
        return target