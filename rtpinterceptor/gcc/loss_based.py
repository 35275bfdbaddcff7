"""Loss-based bandwidth estimation."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass

from rtpinterceptor.acknowledgment import Acknowledgment
from rtpinterceptor.gcc.mathutil import clamp_int, min_int

_MILLISECOND = 1_000_000
_INCREASE_LOSS_THRESHOLD = 0.02
_INCREASE_TIME_THRESHOLD = 200 * _MILLISECOND
_INCREASE_FACTOR = 1.05
_DECREASE_LOSS_THRESHOLD = 0.1
_DECREASE_TIME_THRESHOLD = 200 * _MILLISECOND

_log = logging.getLogger(__name__)


def _milliseconds(d: int) -> int:
    return d // _MILLISECOND if d >= 0 else -((-d) // _MILLISECOND)


@dataclass
class LossStats:
    """Internal statistics of the loss-based controller."""

    target_bitrate: int = 0
    average_loss: float = 0.0


class LossBasedBandwidthEstimator:
    """Adjusts the bitrate from the fraction of packets reported lost."""

    def __init__(self, initial_bitrate: int) -> None:
        self._lock = threading.Lock()
        self.max_bitrate = 100_000_000
        self.min_bitrate = 100_000
        self.bitrate = initial_bitrate
        self.average_loss = 0.0
        self._last_loss_update = 0
        self._last_increase = 0
        self._last_decrease = 0

    def get_estimate(self, wanted_rate: int) -> LossStats:
        """Return the loss-based target, never above ``wanted_rate``."""
        with self._lock:
            if self.bitrate <= 0:
                self.bitrate = clamp_int(wanted_rate, self.min_bitrate, self.max_bitrate)
            self.bitrate = min_int(wanted_rate, self.bitrate)
            return LossStats(target_bitrate=self.bitrate, average_loss=self.average_loss)

    def update_loss_estimate(self, results: Sequence[Acknowledgment]) -> None:
        """Update the loss average and bitrate from a batch of acknowledgments."""
        if not results:
            return
        packets_lost = sum(1 for ack in results if ack.arrival == 0)

        with self._lock:
            loss_ratio = packets_lost / len(results)
            now = time.time_ns()
            self.average_loss = self._average(
                now - self._last_loss_update, self.average_loss, loss_ratio
            )
            self._last_loss_update = now

            increase_loss = max(self.average_loss, loss_ratio)
            decrease_loss = min(self.average_loss, loss_ratio)

            if (
                increase_loss < _INCREASE_LOSS_THRESHOLD
                and time.time_ns() - self._last_increase > _INCREASE_TIME_THRESHOLD
            ):
                _log.info(
                    "loss controller increasing; averageLoss: %s, decreaseLoss: %s, increaseLoss: %s",
                    self.average_loss, decrease_loss, increase_loss,
                )
                self._last_increase = time.time_ns()
                self.bitrate = clamp_int(
                    int(_INCREASE_FACTOR * float(self.bitrate)),
                    self.min_bitrate, self.max_bitrate,
                )
            elif (
                decrease_loss > _DECREASE_LOSS_THRESHOLD
                and time.time_ns() - self._last_decrease > _DECREASE_TIME_THRESHOLD
            ):
                _log.info(
                    "loss controller decreasing; averageLoss: %s, decreaseLoss: %s, increaseLoss: %s",
                    self.average_loss, decrease_loss, increase_loss,
                )
                self._last_decrease = time.time_ns()
                self.bitrate = clamp_int(
                    int(float(self.bitrate) * (1 - 0.5 * decrease_loss)),
                    self.min_bitrate, self.max_bitrate,
                )

    @staticmethod
    def _average(delta: int, prev: float, sample: float) -> float:
        return sample + math.exp(-float(_milliseconds(delta)) / 200.0) * (prev - sample)