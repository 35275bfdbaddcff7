"""Delay-gradient measurements between successive arrival groups."""

from __future__ import annotations

from collections.abc import Callable

from rtpinterceptor.gcc.arrival_group import ArrivalGroup
from rtpinterceptor.gcc.state import DelayStats


def _inter_group_delay_variation(a: ArrivalGroup, b: ArrivalGroup) -> int:
    return (b.arrival - a.arrival) - (b.departure - a.departure)


class SlopeEstimator:
    """Measures the delay variation between groups and feeds it to an estimator.

    ``estimator`` maps a measurement in nanoseconds to a filtered estimate,
    for example ``Kalman().update_estimate``.
    """

    def __init__(
        self,
        estimator: Callable[[int], int],
        delay_stats_writer: Callable[[DelayStats], None],
    ) -> None:
        self.estimator = estimator
        self.delay_stats_writer = delay_stats_writer
        self._group: ArrivalGroup | None = None

    def on_arrival_group(self, group: ArrivalGroup) -> None:
        if self._group is None:
            self._group = group
            return
        measurement = _inter_group_delay_variation(self._group, group)
        delta = group.arrival - self._group.arrival
        self._group = group
        self.delay_stats_writer(DelayStats(
            measurement=measurement,
            estimate=self.estimator(measurement),
            threshold=0,
            last_receive_delta=delta,
        ))