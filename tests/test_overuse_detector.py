import time

import pytest

from rtpinterceptor.gcc.overuse_detector import OveruseDetector
from rtpinterceptor.gcc.state import DelayStats, Usage

MS = 1_000_000


class StaticThreshold:
    def __init__(self, value):
        self.value = value

    def compare(self, estimate, delta):
        if estimate > self.value:
            return Usage.OVER, estimate, self.value
        if estimate < -self.value:
            return Usage.UNDER, estimate, self.value
        return Usage.NORMAL, estimate, self.value


@pytest.mark.parametrize(
    "estimates, expected, delay",
    [
        ([], [], 0),
        ([0, 2 * MS, 3 * MS], [Usage.NORMAL, Usage.NORMAL, Usage.OVER], 13 * MS),
        ([0], [Usage.NORMAL], 0),
        ([-2 * MS], [Usage.UNDER], 0),
        ([0, 3 * MS, 5 * MS], [Usage.NORMAL, Usage.NORMAL, Usage.OVER], 10 * MS),
        (
            [0, 4 * MS, 5 * MS, 3 * MS],
            [Usage.NORMAL, Usage.NORMAL, Usage.OVER, Usage.NORMAL],
            0,
        ),
    ],
    ids=[
        "noEstimateNoUsage",
        "overuse",
        "normaluse",
        "underuse",
        "noOverUseBeforeDelay",
        "noOverUseIfEstimateDecreased",
    ],
)
def test_overuse_detector(estimates, expected, delay):
    received = []
    detector = OveruseDetector(StaticThreshold(MS), delay, received.append)
    for estimate in estimates:
        detector.on_delay_stats(DelayStats(estimate=estimate))
        time.sleep(delay / 1e9)
    assert [ds.usage for ds in received] == expected


def test_passes_threshold_and_measurement_through():
    received = []
    detector = OveruseDetector(StaticThreshold(MS), 0, received.append)
    detector.on_delay_stats(DelayStats(measurement=7 * MS, estimate=0, last_receive_delta=3 * MS))
    assert received[0].threshold == MS
    assert received[0].measurement == 7 * MS
    assert received[0].last_receive_delta == 3 * MS