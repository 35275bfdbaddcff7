import pytest

from rtpinterceptor.gcc.adaptive_threshold import AdaptiveThreshold
from rtpinterceptor.gcc.state import Usage

MS = 1_000_000
SECOND = 1_000_000_000


@pytest.mark.parametrize(
    "initial, inputs, expected",
    [
        (None, [], []),
        (None, [(1 * SECOND, 0)], [Usage.NORMAL]),
        (10 * MS, [(0, 0), (20 * MS, 0)], [Usage.NORMAL, Usage.OVER]),
        (10 * MS, [(0, 0), (5 * MS, 0)], [Usage.NORMAL, Usage.NORMAL]),
        (10 * MS, [(0, 0), (-20 * MS, 0)], [Usage.NORMAL, Usage.UNDER]),
        (
            40 * MS,
            [(0, 0), (25 * MS, 30 * MS), (13 * MS, 30 * MS)],
            [Usage.NORMAL, Usage.OVER, Usage.NORMAL],
        ),
        (
            10 * MS,
            [(0, 0), (20 * MS, 30 * MS), (30 * MS, 30 * MS)],
            [Usage.NORMAL, Usage.OVER, Usage.OVER],
        ),
    ],
    ids=[
        "empty",
        "firstInputIsAlwaysNormal",
        "singleOver",
        "singleNormal",
        "singleUnder",
        "increaseThresholdOnOveruse",
        "overuseAfterOveruse",
    ],
)
def test_adaptive_threshold(initial, inputs, expected):
    threshold = AdaptiveThreshold() if initial is None else AdaptiveThreshold(initial)
    usages = [threshold.compare(estimate, delta)[0] for estimate, delta in inputs]
    assert usages == expected


def test_first_compare_returns_estimate_and_max():
    threshold = AdaptiveThreshold(10 * MS)
    assert threshold.compare(3 * MS, 0) == (Usage.NORMAL, 3 * MS, 600 * MS)


def test_second_compare_scales_estimate_and_reports_previous_threshold():
    threshold = AdaptiveThreshold(10 * MS)
    threshold.compare(0, 0)
    assert threshold.compare(20 * MS, 0) == (Usage.OVER, 40 * MS, 10 * MS)


def test_threshold_stays_within_bounds():
    threshold = AdaptiveThreshold(10 * MS)
    for _ in range(100):
        threshold.compare(MS // 10, 0)
    assert 6 * MS <= threshold.thresh <= 600 * MS