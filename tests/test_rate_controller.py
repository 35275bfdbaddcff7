import math

import pytest

from rtpinterceptor.gcc.rate_controller import ExponentialMovingAverage, RateController
from rtpinterceptor.gcc.state import DelayStats, State, Usage

MS = 1_000_000


def make_controller(received, min_bitrate=1_000):
    clock = {"t": 0}

    def now():
        clock["t"] += 100 * MS
        return clock["t"]

    out = []
    controller = RateController(now, 100_000, min_bitrate, 50_000_000, out.append)
    controller.on_received_rate(received)
    controller.update_rtt(300 * MS)
    return controller, out


def test_empty_produces_nothing():
    _, out = make_controller(100_000)
    assert out == []


def test_increases_multiplicatively_by_8000():
    controller, out = make_controller(100_000)
    for usage in [Usage.NORMAL, Usage.NORMAL]:
        controller.on_delay_stats(DelayStats(usage=usage))
    assert out[0] == DelayStats(
        usage=Usage.NORMAL,
        state=State.INCREASE,
        target_bitrate=108_000,
        estimate=0,
        threshold=0,
    )


def test_first_stats_only_initialise():
    controller, out = make_controller(100_000)
    controller.on_delay_stats(DelayStats(usage=Usage.OVER))
    assert out == []


def test_decrease_uses_received_rate():
    controller, out = make_controller(100_000)
    controller.on_delay_stats(DelayStats(usage=Usage.NORMAL))
    controller.on_delay_stats(DelayStats(usage=Usage.OVER))
    assert out[0].state == State.DECREASE
    assert out[0].target_bitrate == 85_000
    assert controller.latest_decrease_rate.average == 100_000


def test_decrease_is_clamped_to_min_bitrate():
    controller, out = make_controller(1_000, min_bitrate=1_000)
    controller.on_delay_stats(DelayStats(usage=Usage.NORMAL))
    controller.on_delay_stats(DelayStats(usage=Usage.OVER))
    assert out[0].target_bitrate == 1_000


def test_hold_writes_nothing():
    controller, out = make_controller(100_000)
    controller.on_delay_stats(DelayStats(usage=Usage.NORMAL))
    controller.on_delay_stats(DelayStats(usage=Usage.UNDER))
    assert out == []


def test_exponential_moving_average():
    ema = ExponentialMovingAverage()
    ema.update(100.0)
    assert ema.average == 100.0
    ema.update(200.0)
    assert ema.average == pytest.approx(195.0)
    assert ema.variance == pytest.approx(475.0)
    assert ema.std_deviation == pytest.approx(math.sqrt(475.0))