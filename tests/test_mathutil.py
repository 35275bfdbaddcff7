import pytest

from rtpinterceptor.gcc.mathutil import clamp_duration, clamp_int, max_int, min_int


@pytest.mark.parametrize("expected, a, b", [(0, 0, 100), (10, 10, 10), (1, 10, 1)])
def test_min_int(expected, a, b):
    assert min_int(a, b) == expected


@pytest.mark.parametrize("expected, a, b", [(100, 0, 100), (10, 10, 10), (10, 10, 1)])
def test_max_int(expected, a, b):
    assert max_int(a, b) == expected


CLAMP_CASES = [
    (50, 50, 0, 100),
    (50, 50, 50, 100),
    (100, 100, 0, 100),
    (50, 3, 50, 100),
    (100, 150, 0, 100),
]


@pytest.mark.parametrize("expected, x, lo, hi", CLAMP_CASES)
def test_clamp_int(expected, x, lo, hi):
    assert clamp_int(x, lo, hi) == expected


@pytest.mark.parametrize("expected, x, lo, hi", CLAMP_CASES)
def test_clamp_duration(expected, x, lo, hi):
    assert clamp_duration(x, lo, hi) == expected