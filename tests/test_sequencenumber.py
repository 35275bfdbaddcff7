import pytest

from rtpinterceptor.sequencenumber import Unwrapper, is_newer


@pytest.mark.parametrize(
    "a,b,expected",
    [
        (1, 0, True),
        (65534, 65535, False),
        (65535, 65535, False),
        (0, 65535, True),
        (0, 32767, False),
        (32770, 2, True),
        (3, 32770, False),
    ],
)
def test_is_newer(a, b, expected):
    assert is_newer(a, b) is expected


@pytest.mark.parametrize(
    "inputs,expected",
    [
        ([], []),
        ([0, 1, 2, 3, 4], [0, 1, 2, 3, 4]),
        ([65534, 65535, 0, 1, 2], [65534, 65535, 65536, 65537, 65538]),
        ([32769, 0], [32769, 65536]),
        ([32767, 0], [32767, 0]),
        (
            [0, 32767, 32768, 32769, 32770, 1, 2, 32765, 32770, 65535],
            [0, 32767, 32768, 32769, 32770, 65537, 65538, 98301, 98306, 131071],
        ),
    ],
)
def test_unwrapper(inputs, expected):
    u = Unwrapper()
    assert [u.unwrap(i) for i in inputs] == expected