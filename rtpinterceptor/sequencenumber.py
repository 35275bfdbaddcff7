"""Unwrapping of 16-bit RTP sequence numbers into a monotonic counter."""

from __future__ import annotations

_MAX_SEQUENCE_NUMBER_PLUS_ONE = 65536
_BREAKPOINT = 32768


def is_newer(value: int, previous: int) -> bool:
    """Report whether ``value`` follows ``previous`` in 16-bit sequence space."""
    diff = (value - previous) & 0xFFFF
    if diff == _BREAKPOINT:
        return value > previous
    return value != previous and diff < _BREAKPOINT


class Unwrapper:
    """Turns wrapping sequence numbers into an unbounded counter."""

    def __init__(self) -> None:
        self._last_unwrapped: int | None = None

    def unwrap(self, i: int) -> int:
        if self._last_unwrapped is None:
            self._last_unwrapped = i
            return i
        last_wrapped = self._last_unwrapped & 0xFFFF
        delta = (i - last_wrapped) & 0xFFFF
        if not is_newer(i, last_wrapped):
            if delta > 0 and self._last_unwrapped + delta - _MAX_SEQUENCE_NUMBER_PLUS_ONE >= 0:
                delta -= _MAX_SEQUENCE_NUMBER_PLUS_ONE
        self._last_unwrapped += delta
        return self._last_unwrapped