"""Conversion between nanosecond Unix timestamps and 64-bit NTP timestamps."""

_NTP_EPOCH_OFFSET = 2208988800


def to_ntp(t: int) -> int:
    """Convert nanoseconds since the Unix epoch to an NTP timestamp."""
    seconds = float(t) / 1000000000 + _NTP_EPOCH_OFFSET
    integer_part = int(seconds) & 0xFFFFFFFF
    fractional_part = int((seconds - float(integer_part)) * 0xFFFFFFFF) & 0xFFFFFFFF
    return (integer_part << 32) | fractional_part


def to_time(ntp: int) -> int:
    """Convert an NTP timestamp to nanoseconds since the Unix epoch."""
    seconds = (ntp & 0xFFFFFFFF00000000) >> 32
    fractional = float(ntp & 0x00000000FFFFFFFF) / float(0xFFFFFFFF)
    duration = seconds * 1_000_000_000 + int(fractional * 1e9)
    return duration - _NTP_EPOCH_OFFSET * 1_000_000_000