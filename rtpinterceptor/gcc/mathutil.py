"""Small integer helpers for the congestion controller."""


def min_int(a: int, b: int) -> int:
    return a if a < b else b


def max_int(a: int, b: int) -> int:
    return a if a > b else b


def clamp_int(value: int, min_val: int, max_val: int) -> int:
    """Limit ``value`` to the range [min_val, max_val]."""
    return max_int(min_val, min_int(max_val, value))


def clamp_duration(value: int, min_val: int, max_val: int) -> int:
    """Limit a duration in nanoseconds to the range [min_val, max_val]."""
    return clamp_int(value, min_val, max_val)