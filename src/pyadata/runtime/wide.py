"""Wide-integer helpers for the baseline tier.

Hosts in the baseline tier keep integers in doubles, which are exact only up
to 2**53. Generated baseline code never writes a literal at or beyond that
magnitude; it passes the decimal text through :func:`int64` or
:func:`uint64` instead, which validate the range and build the exact value.
"""

SAFE_INTEGER = 1 << 53

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MAX = (1 << 64) - 1


def is_safe(value: int) -> bool:
    """Whether ``value`` survives a round trip through a double."""
    return -SAFE_INTEGER < value < SAFE_INTEGER


def int64(text: str | int) -> int:
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise OverflowError(f'{text} does not fit in int64')
    return value


def uint64(text: str | int) -> int:
    value = int(text)
    if not 0 <= value <= _UINT64_MAX:
        raise OverflowError(f'{text} does not fit in uint64')
    return value
