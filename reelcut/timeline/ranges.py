"""Time-range helpers shared by the trim and selection logic."""

import math

from reelcut.models import TimeRange

# Narrowest delete/extract selection that still counts as a selection.
MIN_RANGE_WIDTH = 0.1

# Trim length offered when a new asset is loaded.
DEFAULT_TRIM_LENGTH = 30.0

# Slack for width comparisons; 0.3 - 0.2 is 0.09999999999999998.
WIDTH_TOLERANCE = 1e-9


def is_finite_number(value) -> bool:
    """True for real, finite ints/floats (bools and NaN/inf excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def normalize(a: float, b: float) -> tuple[float, float]:
    """Order two bounds so click/drag order does not matter."""
    return (min(a, b), max(a, b))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def clamp_to_duration(rng: TimeRange | None, duration: float) -> TimeRange | None:
    """Clamp both bounds into ``[0, duration]``.

    Returns ``None`` when the range is undefined or clamping collapses it
    (``start >= end``); callers treat that as "drop the selection".
    """
    if rng is None:
        return None
    upper = max(duration, 0.0)
    start = clamp(rng.start, 0.0, upper)
    end = clamp(rng.end, 0.0, upper)
    if start >= end:
        return None
    return TimeRange(start=start, end=end)


def is_valid(rng: TimeRange | None, eps: float = MIN_RANGE_WIDTH) -> bool:
    return rng is not None and rng.end - rng.start > eps


def is_wide_enough(width: float, min_width: float = MIN_RANGE_WIDTH) -> bool:
    """``width >= min_width``, allowing for float error in ``end - start``."""
    return width >= min_width - WIDTH_TOLERANCE


def percent_of(t: float, duration: float) -> float:
    """Position of ``t`` as a percentage of ``duration``, clamped to [0, 100]."""
    if duration <= 0 or not is_finite_number(t):
        return 0.0
    return clamp(t / duration * 100.0, 0.0, 100.0)
