"""
Half-open interval helpers shared by every scheduling component.

Intervals are [start, end). Values only need to be mutually comparable, so the
same functions work for HH:MM strings, minutes since midnight, dates and
datetimes.
"""

from typing import Any


def overlaps(start_a: Any, end_a: Any, start_b: Any, end_b: Any) -> bool:
    """
    Check if two half-open intervals overlap.

    Touching endpoints (end_a == start_b) do not overlap.
    """
    return start_a < end_b and start_b < end_a


def contains(outer_start: Any, outer_end: Any, inner_start: Any, inner_end: Any) -> bool:
    """Check if the inner interval lies entirely within the outer interval."""
    return inner_start >= outer_start and inner_end <= outer_end


def gap_between(start_a: int, end_a: int, start_b: int, end_b: int) -> int:
    """
    Minutes of free time between two intervals.

    Negative when the intervals overlap, zero when they touch.
    """
    return max(start_b - end_a, start_a - end_b)
