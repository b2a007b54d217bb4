"""
Interval merging.

Collapses overlapping or back-to-back intervals (typically raw calendar
events) into the minimal sorted list of disjoint intervals before they are
stored as busy blocks.
"""

from typing import Iterable, List

from .models import IntervalLike, TimeRange, as_time_range


def merge_intervals(intervals: Iterable[IntervalLike]) -> List[TimeRange]:
    """
    Merge overlapping or adjacent time ranges.

    Touching boundaries count as mergeable, so
    [08:00-09:00, 09:00-10:00] -> [08:00-10:00].

    Args:
        intervals: Time ranges (or ``(start, end)`` pairs) in any order

    Returns:
        New list sorted by start, pairwise disjoint, covering the same time

    Raises:
        InvalidIntervalError: If any input has ``start >= end``
    """
    # Validate everything before producing output, never a partial result
    ranges = [as_time_range(interval) for interval in intervals]

    if not ranges:
        return []

    sorted_ranges = sorted(ranges, key=lambda r: r.start)
    merged: List[TimeRange] = []
    current = sorted_ranges[0]

    for candidate in sorted_ranges[1:]:
        if candidate.start <= current.end:
            if candidate.end > current.end:
                current = TimeRange(start=current.start, end=candidate.end)
        else:
            merged.append(current)
            current = candidate

    merged.append(current)
    return merged


def find_overlapping(
    candidate: IntervalLike,
    existing: Iterable[IntervalLike],
) -> List[TimeRange]:
    """
    Return the ranges in ``existing`` that overlap ``candidate``.

    Touching ranges do not overlap.
    """
    target = as_time_range(candidate)
    return [
        time_range
        for time_range in (as_time_range(item) for item in existing)
        if target.overlaps(time_range)
    ]
