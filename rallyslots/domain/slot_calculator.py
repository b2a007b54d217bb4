"""
Core business logic for calculating free time slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

from typing import Iterable, List, Sequence

from .exceptions import InvalidDurationError
from .models import IntervalLike, TimeRange, as_time_range


def validate_duration_minutes(minutes: int, label: str = "Minimum duration") -> int:
    """
    Ensure a duration is a positive whole number of minutes.

    Raises:
        InvalidDurationError: For zero, negative, boolean or non-integer values
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidDurationError(
            f"{label} must be a whole number of minutes, got {minutes!r}"
        )
    if minutes <= 0:
        raise InvalidDurationError(f"{label} must be greater than zero, got {minutes}")
    return minutes


def validate_count(value: int, label: str) -> int:
    """
    Ensure a limit or day count is a whole number of at least one.

    Raises:
        ValueError: For booleans, non-integers and values below one
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be a whole number, got {value!r}")
    if value < 1:
        raise ValueError(f"{label} must be at least 1, got {value}")
    return value


def compute_free_slots(
    availability: Iterable[IntervalLike],
    busy: Iterable[IntervalLike],
    min_duration_minutes: int,
) -> List[TimeRange]:
    """
    Find every maximal part of the availability windows that is free of busy time.

    Algorithm, per availability window:
    1. Keep the busy ranges that overlap the window
    2. No overlap: emit the whole window if it is long enough
    3. Otherwise sort the overlapping busy ranges by start
    4. Walk a cursor from the window start, emitting gaps before each busy range
    5. Emit the tail from the cursor to the window end

    Windows are processed independently and in input order, so overlapping
    availability windows may yield slots covering the same time.

    Args:
        availability: Windows the user declared themselves free
        busy: Conflicting ranges, need not be sorted or merged
        min_duration_minutes: Minimum slot length in minutes

    Returns:
        Free slots, each inside a single availability window

    Raises:
        InvalidDurationError: If the minimum duration is not positive
        InvalidIntervalError: If any input range has ``start >= end``
    """
    validate_duration_minutes(min_duration_minutes)

    windows = [as_time_range(item) for item in availability]
    busy_ranges = [as_time_range(item) for item in busy]

    if not windows:
        return []

    free_slots: List[TimeRange] = []

    for window in windows:
        overlapping_busy = [b for b in busy_ranges if window.overlaps(b)]

        if not overlapping_busy:
            # Entire window is free
            if window.lasts_at_least(min_duration_minutes):
                free_slots.append(window)
            continue

        free_slots.extend(
            _subtract_busy_from_window(window, overlapping_busy, min_duration_minutes)
        )

    return free_slots


def _subtract_busy_from_window(
    window: TimeRange,
    busy_ranges: Sequence[TimeRange],
    min_duration_minutes: int,
) -> List[TimeRange]:
    """
    Subtract busy times from a window, yielding free ranges long enough to keep.

    Example:
    Window: 09:00 - 12:00
    Busy: [10:00-10:30]
    Result (60 min): [09:00-10:00, 10:30-12:00]
    """
    free_ranges: List[TimeRange] = []
    cursor = window.start

    for busy in sorted(busy_ranges, key=lambda r: r.start):
        if busy.start > cursor:
            gap = TimeRange(start=cursor, end=min(busy.start, window.end))
            if gap.lasts_at_least(min_duration_minutes):
                free_ranges.append(gap)

        # Never move backwards, a nested busy range must not reopen time
        cursor = max(cursor, busy.end)

        if cursor >= window.end:
            break

    if cursor < window.end:
        tail = TimeRange(start=cursor, end=window.end)
        if tail.lasts_at_least(min_duration_minutes):
            free_ranges.append(tail)

    return free_ranges
