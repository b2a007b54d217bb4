"""
Domain layer - Pure business logic without external dependencies.
"""

from .blocks import hourly_blocks
from .exceptions import InvalidDurationError, InvalidIntervalError, SchedulingError
from .intervals import find_overlapping, merge_intervals
from .models import AvailabilityWindow, BusyBlock, BusySource, CalendarEvent, TimeRange
from .recommendations import Recommendation, recommend_windows
from .slot_calculator import compute_free_slots

__all__ = [
    "AvailabilityWindow",
    "BusyBlock",
    "BusySource",
    "CalendarEvent",
    "InvalidDurationError",
    "InvalidIntervalError",
    "Recommendation",
    "SchedulingError",
    "TimeRange",
    "compute_free_slots",
    "find_overlapping",
    "hourly_blocks",
    "merge_intervals",
    "recommend_windows",
]
