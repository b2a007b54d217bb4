"""
Conversion and display helpers shared by the CLI and services.
"""

from .models import TimeRange, parse_timestamp


def to_time_range(start_ts_utc: str, end_ts_utc: str) -> TimeRange:
    """Convert a pair of ISO 8601 timestamp strings into a UTC TimeRange."""
    return TimeRange(
        start=parse_timestamp(start_ts_utc),
        end=parse_timestamp(end_ts_utc),
    )


def format_time_range(time_range: TimeRange, timezone: str = "UTC") -> str:
    """
    Format a range for display in the given timezone.

    Format: Sat, Nov 23, 9:00 AM - 10:30 AM
    """
    local = time_range.in_timezone(timezone)
    start_str = local.start.format("ddd, MMM D, h:mm A")
    end_str = local.end.format("h:mm A")
    return f"{start_str} - {end_str}"
