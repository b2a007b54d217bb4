"""
Domain models for intervals, availability windows and busy blocks.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidIntervalError


def to_instant(value: Any, label: str) -> DateTime:
    """Convert an aware datetime into a pendulum DateTime."""
    if not isinstance(value, datetime):
        raise InvalidIntervalError(f"{label} must be a datetime, got {type(value).__name__}")

    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidIntervalError(f"{label} {value} is not timezone-aware")

    if isinstance(value, DateTime):
        return value

    return pendulum.instance(value)


def parse_timestamp(value: str) -> DateTime:
    """
    Parse an ISO 8601 timestamp into a UTC pendulum DateTime.

    Strings without an offset are read as UTC, which is how the store
    serializes them.
    """
    try:
        parsed = pendulum.parse(value, tz="UTC")
    except (ValueError, TypeError) as exc:
        raise InvalidIntervalError(f"Could not parse timestamp: {value!r}") from exc

    if not isinstance(parsed, DateTime):
        raise InvalidIntervalError(f"Not a timestamp: {value!r}")

    return parsed.in_timezone("UTC")


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end instants.

    Invariant: start must be before end, and both must be timezone-aware.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        start = to_instant(self.start, "Start time")
        end = to_instant(self.end, "End time")

        if start >= end:
            raise InvalidIntervalError(f"Start time {start} must be before end time {end}")

        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def duration_seconds(self) -> float:
        """Return the exact duration in seconds."""
        return (self.end - self.start).total_seconds()

    def duration_minutes(self) -> int:
        """Return the duration in whole minutes."""
        return int(self.duration_seconds() / 60)

    def lasts_at_least(self, minutes: int) -> bool:
        """Check if the range is at least ``minutes`` long."""
        return self.duration_seconds() >= minutes * 60

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def contains(self, other: "TimeRange") -> bool:
        """Check if another range lies entirely within this one."""
        return self.start <= other.start and other.end <= self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def in_timezone(self, timezone: str) -> "TimeRange":
        """Return the same range expressed in another timezone."""
        return TimeRange(
            start=self.start.in_timezone(timezone),
            end=self.end.in_timezone(timezone),
        )

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


IntervalLike = Union[TimeRange, Tuple[datetime, datetime]]


def as_time_range(value: IntervalLike) -> TimeRange:
    """
    Coerce a TimeRange or a ``(start, end)`` pair into a validated TimeRange.

    Raises:
        InvalidIntervalError: If the value is not a well-formed interval
    """
    if isinstance(value, TimeRange):
        return value

    if isinstance(value, tuple) and len(value) == 2:
        return TimeRange(start=value[0], end=value[1])

    raise InvalidIntervalError(f"Expected a TimeRange or (start, end) pair, got {value!r}")


class BusySource(str, Enum):
    """Where a busy block was imported from."""
    APPLE = "apple"    # device calendar
    GOOGLE = "google"  # synced calendar provider


@dataclass
class AvailabilityWindow:
    """
    A user-declared window of free time as stored by the host.
    """
    id: str
    user_id: str
    time_range: TimeRange
    created_at: Optional[DateTime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AvailabilityWindow":
        """Build a window from a store row with ISO 8601 timestamps."""
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            time_range=TimeRange(
                start=parse_timestamp(row["start_ts_utc"]),
                end=parse_timestamp(row["end_ts_utc"]),
            ),
            created_at=parse_timestamp(row["created_at"]) if row.get("created_at") else None,
        )

    def to_row(self) -> Dict[str, Any]:
        """Serialize to a store row."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "start_ts_utc": _to_utc_string(self.time_range.start),
            "end_ts_utc": _to_utc_string(self.time_range.end),
            "created_at": _to_utc_string(self.created_at) if self.created_at else None,
        }


@dataclass
class BusyBlock:
    """
    A conflicting commitment, tagged with the calendar it came from.
    """
    id: str
    user_id: str
    time_range: TimeRange
    source: BusySource
    created_at: Optional[DateTime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "BusyBlock":
        """Build a busy block from a store row with ISO 8601 timestamps."""
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            time_range=TimeRange(
                start=parse_timestamp(row["start_ts_utc"]),
                end=parse_timestamp(row["end_ts_utc"]),
            ),
            source=BusySource(row["source"]),
            created_at=parse_timestamp(row["created_at"]) if row.get("created_at") else None,
        )

    def to_row(self) -> Dict[str, Any]:
        """Serialize to a store row."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "start_ts_utc": _to_utc_string(self.time_range.start),
            "end_ts_utc": _to_utc_string(self.time_range.end),
            "source": self.source.value,
            "created_at": _to_utc_string(self.created_at) if self.created_at else None,
        }


@dataclass
class CalendarEvent:
    """
    A raw event read from a device calendar, before it becomes a busy block.

    Start and end may be missing on malformed exports; such events are
    dropped during import.
    """
    start: Optional[DateTime]
    end: Optional[DateTime]
    all_day: bool = False
    status: str = "confirmed"

    @property
    def is_cancelled(self) -> bool:
        return self.status.lower() in ("canceled", "cancelled")

    def is_blocking(self) -> bool:
        """All-day, cancelled and incomplete events never block time."""
        if self.all_day or self.is_cancelled:
            return False
        if self.start is None or self.end is None:
            return False
        return self.start < self.end


def _to_utc_string(value: DateTime) -> str:
    return value.in_timezone("UTC").to_iso8601_string()
