"""
Recommended availability windows for the coming days.

Every local day offers fixed parts of the day to play in: mornings and
evenings on weekdays, four parts on weekends. A part is recommended when it
has not ended yet and neither a busy block nor an existing availability
window overlaps what is left of it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from pendulum import DateTime

from .models import IntervalLike, TimeRange, as_time_range, to_instant
from .slot_calculator import validate_count

# Busy time this close to a recommendation changes its reason
COMMITMENT_GAP_HOURS = 2


@dataclass(frozen=True)
class DayPart:
    """A named part of the day, in whole local hours."""
    name: str
    start_hour: int
    end_hour: int
    reason: str


WEEKDAY_PARTS: Tuple[DayPart, ...] = (
    DayPart("Morning", 6, 10, "Before work"),
    DayPart("Evening", 17, 21, "After work hours"),
)

WEEKEND_PARTS: Tuple[DayPart, ...] = (
    DayPart("Morning", 6, 10, "Weekend morning"),
    DayPart("Noon", 10, 13, "Weekend midday"),
    DayPart("Afternoon", 13, 17, "Weekend afternoon"),
    DayPart("Evening", 17, 21, "Weekend evening"),
)


@dataclass(frozen=True)
class Recommendation:
    """A suggested availability window with a short human explanation."""
    time_range: TimeRange
    label: str
    reason: str


def day_parts(day: DateTime) -> Tuple[DayPart, ...]:
    """Return the parts of the day offered on ``day``."""
    if day.isoweekday() >= 6:
        return WEEKEND_PARTS
    return WEEKDAY_PARTS


def recommend_windows(
    busy: Iterable[IntervalLike],
    existing: Iterable[IntervalLike],
    *,
    now: datetime,
    timezone: str = "UTC",
    days: int = 7,
    limit: int = 9,
) -> List[Recommendation]:
    """
    Recommend free parts of the day, starting with today in ``timezone``.

    A part that already started is shortened to begin at ``now``. Once a
    part is recommended, later parts of the same day starting at or before
    its end hour are skipped, so back-to-back suggestions are not offered.

    Args:
        busy: Calendar busy ranges
        existing: Availability windows the user already declared
        now: Current instant, must be timezone-aware
        timezone: IANA zone whose days and clock hours are used
        days: Number of local days to look at, today included
        limit: Maximum number of recommendations

    Raises:
        ValueError: If ``days`` or ``limit`` is not a whole number of at least one
        InvalidIntervalError: If ``now`` is naive or an input range is invalid
    """
    validate_count(days, "days")
    validate_count(limit, "limit")

    current = to_instant(now, "Current time").in_timezone(timezone)
    busy_ranges = [as_time_range(item) for item in busy]
    existing_ranges = [as_time_range(item) for item in existing]

    recommendations: List[Recommendation] = []
    today = current.start_of("day")

    for offset in range(days):
        day = today.add(days=offset)
        day_range = TimeRange(start=day, end=day.add(days=1))
        day_busy = [b for b in busy_ranges if b.overlaps(day_range)]
        day_existing = [a for a in existing_ranges if a.overlaps(day_range)]
        last_end_hour: Optional[int] = None

        for part in day_parts(day):
            part_start = day.set(hour=part.start_hour)
            part_end = day.set(hour=part.end_hour)

            if part_end <= current:
                continue
            if last_end_hour is not None and part.start_hour <= last_end_hour:
                continue

            candidate = TimeRange(start=max(part_start, current), end=part_end)
            if any(candidate.overlaps(b) for b in day_busy):
                continue
            if any(candidate.overlaps(a) for a in day_existing):
                continue

            recommendations.append(
                Recommendation(
                    time_range=candidate.in_timezone("UTC"),
                    label=f"{_day_label(day, offset)} {part.name}",
                    reason=_reason(candidate, day_busy, part.reason),
                )
            )
            last_end_hour = part.end_hour

            if len(recommendations) >= limit:
                return recommendations

    return recommendations


def _day_label(day: DateTime, offset: int) -> str:
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Tomorrow"
    return day.format("ddd, MMM D")


def _reason(candidate: TimeRange, day_busy: Sequence[TimeRange], default: str) -> str:
    """Explain a recommendation by the commitments right around it."""
    busy_before = any(
        candidate.start.subtract(hours=COMMITMENT_GAP_HOURS) < b.end <= candidate.start
        for b in day_busy
    )
    busy_after = any(
        candidate.end <= b.start < candidate.end.add(hours=COMMITMENT_GAP_HOURS)
        for b in day_busy
    )

    if busy_before and busy_after:
        return "Free between commitments"
    if busy_after:
        return "Before your next commitment"
    if busy_before:
        return "After your last commitment"
    return default
