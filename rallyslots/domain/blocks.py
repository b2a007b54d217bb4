"""
Fixed-length, hour-aligned start suggestions derived from free slots.
"""

from datetime import datetime
from typing import Iterable, List

from pendulum import DateTime

from .models import IntervalLike, TimeRange, as_time_range, to_instant
from .slot_calculator import validate_count, validate_duration_minutes


def _ceil_to_hour(value: DateTime) -> DateTime:
    floored = value.start_of("hour")
    if floored == value:
        return floored
    return floored.add(hours=1)


def hourly_blocks(
    free_slots: Iterable[IntervalLike],
    block_duration_minutes: int = 60,
    max_blocks: int = 3,
    *,
    now: datetime,
    timezone: str = "UTC",
) -> List[TimeRange]:
    """
    Break free slots into consecutive blocks starting on the hour.

    Each slot's start is rounded up to the next clock hour in ``timezone``.
    Blocks that would start before ``now`` are skipped by starting from
    ``now`` rounded up to the next hour instead. Blocks never extend past
    their slot, and collection stops as soon as ``max_blocks`` is reached.

    Raises:
        InvalidDurationError: If the block duration is not positive
        ValueError: If max_blocks is not a whole number of at least one
    """
    validate_duration_minutes(block_duration_minutes, label="Block duration")
    validate_count(max_blocks, "max_blocks")

    slots = [as_time_range(item) for item in free_slots]
    # A true ceiling: a now of exactly 10:00 still offers the 10:00 block
    earliest = _ceil_to_hour(to_instant(now, "Current time").in_timezone(timezone))
    blocks: List[TimeRange] = []

    for slot in slots:
        block_start = _ceil_to_hour(slot.start.in_timezone(timezone))
        if block_start < earliest:
            block_start = earliest

        block_end = block_start.add(minutes=block_duration_minutes)

        while block_end <= slot.end:
            blocks.append(TimeRange(start=block_start, end=block_end))

            if len(blocks) >= max_blocks:
                return blocks

            block_start = block_end
            block_end = block_start.add(minutes=block_duration_minutes)

    return blocks
