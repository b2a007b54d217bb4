"""
Calendar import: turns external calendar data into stored busy blocks.

Raw events are filtered, merged into the minimal set of disjoint ranges and
then replace the busy blocks previously imported from the same source.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Protocol

from pendulum import DateTime

from ..domain.intervals import merge_intervals
from ..domain.models import BusyBlock, BusySource, CalendarEvent, TimeRange
from .slot_finder import ScheduleStoreProtocol, horizon_bounds

logger = logging.getLogger(__name__)


class FreeBusyClientProtocol(Protocol):
    """Protocol describing a calendar provider that reports busy ranges."""

    def get_busy(self, time_min: DateTime, time_max: DateTime) -> List[TimeRange]:
        """Return busy ranges between two instants."""


def events_to_busy_ranges(
    events: Iterable[CalendarEvent],
    window_start: DateTime,
    window_end: DateTime,
) -> List[TimeRange]:
    """
    Reduce raw events to merged busy ranges.

    All-day, cancelled and incomplete events are dropped, as are events
    that do not overlap ``[window_start, window_end)``.
    """
    window = TimeRange(start=window_start, end=window_end)
    ranges: List[TimeRange] = []
    skipped = 0

    for event in events:
        if not event.is_blocking():
            skipped += 1
            continue

        time_range = TimeRange(start=event.start, end=event.end).in_timezone("UTC")
        if not window.overlaps(time_range):
            skipped += 1
            continue

        ranges.append(time_range)

    merged = merge_intervals(ranges)
    logger.debug(
        "Kept %d of %d event(s), merged into %d busy range(s)",
        len(ranges),
        len(ranges) + skipped,
        len(merged),
    )
    return merged


class CalendarSyncService:
    """
    Replaces a user's imported busy blocks with fresh calendar data.
    """

    def __init__(self, store: ScheduleStoreProtocol) -> None:
        self._store = store

    def import_device_events(
        self,
        user_id: str,
        events: Iterable[CalendarEvent],
        *,
        now: datetime,
        horizon_days: int = 14,
    ) -> List[BusyBlock]:
        """
        Import device calendar events as ``apple`` busy blocks.

        Every previously imported device block of the user is replaced.
        """
        window_start, window_end = horizon_bounds(now, horizon_days)
        busy_ranges = events_to_busy_ranges(events, window_start, window_end)

        deleted = self._store.delete_busy_blocks(user_id, BusySource.APPLE)
        blocks = self._store.insert_busy_blocks(user_id, busy_ranges, BusySource.APPLE)

        logger.info(
            "Imported %d device busy block(s) for %s, replaced %d",
            len(blocks),
            user_id,
            deleted,
        )
        return blocks

    def sync_provider(
        self,
        user_id: str,
        client: FreeBusyClientProtocol,
        *,
        now: datetime,
        horizon_days: int = 14,
    ) -> List[BusyBlock]:
        """
        Fetch busy ranges from a calendar provider and store them as ``google`` blocks.

        Only provider blocks lying inside the synced horizon are replaced.
        The provider is queried before anything is deleted, so a failed
        fetch leaves the stored blocks untouched.
        """
        window_start, window_end = horizon_bounds(now, horizon_days)

        busy_ranges = merge_intervals(client.get_busy(window_start, window_end))
        logger.info("Got %d busy range(s) from calendar provider", len(busy_ranges))

        deleted = self._store.delete_busy_blocks(
            user_id,
            BusySource.GOOGLE,
            start=window_start,
            end=window_end,
        )
        blocks = self._store.insert_busy_blocks(user_id, busy_ranges, BusySource.GOOGLE)

        logger.info(
            "Synced %d provider busy block(s) for %s, replaced %d",
            len(blocks),
            user_id,
            deleted,
        )
        return blocks
