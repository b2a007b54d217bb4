"""
Application services for finding bookable slots.

The service loads a user's availability windows and busy blocks through a
store adapter and delegates the slot computation to the pure domain
functions. The store is passed in explicitly, so tests can substitute a
simple in-memory implementation of the protocol.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Protocol, Sequence, Tuple

from pendulum import DateTime

from ..domain.blocks import hourly_blocks
from ..domain.exceptions import AvailabilityConflictError, WindowNotFoundError
from ..domain.intervals import find_overlapping
from ..domain.models import AvailabilityWindow, BusyBlock, BusySource, TimeRange, to_instant
from ..domain.recommendations import Recommendation, recommend_windows
from ..domain.slot_calculator import compute_free_slots, validate_count, validate_duration_minutes

logger = logging.getLogger(__name__)


class ScheduleStoreProtocol(Protocol):
    """Protocol describing the persistence behaviour needed by the services."""

    def list_availability(self, user_id: str) -> List[AvailabilityWindow]:
        """Return the user's availability windows."""

    def list_busy_blocks(self, user_id: str) -> List[BusyBlock]:
        """Return the user's busy blocks from every source."""

    def insert_availability(self, user_id: str, time_range: TimeRange) -> AvailabilityWindow:
        """Persist a new availability window."""

    def delete_availability(self, user_id: str, window_id: str) -> bool:
        """Delete one availability window, returning False if it does not exist."""

    def insert_busy_blocks(
        self,
        user_id: str,
        time_ranges: Sequence[TimeRange],
        source: BusySource,
    ) -> List[BusyBlock]:
        """Persist busy blocks from one calendar source."""

    def delete_busy_blocks(
        self,
        user_id: str,
        source: BusySource,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> int:
        """Delete a user's busy blocks from one source, optionally within bounds."""


def horizon_bounds(now: datetime, horizon_days: int) -> Tuple[DateTime, DateTime]:
    """Return ``(now, now + horizon_days)`` as UTC instants."""
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or horizon_days < 1:
        raise ValueError(f"horizon_days must be a positive whole number, got {horizon_days!r}")

    start = to_instant(now, "Current time").in_timezone("UTC")
    return start, start.add(days=horizon_days)


class SlotFinderService:
    """
    Orchestrates schedule retrieval and free-slot calculation for one user.
    """

    def __init__(self, store: ScheduleStoreProtocol) -> None:
        self._store = store

    def find_free_slots(
        self,
        user_id: str,
        *,
        now: datetime,
        horizon_days: int,
        min_duration_minutes: int,
    ) -> List[TimeRange]:
        """
        Compute free slots between ``now`` and the horizon.

        Availability windows are considered when they start inside the
        horizon; busy blocks when they start before the horizon ends.
        """
        validate_duration_minutes(min_duration_minutes)
        window_start, window_end = horizon_bounds(now, horizon_days)

        availability = [
            window.time_range
            for window in self._store.list_availability(user_id)
            if window_start <= window.time_range.start <= window_end
        ]
        busy = [
            block.time_range
            for block in self._store.list_busy_blocks(user_id)
            if block.time_range.start <= window_end
        ]

        slots = compute_free_slots(availability, busy, min_duration_minutes)

        logger.info(
            "Found %d free slot(s) for %s from %d window(s) and %d busy block(s)",
            len(slots),
            user_id,
            len(availability),
            len(busy),
        )
        return slots

    def suggest_blocks(
        self,
        user_id: str,
        *,
        now: datetime,
        horizon_days: int,
        block_duration_minutes: int,
        max_blocks: int,
        timezone: str = "UTC",
    ) -> List[TimeRange]:
        """Suggest hour-aligned start times that fit into the user's free slots."""
        free_slots = self.find_free_slots(
            user_id,
            now=now,
            horizon_days=horizon_days,
            min_duration_minutes=block_duration_minutes,
        )
        return hourly_blocks(
            free_slots,
            block_duration_minutes,
            max_blocks,
            now=now,
            timezone=timezone,
        )

    def add_availability(
        self,
        user_id: str,
        time_range: TimeRange,
        *,
        now: datetime,
    ) -> AvailabilityWindow:
        """
        Declare a new availability window.

        Raises:
            AvailabilityConflictError: If the window already ended or overlaps
                an existing window
        """
        if time_range.end <= to_instant(now, "Current time"):
            raise AvailabilityConflictError(f"Availability window {time_range} is in the past")

        existing = [window.time_range for window in self._store.list_availability(user_id)]
        # Back-to-back windows share no time and are both kept
        conflicts = find_overlapping(time_range, existing)
        if conflicts:
            listed = ", ".join(str(conflict) for conflict in conflicts)
            raise AvailabilityConflictError(
                f"Availability window {time_range} overlaps existing window(s): {listed}"
            )

        window = self._store.insert_availability(user_id, time_range)
        logger.info("Added availability window %s for %s", time_range, user_id)
        return window

    def list_availability(self, user_id: str) -> List[AvailabilityWindow]:
        """Return the user's availability windows ordered by start."""
        windows = self._store.list_availability(user_id)
        return sorted(windows, key=lambda window: window.time_range.start)

    def remove_availability(self, user_id: str, window_id: str) -> None:
        """
        Delete one of the user's availability windows.

        Raises:
            WindowNotFoundError: If the user has no window with that id
        """
        if not self._store.delete_availability(user_id, window_id):
            raise WindowNotFoundError(f"No availability window with id {window_id!r}")

        logger.info("Removed availability window %s for %s", window_id, user_id)

    def recommend_windows(
        self,
        user_id: str,
        *,
        now: datetime,
        timezone: str = "UTC",
        days: int = 7,
        limit: int = 9,
    ) -> List[Recommendation]:
        """Recommend free parts of the coming days that have no availability yet."""
        validate_count(days, "days")
        window_start, window_end = horizon_bounds(now, days)

        def upcoming(time_range: TimeRange) -> bool:
            return time_range.end > window_start and time_range.start < window_end

        busy = [
            block.time_range
            for block in self._store.list_busy_blocks(user_id)
            if upcoming(block.time_range)
        ]
        existing = [
            window.time_range
            for window in self._store.list_availability(user_id)
            if upcoming(window.time_range)
        ]

        recommendations = recommend_windows(
            busy,
            existing,
            now=now,
            timezone=timezone,
            days=days,
            limit=limit,
        )
        logger.info("Recommended %d window(s) for %s", len(recommendations), user_id)
        return recommendations
