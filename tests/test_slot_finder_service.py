"""
Tests for the SlotFinderService orchestration layer.
"""

from typing import List, Optional, Sequence

import pendulum
import pytest

from rallyslots.domain.exceptions import AvailabilityConflictError, InvalidDurationError, WindowNotFoundError
from rallyslots.domain.models import AvailabilityWindow, BusyBlock, BusySource, TimeRange
from rallyslots.services.slot_finder import SlotFinderService, horizon_bounds

NOW = pendulum.parse("2024-11-25 08:00", tz="UTC")


def _at(day: int, clock: str) -> pendulum.DateTime:
    return pendulum.parse(f"2024-11-{day:02d} {clock}", tz="UTC")


def _tr(day: int, start: str, end: str) -> TimeRange:
    return TimeRange(start=_at(day, start), end=_at(day, end))


class StubScheduleStore:
    """Minimal in-memory store matching ScheduleStoreProtocol."""

    def __init__(self, availability=(), busy=()):
        self.availability: List[AvailabilityWindow] = [
            AvailabilityWindow(id=f"w{i}", user_id="me", time_range=tr)
            for i, tr in enumerate(availability)
        ]
        self.busy: List[BusyBlock] = [
            BusyBlock(id=f"b{i}", user_id="me", time_range=tr, source=BusySource.APPLE)
            for i, tr in enumerate(busy)
        ]

    def list_availability(self, user_id: str) -> List[AvailabilityWindow]:
        return [w for w in self.availability if w.user_id == user_id]

    def list_busy_blocks(self, user_id: str) -> List[BusyBlock]:
        return [b for b in self.busy if b.user_id == user_id]

    def insert_availability(self, user_id: str, time_range: TimeRange) -> AvailabilityWindow:
        window = AvailabilityWindow(id=f"w{len(self.availability)}", user_id=user_id, time_range=time_range)
        self.availability.append(window)
        return window

    def delete_availability(self, user_id: str, window_id: str) -> bool:
        before = len(self.availability)
        self.availability = [
            w for w in self.availability if not (w.user_id == user_id and w.id == window_id)
        ]
        return len(self.availability) < before

    def insert_busy_blocks(self, user_id: str, time_ranges: Sequence[TimeRange], source: BusySource):
        blocks = [
            BusyBlock(id=f"b{len(self.busy) + i}", user_id=user_id, time_range=tr, source=source)
            for i, tr in enumerate(time_ranges)
        ]
        self.busy.extend(blocks)
        return blocks

    def delete_busy_blocks(self, user_id, source, *, start: Optional[pendulum.DateTime] = None, end=None) -> int:
        before = len(self.busy)
        self.busy = [
            b for b in self.busy
            if not (
                b.user_id == user_id
                and b.source == source
                and (start is None or b.time_range.start >= start)
                and (end is None or b.time_range.end <= end)
            )
        ]
        return before - len(self.busy)


class TestHorizonBounds:
    """Tests for horizon_bounds."""

    def test_bounds(self):
        start, end = horizon_bounds(NOW, 14)

        assert start == NOW
        assert end == pendulum.parse("2024-12-09 08:00", tz="UTC")

    @pytest.mark.parametrize("days", [0, -1, 1.5, True])
    def test_invalid_horizon(self, days):
        with pytest.raises(ValueError, match="horizon_days"):
            horizon_bounds(NOW, days)


class TestFindFreeSlots:
    """Tests for SlotFinderService.find_free_slots."""

    def test_subtracts_busy_blocks(self):
        store = StubScheduleStore(
            availability=[_tr(25, "09:00", "12:00")],
            busy=[_tr(25, "10:00", "10:30")],
        )
        service = SlotFinderService(store=store)

        slots = service.find_free_slots("me", now=NOW, horizon_days=14, min_duration_minutes=60)

        assert slots == [_tr(25, "09:00", "10:00"), _tr(25, "10:30", "12:00")]

    def test_windows_starting_before_now_are_ignored(self):
        store = StubScheduleStore(availability=[_tr(25, "07:00", "12:00"), _tr(26, "09:00", "10:00")])
        service = SlotFinderService(store=store)

        slots = service.find_free_slots("me", now=NOW, horizon_days=14, min_duration_minutes=60)

        assert slots == [_tr(26, "09:00", "10:00")]

    def test_windows_beyond_horizon_are_ignored(self):
        store = StubScheduleStore(availability=[_tr(26, "09:00", "10:00"), _tr(28, "09:00", "10:00")])
        service = SlotFinderService(store=store)

        slots = service.find_free_slots("me", now=NOW, horizon_days=2, min_duration_minutes=60)

        assert slots == [_tr(26, "09:00", "10:00")]

    def test_busy_blocks_beyond_horizon_are_ignored(self):
        # Window starts inside a one-day horizon but ends after it
        store = StubScheduleStore(
            availability=[TimeRange(start=_at(26, "07:00"), end=_at(26, "12:00"))],
            busy=[_tr(26, "10:00", "11:00")],
        )
        service = SlotFinderService(store=store)

        slots = service.find_free_slots("me", now=NOW, horizon_days=1, min_duration_minutes=60)

        assert slots == [_tr(26, "07:00", "12:00")]

    def test_other_users_data_not_used(self):
        store = StubScheduleStore(availability=[_tr(25, "09:00", "12:00")])
        service = SlotFinderService(store=store)

        assert service.find_free_slots("someone-else", now=NOW, horizon_days=14, min_duration_minutes=60) == []

    def test_invalid_duration(self):
        service = SlotFinderService(store=StubScheduleStore())

        with pytest.raises(InvalidDurationError):
            service.find_free_slots("me", now=NOW, horizon_days=14, min_duration_minutes=0)


class TestSuggestBlocks:
    """Tests for SlotFinderService.suggest_blocks."""

    def test_blocks_from_free_slots(self):
        store = StubScheduleStore(
            availability=[_tr(25, "09:30", "13:00")],
            busy=[_tr(25, "11:00", "11:30")],
        )
        service = SlotFinderService(store=store)

        blocks = service.suggest_blocks(
            "me", now=NOW, horizon_days=14, block_duration_minutes=60, max_blocks=3
        )

        assert blocks == [_tr(25, "10:00", "11:00"), _tr(25, "12:00", "13:00")]


class TestAddAvailability:
    """Tests for SlotFinderService.add_availability."""

    def test_adds_window(self):
        store = StubScheduleStore()
        service = SlotFinderService(store=store)

        window = service.add_availability("me", _tr(25, "09:00", "12:00"), now=NOW)

        assert window.time_range == _tr(25, "09:00", "12:00")
        assert store.list_availability("me") == [window]

    def test_touching_window_allowed(self):
        store = StubScheduleStore(availability=[_tr(25, "09:00", "12:00")])
        service = SlotFinderService(store=store)

        service.add_availability("me", _tr(25, "12:00", "14:00"), now=NOW)

        assert len(store.list_availability("me")) == 2

    def test_overlapping_window_rejected(self):
        store = StubScheduleStore(availability=[_tr(25, "09:00", "12:00")])
        service = SlotFinderService(store=store)

        with pytest.raises(AvailabilityConflictError, match="overlaps"):
            service.add_availability("me", _tr(25, "11:00", "14:00"), now=NOW)

        assert len(store.list_availability("me")) == 1

    def test_past_window_rejected(self):
        service = SlotFinderService(store=StubScheduleStore())

        with pytest.raises(AvailabilityConflictError, match="in the past"):
            service.add_availability("me", _tr(25, "06:00", "08:00"), now=NOW)

    def test_touching_on_both_sides_allowed(self):
        store = StubScheduleStore(availability=[_tr(25, "09:00", "12:00"), _tr(25, "14:00", "16:00")])
        service = SlotFinderService(store=store)

        service.add_availability("me", _tr(25, "12:00", "14:00"), now=NOW)

        assert len(store.list_availability("me")) == 3


class TestListAndRemoveAvailability:
    """Tests for listing and deleting availability windows."""

    def test_list_ordered_by_start(self):
        store = StubScheduleStore(availability=[_tr(26, "09:00", "10:00"), _tr(25, "09:00", "10:00")])
        service = SlotFinderService(store=store)

        windows = service.list_availability("me")

        assert [w.time_range for w in windows] == [_tr(25, "09:00", "10:00"), _tr(26, "09:00", "10:00")]

    def test_remove(self):
        store = StubScheduleStore(availability=[_tr(25, "09:00", "10:00"), _tr(26, "09:00", "10:00")])
        service = SlotFinderService(store=store)

        service.remove_availability("me", "w0")

        assert [w.id for w in store.list_availability("me")] == ["w1"]

    def test_remove_unknown_id(self):
        service = SlotFinderService(store=StubScheduleStore(availability=[_tr(25, "09:00", "10:00")]))

        with pytest.raises(WindowNotFoundError, match="w9"):
            service.remove_availability("me", "w9")

    def test_remove_other_users_window(self):
        store = StubScheduleStore(availability=[_tr(25, "09:00", "10:00")])
        service = SlotFinderService(store=store)

        with pytest.raises(WindowNotFoundError):
            service.remove_availability("someone-else", "w0")

        assert len(store.list_availability("me")) == 1


class TestRecommendWindows:
    """Tests for SlotFinderService.recommend_windows."""

    def test_busy_day_part_not_recommended(self):
        store = StubScheduleStore(busy=[_tr(25, "18:00", "19:00")])
        service = SlotFinderService(store=store)

        recs = service.recommend_windows("me", now=NOW, days=1)

        assert [rec.label for rec in recs] == ["Today Morning"]
        assert recs[0].time_range == _tr(25, "08:00", "10:00")

    def test_already_available_day_part_not_recommended(self):
        store = StubScheduleStore(availability=[_tr(25, "08:00", "10:00")])
        service = SlotFinderService(store=store)

        recs = service.recommend_windows("me", now=NOW, days=1)

        assert [rec.label for rec in recs] == ["Today Evening"]

    def test_partly_past_part_clipped_to_now(self):
        service = SlotFinderService(store=StubScheduleStore())

        recs = service.recommend_windows("me", now=pendulum.parse("2024-11-25 09:15", tz="UTC"), days=1)

        assert recs[0].time_range == _tr(25, "09:15", "10:00")
        assert recs[0].reason == "Before work"

    def test_limit_and_timezone_passed_through(self):
        service = SlotFinderService(store=StubScheduleStore())

        recs = service.recommend_windows("me", now=NOW, timezone="Europe/Berlin", limit=1)

        # 08:00 UTC is 09:00 in Berlin, the local morning ends at 09:00 UTC
        assert len(recs) == 1
        assert recs[0].time_range == _tr(25, "08:00", "09:00")

    def test_invalid_days(self):
        service = SlotFinderService(store=StubScheduleStore())

        with pytest.raises(ValueError, match="days must be at least 1"):
            service.recommend_windows("me", now=NOW, days=0)
