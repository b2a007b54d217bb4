"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .calendar_sync import CalendarSyncService, FreeBusyClientProtocol
from .slot_finder import ScheduleStoreProtocol, SlotFinderService

__all__ = [
    "CalendarSyncService",
    "FreeBusyClientProtocol",
    "ScheduleStoreProtocol",
    "SlotFinderService",
]
