"""
Adapters layer - External integrations (schedule store, calendars).
"""

from .device_calendar import load_device_events
from .google_freebusy import GoogleFreeBusyClient
from .json_store import JsonScheduleStore

__all__ = ["GoogleFreeBusyClient", "JsonScheduleStore", "load_device_events"]
