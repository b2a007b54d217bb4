"""
Domain-specific exception hierarchy for the free-slot engine.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidIntervalError(SchedulingError, ValueError):
    """Raised when an interval is inverted, empty or not timezone-aware."""


class InvalidDurationError(SchedulingError, ValueError):
    """Raised when a duration is not a positive number of minutes."""


class AvailabilityConflictError(SchedulingError):
    """Raised when a new availability window collides with an existing one."""


class CalendarSyncError(SchedulingError):
    """Raised when busy data cannot be fetched or parsed from a calendar."""


class StoreError(SchedulingError):
    """Raised when the schedule store cannot be read or written."""


class WindowNotFoundError(SchedulingError):
    """Raised when an availability window id does not belong to the user."""
