"""
Reader for device calendar exports.

The export is a JSON list of events as produced by the mobile calendar API:
``startDate``, ``endDate``, ``allDay`` and ``status``. Only time ranges are
kept - titles and other metadata are never read.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import CalendarSyncError
from ..domain.models import CalendarEvent

logger = logging.getLogger(__name__)


def _parse_event_time(value: Any, timezone: str) -> Optional[DateTime]:
    if not value:
        return None

    try:
        parsed = pendulum.parse(str(value), tz=timezone)
    except ValueError as exc:
        logger.warning("Could not parse event time %r: %s", value, exc)
        return None

    if not isinstance(parsed, DateTime):
        logger.warning("Event time %r is not a timestamp", value)
        return None

    return parsed.in_timezone("UTC")


def event_from_dict(raw: Dict[str, Any], timezone: str = "UTC") -> CalendarEvent:
    """
    Build a CalendarEvent from one exported event.

    Floating times (no UTC offset) are read in ``timezone``.
    """
    return CalendarEvent(
        start=_parse_event_time(raw.get("startDate"), timezone),
        end=_parse_event_time(raw.get("endDate"), timezone),
        all_day=bool(raw.get("allDay", False)),
        status=str(raw.get("status") or "confirmed"),
    )


def load_device_events(path: Path, timezone: str = "UTC") -> List[CalendarEvent]:
    """
    Load events from a device calendar export.

    Raises:
        CalendarSyncError: If the file is missing or not a JSON list of events
    """
    path = Path(path)
    if not path.exists():
        raise CalendarSyncError(f"Calendar export not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_events = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise CalendarSyncError(f"Could not read calendar export {path}: {exc}") from exc

    if not isinstance(raw_events, list):
        raise CalendarSyncError("Calendar export must contain a list of events.")

    events: List[CalendarEvent] = []
    for raw in raw_events:
        if not isinstance(raw, dict):
            logger.warning("Skipping malformed calendar entry: %r", raw)
            continue
        events.append(event_from_dict(raw, timezone))

    logger.info("Loaded %d event(s) from %s", len(events), path)
    return events
