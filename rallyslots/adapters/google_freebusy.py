"""
Google Calendar free/busy client.
"""

from typing import Any, Dict, List

import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarSyncError
from ..domain.formatting import to_time_range
from ..domain.models import TimeRange


class GoogleFreeBusyClient:
    """
    Client for the Google Calendar freeBusy endpoint.

    Only the user's primary calendar is queried. Obtaining the access token
    (OAuth refresh) is the caller's job.
    """

    FREEBUSY_ENDPOINT = "https://www.googleapis.com/calendar/v3/freeBusy"
    CALENDAR_ID = "primary"

    def __init__(self, access_token: str, timeout: float = 30):
        """
        Initialize the client.

        Args:
            access_token: Valid Google OAuth access token
            timeout: Request timeout in seconds
        """
        self.access_token = access_token
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    def get_busy(self, time_min: DateTime, time_max: DateTime) -> List[TimeRange]:
        """
        Get busy ranges of the primary calendar between two instants.

        Raises:
            CalendarSyncError: If the request fails or Google reports an error
        """
        payload = {
            "timeMin": time_min.in_timezone("UTC").to_iso8601_string(),
            "timeMax": time_max.in_timezone("UTC").to_iso8601_string(),
            "items": [{"id": self.CALENDAR_ID}],
        }

        try:
            response = requests.post(
                self.FREEBUSY_ENDPOINT,
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise CalendarSyncError(f"Failed to reach Google Calendar: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not isinstance(data, dict):
            data = {}

        if not response.ok:
            message = (data.get("error") or {}).get("message") or "FreeBusy API error"
            raise CalendarSyncError(f"Google Calendar returned {response.status_code}: {message}")

        return self._parse_freebusy_response(data)

    def _parse_freebusy_response(self, response_data: Dict[str, Any]) -> List[TimeRange]:
        """
        Parse the freeBusy response into busy ranges.

        Response format:
        {
            "calendars": {
                "primary": {
                    "busy": [{"start": "...", "end": "..."}],
                    "errors": [{"domain": "...", "reason": "..."}]
                }
            }
        }
        """
        calendar = (response_data.get("calendars") or {}).get(self.CALENDAR_ID) or {}

        errors = calendar.get("errors") or []
        if errors:
            reasons = ", ".join(str(error.get("reason", "unknown")) for error in errors)
            raise CalendarSyncError(f"Google Calendar could not report busy times: {reasons}")

        busy_ranges: List[TimeRange] = []
        for item in calendar.get("busy") or []:
            try:
                busy_ranges.append(to_time_range(item["start"], item["end"]))
            except (KeyError, TypeError, ValueError) as e:
                raise CalendarSyncError(f"Could not parse busy item {item!r}: {e}") from e

        return busy_ranges
