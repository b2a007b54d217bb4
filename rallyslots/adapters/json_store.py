"""
File-backed schedule store.

Stands in for the hosted relational store: availability windows and busy
blocks are kept as rows with ISO 8601 UTC timestamps in a single JSON file.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pendulum
from pendulum import DateTime

from ..domain.exceptions import InvalidIntervalError, StoreError
from ..domain.models import AvailabilityWindow, BusyBlock, BusySource, TimeRange

logger = logging.getLogger(__name__)

AVAILABILITY_TABLE = "availability_windows"
BUSY_TABLE = "busy_blocks"


class JsonScheduleStore:
    """
    Schedule store persisted to a JSON document.

    The file is read on every call and rewritten after every change, so
    several CLI invocations can share it. A missing file is an empty store.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def list_availability(self, user_id: str) -> List[AvailabilityWindow]:
        """Return the user's availability windows ordered by start."""
        rows = self._user_rows(AVAILABILITY_TABLE, user_id)
        windows = [self._parse_row(AvailabilityWindow, row) for row in rows]
        return sorted(windows, key=lambda w: w.time_range.start)

    def list_busy_blocks(self, user_id: str) -> List[BusyBlock]:
        """Return the user's busy blocks ordered by start."""
        rows = self._user_rows(BUSY_TABLE, user_id)
        blocks = [self._parse_row(BusyBlock, row) for row in rows]
        return sorted(blocks, key=lambda b: b.time_range.start)

    def insert_availability(self, user_id: str, time_range: TimeRange) -> AvailabilityWindow:
        """Persist a new availability window."""
        window = AvailabilityWindow(
            id=str(uuid.uuid4()),
            user_id=user_id,
            time_range=time_range,
            created_at=pendulum.now("UTC"),
        )
        data = self._load()
        data[AVAILABILITY_TABLE].append(window.to_row())
        self._save(data)
        return window

    def delete_availability(self, user_id: str, window_id: str) -> bool:
        """Delete one of the user's availability windows. Returns False if absent."""
        data = self._load()
        rows = data[AVAILABILITY_TABLE]
        kept = [
            row for row in rows
            if not (row.get("user_id") == user_id and str(row.get("id")) == window_id)
        ]
        if len(kept) == len(rows):
            return False

        data[AVAILABILITY_TABLE] = kept
        self._save(data)
        return True

    def insert_busy_blocks(
        self,
        user_id: str,
        time_ranges: Sequence[TimeRange],
        source: BusySource,
    ) -> List[BusyBlock]:
        """Persist busy blocks from one calendar source."""
        created_at = pendulum.now("UTC")
        blocks = [
            BusyBlock(
                id=str(uuid.uuid4()),
                user_id=user_id,
                time_range=time_range,
                source=source,
                created_at=created_at,
            )
            for time_range in time_ranges
        ]
        if not blocks:
            return []

        data = self._load()
        data[BUSY_TABLE].extend(block.to_row() for block in blocks)
        self._save(data)
        return blocks

    def delete_busy_blocks(
        self,
        user_id: str,
        source: BusySource,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> int:
        """
        Delete a user's busy blocks from one source.

        With ``start``/``end`` only blocks lying within those bounds are
        removed. Returns the number of deleted rows.
        """
        data = self._load()
        kept: List[Dict[str, Any]] = []
        deleted = 0

        for row in data[BUSY_TABLE]:
            if row.get("user_id") == user_id and row.get("source") == source.value:
                block = self._parse_row(BusyBlock, row)
                in_lower = start is None or block.time_range.start >= start
                in_upper = end is None or block.time_range.end <= end
                if in_lower and in_upper:
                    deleted += 1
                    continue
            kept.append(row)

        if deleted:
            data[BUSY_TABLE] = kept
            self._save(data)

        logger.debug("Deleted %d %s busy block(s) for %s", deleted, source.value, user_id)
        return deleted

    def _user_rows(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        return [row for row in self._load()[table] if row.get("user_id") == user_id]

    def _parse_row(self, model, row: Dict[str, Any]):
        try:
            return model.from_row(row)
        except (KeyError, ValueError, InvalidIntervalError) as exc:
            raise StoreError(f"Malformed row in {self.path}: {row!r} ({exc})") from exc

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.path.exists():
            return {AVAILABILITY_TABLE: [], BUSY_TABLE: []}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f) or {}
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read schedule store {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError(f"Schedule store {self.path} must contain a JSON object.")

        for table in (AVAILABILITY_TABLE, BUSY_TABLE):
            rows = data.setdefault(table, [])
            if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
                raise StoreError(f"Table {table!r} in {self.path} must be a list of objects.")

        return data

    def _save(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as exc:
            raise StoreError(f"Could not write schedule store {self.path}: {exc}") from exc
