"""
File-backed schedule store using a JSON snapshot.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, TypeVar

from pendulum import DateTime

from ..domain.exceptions import SlotValidationError, StoreError
from ..domain.models import (
    OCCUPYING_STATUSES,
    AvailabilityRule,
    ExistingBooking,
    TimeOffBlock,
    TimeRange,
)
from .records import (
    booking_from_record,
    rule_from_record,
    rule_to_record,
    time_off_from_record,
    time_off_to_record,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SECTIONS = ("rules", "bookings", "time_off")


class JsonScheduleStore:
    """
    Reads rules, bookings and time off from a JSON file.

    The file is re-read on every query so each request sees the current
    snapshot. File layout::

        {
            "rules": [{"day_of_week": 1, "start_time": "09:00", "end_time": "17:00"}],
            "bookings": [{"start_datetime": "...", "end_datetime": "...", "status": "confirmed"}],
            "time_off": [{"id": "...", "start_datetime": "...", "end_datetime": "...", "reason": "..."}]
        }

    Any unreadable file or malformed row raises ``StoreError``: a partial
    view must never be used to approve a slot.
    """

    def __init__(
        self,
        data_file: Path,
        occupying_statuses: FrozenSet[str] = OCCUPYING_STATUSES
    ):
        self.data_file = Path(data_file)
        self.occupying_statuses = frozenset(occupying_statuses)

    def get_rules_for_day_of_week(self, day_of_week: int) -> List[AvailabilityRule]:
        rules = self._parse_rows("rules", rule_from_record)
        return [rule for rule in rules if rule.day_of_week == day_of_week]

    def get_all_rules(self) -> List[AvailabilityRule]:
        rules = self._parse_rows("rules", rule_from_record)
        return sorted(rules, key=lambda r: (r.day_of_week, r.start_time))

    def get_occupying_bookings_in_range(
        self,
        utc_start: DateTime,
        utc_end: DateTime
    ) -> List[ExistingBooking]:
        query = TimeRange(start=utc_start, end=utc_end)
        bookings = self._parse_rows("bookings", booking_from_record)
        logger.debug("Filtering %d booking(s) to %s", len(bookings), query)
        return [
            booking for booking in bookings
            if booking.is_occupying(self.occupying_statuses)
            and booking.time_range.overlaps(query)
        ]

    def get_time_off_in_range(
        self,
        utc_start: DateTime,
        utc_end: DateTime
    ) -> List[TimeOffBlock]:
        query = TimeRange(start=utc_start, end=utc_end)
        blocks = self._parse_rows("time_off", time_off_from_record)
        return [block for block in blocks if block.time_range.overlaps(query)]

    def replace_rules(self, rules: Sequence[AvailabilityRule]) -> None:
        """
        Replace all weekly rules at once.

        Raises:
            SlotValidationError: If two rules overlap on the same day
        """
        ordered = sorted(rules, key=lambda r: (r.day_of_week, r.start_time))

        for previous, current in zip(ordered, ordered[1:]):
            if previous.overlaps(current):
                raise SlotValidationError(
                    f"Rules {previous} and {current} overlap on day {current.day_of_week}"
                )

        data = self._load()
        data["rules"] = [rule_to_record(rule) for rule in ordered]
        self._save(data)

    def add_time_off(
        self,
        start: DateTime,
        end: DateTime,
        reason: Optional[str] = None
    ) -> TimeOffBlock:
        """
        Record a new time-off block.

        Raises:
            SlotValidationError: If start is not before end
        """
        block = TimeOffBlock(
            start=start.in_timezone("UTC"),
            end=end.in_timezone("UTC"),
            reason=reason,
            id=uuid.uuid4().hex
        )

        data = self._load()
        data["time_off"].append(time_off_to_record(block))
        self._save(data)

        return block

    def remove_time_off(self, block_id: str) -> bool:
        """Delete a time-off block. Returns False if it did not exist."""
        data = self._load()
        remaining = [row for row in data["time_off"] if row.get("id") != block_id]

        if len(remaining) == len(data["time_off"]):
            return False

        data["time_off"] = remaining
        self._save(data)
        return True

    def _parse_rows(self, section: str, parse: Callable[[Dict[str, Any]], T]) -> List[T]:
        rows = self._load()[section]
        parsed: List[T] = []

        for index, row in enumerate(rows):
            try:
                parsed.append(parse(row))
            except (KeyError, TypeError, ValueError) as exc:
                raise StoreError(
                    f"Malformed {section} entry #{index} in {self.data_file}: {exc}"
                ) from exc

        return parsed

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.data_file.exists():
            raise StoreError(f"Schedule data file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read schedule data from {self.data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError(f"Schedule data in {self.data_file} must be a JSON object")

        for section in SECTIONS:
            rows = data.setdefault(section, [])
            if not isinstance(rows, list):
                raise StoreError(f"'{section}' in {self.data_file} must be a list")

        return data

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            with open(self.data_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as exc:
            raise StoreError(f"Could not write schedule data to {self.data_file}: {exc}") from exc
