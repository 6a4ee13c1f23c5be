"""
Conversion between stored row dictionaries and domain models.

Rows use the column names of the booking database
(``day_of_week``, ``start_time``, ``start_datetime``, ...).
"""

from typing import Any, Dict

import pendulum
from pendulum import DateTime

from ..domain.models import (
    AvailabilityRule,
    ExistingBooking,
    TimeOffBlock,
    format_wall_time,
)


def parse_instant(value: Any) -> DateTime:
    """
    Parse an ISO 8601 timestamp into a UTC DateTime.

    Timestamps without an offset are taken as UTC.

    Raises:
        ValueError: If the value is not a full timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO 8601 timestamp, got {value!r}")

    dt = pendulum.parse(value)

    if isinstance(dt, DateTime):
        return dt.in_timezone("UTC")

    raise ValueError(f"Could not parse timestamp: {value}")


def format_instant(value: DateTime) -> str:
    return value.in_timezone("UTC").to_iso8601_string()


def rule_from_record(record: Dict[str, Any]) -> AvailabilityRule:
    return AvailabilityRule.from_strings(
        day_of_week=record["day_of_week"],
        start_time=record["start_time"],
        end_time=record["end_time"]
    )


def rule_to_record(rule: AvailabilityRule) -> Dict[str, Any]:
    return {
        "day_of_week": rule.day_of_week,
        "start_time": format_wall_time(rule.start_time),
        "end_time": format_wall_time(rule.end_time),
    }


def booking_from_record(record: Dict[str, Any]) -> ExistingBooking:
    return ExistingBooking(
        start=parse_instant(record["start_datetime"]),
        end=parse_instant(record["end_datetime"]),
        status=record.get("status", "confirmed"),
        id=record.get("id")
    )


def time_off_from_record(record: Dict[str, Any]) -> TimeOffBlock:
    return TimeOffBlock(
        start=parse_instant(record["start_datetime"]),
        end=parse_instant(record["end_datetime"]),
        reason=record.get("reason"),
        id=record.get("id")
    )


def time_off_to_record(block: TimeOffBlock) -> Dict[str, Any]:
    return {
        "id": block.id,
        "start_datetime": format_instant(block.start),
        "end_datetime": format_instant(block.end),
        "reason": block.reason,
    }
