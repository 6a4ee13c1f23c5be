"""
Pins calendar dates to the business timezone.

Day-of-week and day boundaries are always evaluated in the business
timezone: a date near midnight can fall on a different weekday in UTC.
"""

import re
from dataclasses import dataclass
from typing import Any

import pendulum
from pendulum import Date, DateTime

from .exceptions import SlotValidationError
from .models import TimeRange

_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


@dataclass(frozen=True)
class ResolvedDay:
    """A target date pinned to the business timezone."""
    date: Date
    timezone: str
    day_of_week: int  # 0=Sunday
    bounds: TimeRange  # [local midnight, next local midnight) in UTC


def parse_target_date(value: Any) -> Date:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Raises:
        SlotValidationError: If the date is missing or malformed
    """
    if isinstance(value, Date):
        return value

    if value is None or (isinstance(value, str) and not value.strip()):
        raise SlotValidationError("Date is required")

    if not isinstance(value, str):
        raise SlotValidationError(f"Expected a date as YYYY-MM-DD, got {value!r}")

    match = _DATE_PATTERN.match(value.strip())
    if not match:
        raise SlotValidationError(f"Expected a date as YYYY-MM-DD, got {value!r}")

    year, month, day = (int(part) for part in match.groups())
    try:
        return pendulum.date(year, month, day)
    except ValueError as exc:
        raise SlotValidationError(f"Invalid date {value!r}: {exc}") from exc


def local_midnight(target_date: Date, timezone: str) -> DateTime:
    return pendulum.datetime(target_date.year, target_date.month, target_date.day, tz=timezone)


def day_of_week(target_date: Date, timezone: str) -> int:
    """Return the Sunday-first weekday (0=Sunday) of the zoned local midnight."""
    return local_midnight(target_date, timezone).isoweekday() % 7


def resolve_day(target_date: Any, timezone: str) -> ResolvedDay:
    """
    Pin a date to the business timezone.

    The bounds cover the local day, which is 23 or 25 hours long on DST
    transition days.
    """
    parsed = parse_target_date(target_date)
    start = local_midnight(parsed, timezone)
    end = start.add(days=1)

    return ResolvedDay(
        date=parsed,
        timezone=timezone,
        day_of_week=day_of_week(parsed, timezone),
        bounds=TimeRange(start=start, end=end).in_utc()
    )
