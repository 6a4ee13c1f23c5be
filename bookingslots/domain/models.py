"""
Domain models for schedules, bookings and slot results.
"""

import re
from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

import pendulum
from pendulum import Date, DateTime

from .exceptions import SlotValidationError

_WALL_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class BookingStatus(str, Enum):
    """Lifecycle states of a customer booking."""
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COUNTERED = "countered"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Statuses that reserve the chair
OCCUPYING_STATUSES: FrozenSet[str] = frozenset({
    BookingStatus.ACCEPTED.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.ARRIVED.value,
    BookingStatus.COMPLETED.value,
    BookingStatus.NO_SHOW.value,
})


class AvailabilityStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


def parse_wall_time(value: Any) -> time:
    """
    Parse a wall-clock time given as ``HH:MM`` or ``HH:MM:SS``.

    ``datetime.time`` instances are passed through unchanged.

    Raises:
        SlotValidationError: If the value is not a valid time of day
    """
    if isinstance(value, time):
        return value

    if not isinstance(value, str):
        raise SlotValidationError(f"Expected a time as HH:MM, got {value!r}")

    match = _WALL_TIME_PATTERN.match(value.strip())
    if not match:
        raise SlotValidationError(f"Expected a time as HH:MM, got {value!r}")

    hour, minute, second = match.groups()
    try:
        return time(hour=int(hour), minute=int(minute), second=int(second or 0))
    except ValueError as exc:
        raise SlotValidationError(f"Invalid time of day {value!r}: {exc}") from exc


def format_wall_time(value: time) -> str:
    return value.strftime("%H:%M")


def at_wall_time(target_date: Date, wall_time: time, timezone: str) -> DateTime:
    """Return the UTC instant of a wall-clock time on a date in ``timezone``."""
    return pendulum.datetime(
        target_date.year, target_date.month, target_date.day,
        wall_time.hour, wall_time.minute, wall_time.second,
        tz=timezone
    ).in_timezone("UTC")


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the elapsed duration in minutes, across DST changes."""
        return int((self.end.timestamp() - self.start.timestamp()) / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another (half-open intervals)."""
        return self.start < other.end and self.end > other.start

    def contains(self, other: "TimeRange") -> bool:
        """Check if another range lies entirely within this one."""
        return self.start <= other.start and other.end <= self.end

    def padded(self, minutes: int) -> "TimeRange":
        """Return a copy widened by ``minutes`` on both ends."""
        return TimeRange(
            start=self.start.subtract(minutes=minutes),
            end=self.end.add(minutes=minutes)
        )

    def in_utc(self) -> "TimeRange":
        return TimeRange(
            start=self.start.in_timezone("UTC"),
            end=self.end.in_timezone("UTC")
        )

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class AvailabilityRule:
    """
    A recurring weekly working-hours window.

    Times are wall-clock times in the business timezone.
    """
    day_of_week: int  # 0=Sunday, 6=Saturday
    start_time: time
    end_time: time

    def __post_init__(self):
        if isinstance(self.day_of_week, bool) or not isinstance(self.day_of_week, int):
            raise SlotValidationError(f"day_of_week must be an integer, got {self.day_of_week!r}")
        if not 0 <= self.day_of_week <= 6:
            raise SlotValidationError(f"day_of_week must be between 0 and 6, got {self.day_of_week}")
        if self.start_time >= self.end_time:
            raise SlotValidationError(
                f"Rule start {format_wall_time(self.start_time)} must be before "
                f"end {format_wall_time(self.end_time)}"
            )

    @classmethod
    def from_strings(cls, day_of_week: int, start_time: str, end_time: str) -> "AvailabilityRule":
        return cls(
            day_of_week=day_of_week,
            start_time=parse_wall_time(start_time),
            end_time=parse_wall_time(end_time)
        )

    def window_on(self, target_date: Date, timezone: str) -> TimeRange:
        """
        Anchor this rule on a calendar date in the business timezone.

        The wall-clock times are converted once to absolute UTC instants.
        """
        return TimeRange(
            start=at_wall_time(target_date, self.start_time, timezone),
            end=at_wall_time(target_date, self.end_time, timezone)
        )

    def overlaps(self, other: "AvailabilityRule") -> bool:
        """Check if two rules share the same day and overlapping hours."""
        return (
            self.day_of_week == other.day_of_week
            and self.start_time < other.end_time
            and self.end_time > other.start_time
        )

    def __str__(self) -> str:
        return f"{format_wall_time(self.start_time)}-{format_wall_time(self.end_time)}"


@dataclass(frozen=True)
class TimeOffBlock:
    """An ad-hoc block of unavailability, in absolute instants."""
    start: DateTime
    end: DateTime
    reason: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self):
        if self.start >= self.end:
            raise SlotValidationError(
                f"Time off start {self.start} must be before end {self.end}"
            )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


@dataclass(frozen=True)
class ExistingBooking:
    """A booking snapshot, read-only to the engine."""
    start: DateTime
    end: DateTime
    status: str = BookingStatus.CONFIRMED.value
    id: Optional[str] = None

    def __post_init__(self):
        if self.start >= self.end:
            raise SlotValidationError(
                f"Booking start {self.start} must be before end {self.end}"
            )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def is_occupying(self, occupying_statuses: FrozenSet[str] = OCCUPYING_STATUSES) -> bool:
        return self.status in occupying_statuses


@dataclass
class SlotResult:
    """
    Outcome of an availability computation.

    A closed day (no rules) is distinguishable from an open day that is
    fully booked: both have no slots, but only the former is ``closed``.
    """
    status: AvailabilityStatus
    slots: List[str] = field(default_factory=list)

    @classmethod
    def closed(cls) -> "SlotResult":
        return cls(status=AvailabilityStatus.CLOSED, slots=[])

    @property
    def is_closed(self) -> bool:
        return self.status is AvailabilityStatus.CLOSED

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "slots": list(self.slots)}


@dataclass(frozen=True)
class SlotCheck:
    """Outcome of re-validating a single requested start time."""
    available: bool
    reason: Optional[str] = None


@dataclass
class SchedulingPolicy:
    """
    Policy constants for slot computation.
    """
    timezone: str = "America/Chicago"
    slot_interval_minutes: int = 30
    buffer_minutes: int = 15
    min_lead_time_hours: int = 12
    occupying_statuses: FrozenSet[str] = OCCUPYING_STATUSES
