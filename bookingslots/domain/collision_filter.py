"""
Rejects candidate slots that collide with lead time, time off or bookings.

All comparisons happen on absolute instants, so the business timezone
offset never leaks into the arithmetic.
"""

from typing import FrozenSet, Iterable, List, Optional, Sequence

from pendulum import DateTime

from .models import OCCUPYING_STATUSES, ExistingBooking, TimeOffBlock, TimeRange

DEFAULT_BUFFER_MINUTES = 15
DEFAULT_MIN_LEAD_TIME_HOURS = 12

REASON_TOO_SOON = "too_soon"
REASON_TIME_OFF = "time_off"
REASON_BOOKED = "booked"


class CollisionFilter:
    """
    Accepts a candidate [start, start + duration) only if:

    1. start >= now + lead time
    2. it does not overlap any time-off block (unless time off is ignored)
    3. it does not overlap any occupying booking widened by the buffer

    Touching is not overlapping: a slot may end exactly where a buffered
    booking begins, or start exactly where it ends.
    """

    def __init__(
        self,
        buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
        min_lead_time_hours: int = DEFAULT_MIN_LEAD_TIME_HOURS,
        occupying_statuses: FrozenSet[str] = OCCUPYING_STATUSES
    ):
        if buffer_minutes < 0:
            raise ValueError(f"buffer_minutes must not be negative, got {buffer_minutes}")
        if min_lead_time_hours < 0:
            raise ValueError(f"min_lead_time_hours must not be negative, got {min_lead_time_hours}")

        self.buffer_minutes = buffer_minutes
        self.min_lead_time_hours = min_lead_time_hours
        self.occupying_statuses = frozenset(occupying_statuses)

    def earliest_start(self, now: DateTime) -> DateTime:
        """Return the first instant a slot may start at."""
        return now.in_timezone("UTC").add(hours=self.min_lead_time_hours)

    def blocked_ranges(self, bookings: Iterable[ExistingBooking]) -> List[TimeRange]:
        """Widen every occupying booking by the buffer on both ends."""
        return [
            booking.time_range.padded(self.buffer_minutes)
            for booking in bookings
            if booking.is_occupying(self.occupying_statuses)
        ]

    def rejection_reason(
        self,
        candidate: TimeRange,
        *,
        now: DateTime,
        bookings: Sequence[ExistingBooking],
        time_off: Sequence[TimeOffBlock],
        ignore_time_off: bool = False
    ) -> Optional[str]:
        """
        Explain why a single candidate is rejected.

        Returns:
            One of the ``REASON_*`` constants, or None if the slot is free
        """
        return self._reason(
            candidate,
            earliest=self.earliest_start(now),
            blocked=self.blocked_ranges(bookings),
            time_off_ranges=self._time_off_ranges(time_off, ignore_time_off)
        )

    def filter(
        self,
        candidates: Iterable[TimeRange],
        *,
        now: DateTime,
        bookings: Sequence[ExistingBooking],
        time_off: Sequence[TimeOffBlock],
        ignore_time_off: bool = False
    ) -> List[TimeRange]:
        """
        Keep the candidates that pass every check, in input order.
        """
        earliest = self.earliest_start(now)
        blocked = self.blocked_ranges(bookings)
        time_off_ranges = self._time_off_ranges(time_off, ignore_time_off)

        return [
            candidate for candidate in candidates
            if self._reason(
                candidate,
                earliest=earliest,
                blocked=blocked,
                time_off_ranges=time_off_ranges
            ) is None
        ]

    @staticmethod
    def _time_off_ranges(time_off: Sequence[TimeOffBlock], ignore_time_off: bool) -> List[TimeRange]:
        if ignore_time_off:
            return []
        return [block.time_range for block in time_off]

    @staticmethod
    def _reason(
        candidate: TimeRange,
        *,
        earliest: DateTime,
        blocked: Sequence[TimeRange],
        time_off_ranges: Sequence[TimeRange]
    ) -> Optional[str]:
        # Checks run in this order for every caller
        if candidate.start < earliest:
            return REASON_TOO_SOON

        if any(candidate.overlaps(block) for block in time_off_ranges):
            return REASON_TIME_OFF

        if any(candidate.overlaps(booking) for booking in blocked):
            return REASON_BOOKED

        return None
