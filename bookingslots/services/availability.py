"""
Application service for computing bookable slots.

The service validates the request, fetches a snapshot of rules, bookings
and time off through a store adapter, and delegates the computation to the
domain-level ``SlotCalculator``. The store dependency is a simple protocol
so tests can plug in stubs.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, TypeVar

import pendulum
from pendulum import DateTime

from ..domain.exceptions import StoreError
from ..domain.models import (
    AvailabilityRule,
    AvailabilityStatus,
    ExistingBooking,
    SlotCheck,
    SlotResult,
    TimeOffBlock,
    parse_wall_time,
)
from ..domain.rule_resolver import ResolvedDay, resolve_day
from ..domain.slot_calculator import SlotCalculator
from ..domain.slot_generator import validate_duration

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScheduleStoreProtocol(Protocol):
    """Protocol describing the store reads needed by the service."""

    def get_rules_for_day_of_week(self, day_of_week: int) -> List[AvailabilityRule]:
        """Return the weekly rules for a Sunday-first weekday."""

    def get_occupying_bookings_in_range(
        self,
        utc_start: DateTime,
        utc_end: DateTime,
    ) -> List[ExistingBooking]:
        """Return occupying bookings overlapping the range."""

    def get_time_off_in_range(
        self,
        utc_start: DateTime,
        utc_end: DateTime,
    ) -> List[TimeOffBlock]:
        """Return time-off blocks overlapping the range."""


class AvailabilityService:
    """
    Orchestrates snapshot retrieval and slot calculation.

    Holds no state between calls; concurrent requests are independent.
    """

    def __init__(
        self,
        store: ScheduleStoreProtocol,
        slot_calculator: SlotCalculator,
    ) -> None:
        self._store = store
        self._slot_calculator = slot_calculator

    @property
    def timezone(self) -> str:
        return self._slot_calculator.policy.timezone

    def compute_available_slots(
        self,
        *,
        target_date: Any,
        service_duration_minutes: Any,
        is_privileged: bool = False,
        now: Optional[datetime] = None,
    ) -> SlotResult:
        """
        Compute the bookable start times for a date.

        Args:
            target_date: Calendar date as YYYY-MM-DD, in the business timezone
            service_duration_minutes: Positive whole number of minutes
            is_privileged: Operator view; time off is not applied
            now: Current instant; defaults to the wall clock

        Returns:
            SlotResult with status "closed" when no rule matches the weekday

        Raises:
            SlotValidationError: If the date or duration is malformed
            StoreError: If any store read fails
        """
        duration = validate_duration(service_duration_minutes)
        day = resolve_day(target_date, self.timezone)
        current = self._resolve_now(now)

        rules = self._read("rules", self._store.get_rules_for_day_of_week, day.day_of_week)
        if not rules:
            logger.debug("No rules for %s (day %d): closed", day.date, day.day_of_week)
            return SlotResult.closed()

        bookings = self.fetch_bookings(day)
        time_off = [] if is_privileged else self.fetch_time_off(day)

        logger.debug(
            "Computing slots for %s: %d rule(s), %d booking(s), %d time-off block(s)",
            day.date, len(rules), len(bookings), len(time_off)
        )

        slots = self._slot_calculator.find_available_slots(
            day=day,
            rules=rules,
            duration_minutes=duration,
            bookings=bookings,
            time_off=time_off,
            now=current,
            ignore_time_off=is_privileged,
        )

        return SlotResult(status=AvailabilityStatus.OPEN, slots=slots)

    def check_slot(
        self,
        *,
        target_date: Any,
        start_time: Any,
        service_duration_minutes: Any,
        is_privileged: bool = False,
        now: Optional[datetime] = None,
    ) -> SlotCheck:
        """
        Re-check one start time, e.g. right before a booking is created.

        Raises:
            SlotValidationError: If the date, time or duration is malformed
            StoreError: If any store read fails
        """
        duration = validate_duration(service_duration_minutes)
        day = resolve_day(target_date, self.timezone)
        wall_time = parse_wall_time(start_time)
        current = self._resolve_now(now)

        rules: List[AvailabilityRule] = []
        if not is_privileged:
            rules = self._read("rules", self._store.get_rules_for_day_of_week, day.day_of_week)

        bookings = self.fetch_bookings(day)
        time_off = [] if is_privileged else self.fetch_time_off(day)

        return self._slot_calculator.check_slot(
            day=day,
            start_time=wall_time,
            rules=rules,
            duration_minutes=duration,
            bookings=bookings,
            time_off=time_off,
            now=current,
            privileged=is_privileged,
        )

    def fetch_bookings(self, day: ResolvedDay) -> List[ExistingBooking]:
        """
        Fetch occupying bookings around the day.

        The range is widened by the buffer so that bookings just across
        midnight still pad the first and last slots of the day.
        """
        buffer_minutes = self._slot_calculator.policy.buffer_minutes
        search = day.bounds.padded(buffer_minutes)
        return self._read(
            "bookings",
            self._store.get_occupying_bookings_in_range,
            search.start,
            search.end,
        )

    def fetch_time_off(self, day: ResolvedDay) -> List[TimeOffBlock]:
        """Fetch time-off blocks overlapping the day."""
        return self._read(
            "time off",
            self._store.get_time_off_in_range,
            day.bounds.start,
            day.bounds.end,
        )

    @staticmethod
    def _read(what: str, fetch: Callable[..., List[T]], *args: Any) -> List[T]:
        """
        Run a store read, normalising failures to ``StoreError``.
        """
        try:
            return list(fetch(*args))
        except StoreError as exc:
            logger.warning("Store read for %s failed: %s", what, exc)
            raise
        except Exception as exc:
            logger.warning("Store read for %s failed: %s", what, exc)
            raise StoreError(f"Could not load {what}: {exc}") from exc

    @staticmethod
    def _resolve_now(now: Optional[datetime]) -> DateTime:
        if now is None:
            return pendulum.now("UTC")
        if isinstance(now, DateTime):
            return now
        # Naive datetimes are taken as UTC
        return pendulum.instance(now, tz="UTC")
