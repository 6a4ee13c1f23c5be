"""
Core business logic for calculating bookable slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O): the caller hands in a snapshot of rules, bookings and
time off together with the current instant.
"""

from datetime import time
from typing import List, Sequence, Set

from pendulum import DateTime

from .collision_filter import REASON_TOO_SOON, CollisionFilter
from .models import (
    AvailabilityRule,
    ExistingBooking,
    SchedulingPolicy,
    SlotCheck,
    TimeOffBlock,
    TimeRange,
    at_wall_time,
)
from .rule_resolver import ResolvedDay
from .slot_generator import generate_candidates

REASON_OUTSIDE_AVAILABILITY = "outside_availability"


class SlotCalculator:
    """
    Calculates available start times for one day.

    Algorithm:
    1. Anchor each rule window on the target date (business timezone -> UTC)
    2. Walk each window at the slot interval, keeping slots that fit
    3. Drop slots that violate lead time, time off or buffered bookings
    4. Format the survivors as HH:MM in the business timezone
    """

    def __init__(self, policy: SchedulingPolicy):
        self.policy = policy
        self.collision_filter = CollisionFilter(
            buffer_minutes=policy.buffer_minutes,
            min_lead_time_hours=policy.min_lead_time_hours,
            occupying_statuses=policy.occupying_statuses
        )

    def find_available_slots(
        self,
        *,
        day: ResolvedDay,
        rules: Sequence[AvailabilityRule],
        duration_minutes: int,
        bookings: Sequence[ExistingBooking],
        time_off: Sequence[TimeOffBlock],
        now: DateTime,
        ignore_time_off: bool = False
    ) -> List[str]:
        """
        Compute the bookable start times for a day.

        Args:
            day: Target date resolved in the business timezone
            rules: Availability rules for that weekday
            duration_minutes: Length of the requested service
            bookings: Bookings overlapping the day
            time_off: Time-off blocks overlapping the day
            now: Current instant, injected for determinism
            ignore_time_off: Skip the time-off check (privileged callers)

        Returns:
            Start times as HH:MM strings, chronological and unique. On a
            DST fall-back day the repeated hour is listed once, for the
            occurrence a wall-clock time resolves to (the same instant
            ``check_slot`` tests).
        """
        candidates = self._generate_candidates(day, rules, duration_minutes)

        accepted = self.collision_filter.filter(
            candidates,
            now=now,
            bookings=bookings,
            time_off=time_off,
            ignore_time_off=ignore_time_off
        )

        return [
            self._format(slot.start)
            for slot in accepted
            if self._is_canonical(day, slot.start)
        ]

    def check_slot(
        self,
        *,
        day: ResolvedDay,
        start_time: time,
        rules: Sequence[AvailabilityRule],
        duration_minutes: int,
        bookings: Sequence[ExistingBooking],
        time_off: Sequence[TimeOffBlock],
        now: DateTime,
        privileged: bool = False
    ) -> SlotCheck:
        """
        Re-validate a single start time just before a booking is written.

        Privileged callers may book outside the weekly rules and over time
        off; lead time and buffered bookings still apply to everyone.
        """
        slot_start = at_wall_time(day.date, start_time, day.timezone)
        slot = TimeRange(start=slot_start, end=slot_start.add(minutes=duration_minutes))

        if slot.start < self.collision_filter.earliest_start(now):
            return SlotCheck(available=False, reason=REASON_TOO_SOON)

        if not privileged:
            windows = [rule.window_on(day.date, day.timezone) for rule in rules]
            if not any(window.contains(slot) for window in windows):
                return SlotCheck(available=False, reason=REASON_OUTSIDE_AVAILABILITY)

        reason = self.collision_filter.rejection_reason(
            slot,
            now=now,
            bookings=bookings,
            time_off=time_off,
            ignore_time_off=privileged
        )
        return SlotCheck(available=reason is None, reason=reason)

    def _generate_candidates(
        self,
        day: ResolvedDay,
        rules: Sequence[AvailabilityRule],
        duration_minutes: int
    ) -> List[TimeRange]:
        """
        Generate candidates for every window, in window start order.

        Overlapping rules would yield the same start twice; only the first
        occurrence is kept.
        """
        ordered_rules = sorted(rules, key=lambda r: (r.start_time, r.end_time))
        seen: Set[DateTime] = set()
        candidates: List[TimeRange] = []

        for rule in ordered_rules:
            window = rule.window_on(day.date, day.timezone)

            for candidate in generate_candidates(
                window,
                duration_minutes,
                self.policy.slot_interval_minutes
            ):
                if candidate.start in seen:
                    continue
                seen.add(candidate.start)
                candidates.append(candidate)

        # Windows may interleave when rules overlap
        candidates.sort(key=lambda c: c.start)
        return candidates

    @staticmethod
    def _is_canonical(day: ResolvedDay, instant: DateTime) -> bool:
        """Whether the instant's local wall-clock time maps back to it."""
        local = instant.in_timezone(day.timezone)
        return at_wall_time(day.date, local.time(), day.timezone) == instant

    def _format(self, instant: DateTime) -> str:
        return instant.in_timezone(self.policy.timezone).format("HH:mm")
