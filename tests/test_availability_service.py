"""
Tests for the AvailabilityService orchestration layer.
"""

from datetime import datetime
from typing import Dict, List, Optional

import pendulum
import pytest

from bookingslots.domain.exceptions import SlotValidationError, StoreError
from bookingslots.domain.models import (
    AvailabilityRule,
    ExistingBooking,
    SchedulingPolicy,
    TimeOffBlock,
)
from bookingslots.domain.slot_calculator import SlotCalculator
from bookingslots.services.availability import AvailabilityService

TZ = "America/Chicago"
LONG_AGO = pendulum.datetime(2000, 1, 1, tz="UTC")


def _at(clock: str, date: str = "2024-11-25"):
    return pendulum.parse(f"{date} {clock}", tz=TZ)


class StubScheduleStore:
    """Minimal stub matching ScheduleStoreProtocol."""

    def __init__(
        self,
        rules: Optional[List[AvailabilityRule]] = None,
        bookings: Optional[List[ExistingBooking]] = None,
        time_off: Optional[List[TimeOffBlock]] = None,
        fail_on: Optional[Dict[str, Exception]] = None,
    ):
        self._rules = rules or []
        self._bookings = bookings or []
        self._time_off = time_off or []
        self._fail_on = fail_on or {}
        self.calls: List[tuple] = []

    def get_rules_for_day_of_week(self, day_of_week):
        self.calls.append(("rules", day_of_week))
        self._maybe_fail("rules")
        return [rule for rule in self._rules if rule.day_of_week == day_of_week]

    def get_occupying_bookings_in_range(self, utc_start, utc_end):
        self.calls.append(("bookings", utc_start, utc_end))
        self._maybe_fail("bookings")
        return self._bookings

    def get_time_off_in_range(self, utc_start, utc_end):
        self.calls.append(("time_off", utc_start, utc_end))
        self._maybe_fail("time_off")
        return self._time_off

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def _maybe_fail(self, name: str) -> None:
        if name in self._fail_on:
            raise self._fail_on[name]


def _build_service(store: StubScheduleStore) -> AvailabilityService:
    calculator = SlotCalculator(policy=SchedulingPolicy(timezone=TZ))
    return AvailabilityService(store=store, slot_calculator=calculator)


MONDAY_RULES = [AvailabilityRule.from_strings(1, "09:00", "17:00")]


class TestComputeAvailableSlots:
    """Tests for compute_available_slots."""

    def test_open_day(self):
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES))

        result = service.compute_available_slots(
            target_date="2024-11-25",
            service_duration_minutes=30,
            now=LONG_AGO,
        )

        assert result.to_dict()["status"] == "open"
        assert result.slots[0] == "09:00"
        assert result.slots[-1] == "16:30"
        assert len(result.slots) == 16

    def test_closed_day_skips_other_reads(self):
        store = StubScheduleStore(rules=MONDAY_RULES)
        service = _build_service(store)

        result = service.compute_available_slots(
            target_date="2024-11-24",  # Sunday
            service_duration_minutes=30,
            now=LONG_AGO,
        )

        assert result.to_dict() == {"status": "closed", "slots": []}
        assert store.calls == [("rules", 0)]

    def test_fully_booked_is_open_not_closed(self):
        time_off = [TimeOffBlock(start=_at("09:00"), end=_at("17:00"), reason="Vacation")]
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES, time_off=time_off))

        result = service.compute_available_slots(
            target_date="2024-11-25",
            service_duration_minutes=30,
            now=LONG_AGO,
        )

        assert result.to_dict() == {"status": "open", "slots": []}

    def test_privileged_caller_ignores_time_off(self):
        time_off = [TimeOffBlock(start=_at("09:00"), end=_at("17:00"), reason="Admin")]
        store = StubScheduleStore(rules=MONDAY_RULES, time_off=time_off)
        service = _build_service(store)

        result = service.compute_available_slots(
            target_date="2024-11-25",
            service_duration_minutes=30,
            is_privileged=True,
            now=LONG_AGO,
        )

        assert len(result.slots) == 16
        assert "time_off" not in store.call_names()

    def test_buffered_booking_excludes_neighbours(self):
        bookings = [ExistingBooking(start=_at("12:00"), end=_at("12:30"), status="confirmed")]
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES, bookings=bookings))

        result = service.compute_available_slots(
            target_date="2024-11-25",
            service_duration_minutes=30,
            now=LONG_AGO,
        )

        assert "11:00" in result.slots
        assert "13:00" in result.slots
        for blocked in ("11:30", "12:00", "12:30"):
            assert blocked not in result.slots

    def test_booking_query_is_widened_by_buffer(self):
        store = StubScheduleStore(rules=MONDAY_RULES)
        service = _build_service(store)

        service.compute_available_slots(
            target_date="2024-11-25",
            service_duration_minutes=30,
            now=LONG_AGO,
        )

        bookings_call = next(call for call in store.calls if call[0] == "bookings")
        time_off_call = next(call for call in store.calls if call[0] == "time_off")

        assert bookings_call[1] == pendulum.parse("2024-11-25T05:45:00Z")
        assert bookings_call[2] == pendulum.parse("2024-11-26T06:15:00Z")
        assert time_off_call[1] == pendulum.parse("2024-11-25T06:00:00Z")
        assert time_off_call[2] == pendulum.parse("2024-11-26T06:00:00Z")

    def test_idempotent_on_unchanged_snapshot(self):
        bookings = [ExistingBooking(start=_at("10:00"), end=_at("11:00"))]
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES, bookings=bookings))

        first = service.compute_available_slots(
            target_date="2024-11-25", service_duration_minutes=45, now=LONG_AGO
        )
        second = service.compute_available_slots(
            target_date="2024-11-25", service_duration_minutes=45, now=LONG_AGO
        )

        assert first == second

    def test_naive_now_is_utc(self):
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES))

        result = service.compute_available_slots(
            target_date="2024-11-25",
            service_duration_minutes=30,
            now=datetime(2024, 11, 25, 7, 0),  # 01:00 CST
        )

        assert result.slots[0] == "13:00"

    def test_duration_from_query_string(self):
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES))

        result = service.compute_available_slots(
            target_date="2024-11-25",
            service_duration_minutes="60",
            now=LONG_AGO,
        )

        assert result.slots[-1] == "16:00"


class TestValidation:
    """Validation errors are raised before any store access."""

    @pytest.mark.parametrize("target_date", [None, "", "2024-13-01", "tomorrow"])
    def test_bad_date(self, target_date):
        store = StubScheduleStore(rules=MONDAY_RULES)

        with pytest.raises(SlotValidationError):
            _build_service(store).compute_available_slots(
                target_date=target_date, service_duration_minutes=30, now=LONG_AGO
            )

        assert store.calls == []

    @pytest.mark.parametrize("duration", [0, -15, "abc", None])
    def test_bad_duration(self, duration):
        store = StubScheduleStore(rules=MONDAY_RULES)

        with pytest.raises(SlotValidationError):
            _build_service(store).compute_available_slots(
                target_date="2024-11-25", service_duration_minutes=duration, now=LONG_AGO
            )

        assert store.calls == []


class TestStoreFailures:
    """Store failures propagate; no slots are approved on partial data."""

    @pytest.mark.parametrize("failing", ["rules", "bookings", "time_off"])
    def test_store_error_propagates(self, failing):
        store = StubScheduleStore(
            rules=MONDAY_RULES,
            fail_on={failing: StoreError("database unavailable")},
        )

        with pytest.raises(StoreError, match="database unavailable"):
            _build_service(store).compute_available_slots(
                target_date="2024-11-25", service_duration_minutes=30, now=LONG_AGO
            )

    def test_unexpected_exception_is_wrapped(self):
        cause = ConnectionError("connection reset")
        store = StubScheduleStore(rules=MONDAY_RULES, fail_on={"bookings": cause})

        with pytest.raises(StoreError) as excinfo:
            _build_service(store).compute_available_slots(
                target_date="2024-11-25", service_duration_minutes=30, now=LONG_AGO
            )

        assert excinfo.value.__cause__ is cause


class TestCheckSlot:
    """Tests for check_slot."""

    def test_available(self):
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES))

        result = service.check_slot(
            target_date="2024-11-25",
            start_time="14:00",
            service_duration_minutes=30,
            now=LONG_AGO,
        )

        assert result.available

    def test_closed_day_is_outside_availability(self):
        service = _build_service(StubScheduleStore(rules=MONDAY_RULES))

        result = service.check_slot(
            target_date="2024-11-24",
            start_time="14:00",
            service_duration_minutes=30,
            now=LONG_AGO,
        )

        assert not result.available
        assert result.reason == "outside_availability"

    def test_privileged_skips_rules_and_time_off(self):
        time_off = [TimeOffBlock(start=_at("18:00"), end=_at("20:00"))]
        store = StubScheduleStore(rules=MONDAY_RULES, time_off=time_off)

        result = _build_service(store).check_slot(
            target_date="2024-11-25",
            start_time="18:30",
            service_duration_minutes=30,
            is_privileged=True,
            now=LONG_AGO,
        )

        assert result.available
        assert store.call_names() == ["bookings"]

    def test_invalid_start_time(self):
        store = StubScheduleStore(rules=MONDAY_RULES)

        with pytest.raises(SlotValidationError):
            _build_service(store).check_slot(
                target_date="2024-11-25",
                start_time="2pm",
                service_duration_minutes=30,
                now=LONG_AGO,
            )

        assert store.calls == []
