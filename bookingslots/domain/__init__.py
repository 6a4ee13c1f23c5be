"""
Domain layer - Pure business logic without external dependencies.
"""

from .collision_filter import CollisionFilter
from .models import (
    AvailabilityRule,
    AvailabilityStatus,
    BookingStatus,
    ExistingBooking,
    SchedulingPolicy,
    SlotCheck,
    SlotResult,
    TimeOffBlock,
    TimeRange,
)
from .rule_resolver import ResolvedDay, resolve_day
from .slot_calculator import SlotCalculator

__all__ = [
    "AvailabilityRule",
    "AvailabilityStatus",
    "BookingStatus",
    "CollisionFilter",
    "ExistingBooking",
    "ResolvedDay",
    "SchedulingPolicy",
    "SlotCalculator",
    "SlotCheck",
    "SlotResult",
    "TimeOffBlock",
    "TimeRange",
    "resolve_day",
]
