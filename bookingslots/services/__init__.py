"""
Service layer helpers that orchestrate stores and domain logic.
"""

from .availability import AvailabilityService, ScheduleStoreProtocol

__all__ = ["AvailabilityService", "ScheduleStoreProtocol"]
