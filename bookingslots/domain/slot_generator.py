"""
Candidate slot generation over availability windows.
"""

from typing import Any, Iterator

from .exceptions import SlotValidationError
from .models import TimeRange

DEFAULT_SLOT_INTERVAL_MINUTES = 30


def validate_duration(value: Any) -> int:
    """
    Coerce a service duration to a positive whole number of minutes.

    Accepts integers and digit-only strings (query parameters, CLI input).

    Raises:
        SlotValidationError: If the duration is missing, non-numeric or not positive
    """
    if isinstance(value, bool):
        raise SlotValidationError(f"Service duration must be a whole number of minutes, got {value!r}")

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise SlotValidationError(f"Service duration must be a whole number of minutes, got {value!r}")
        value = int(stripped)

    if not isinstance(value, int):
        raise SlotValidationError(f"Service duration must be a whole number of minutes, got {value!r}")

    if value <= 0:
        raise SlotValidationError(f"Service duration must be greater than zero, got {value}")

    return value


def generate_candidates(
    window: TimeRange,
    duration_minutes: int,
    step_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES
) -> Iterator[TimeRange]:
    """
    Walk a window at a fixed step, yielding every slot that fits.

    Example (window 09:00 - 10:30, 45 minute service, 30 minute step):
    09:00-09:45, 09:30-10:15; 10:00 would end at 10:45 and stops the walk.

    Args:
        window: Opening hours for one rule on one day
        duration_minutes: Length of the service
        step_minutes: Distance between consecutive candidate starts

    Yields:
        Candidate slots in chronological order
    """
    if step_minutes <= 0:
        raise SlotValidationError(f"Slot interval must be greater than zero, got {step_minutes}")

    current = window.start

    while current < window.end:
        candidate_end = current.add(minutes=duration_minutes)

        # Later starts would overflow as well
        if candidate_end > window.end:
            break

        yield TimeRange(start=current, end=candidate_end)

        current = current.add(minutes=step_minutes)
