"""
Fixed-length candidate slot generation.
"""

from typing import List, NamedTuple, Union

from consult_scheduling.shared_types.scheduling import TimeOfDay


class TimeSlot(NamedTuple):
    """A candidate booking window within one day."""
    start: TimeOfDay
    end: TimeOfDay


def generate_time_slots(
    start_time: Union[TimeOfDay, str],
    end_time: Union[TimeOfDay, str],
    duration_minutes: int
) -> List[TimeSlot]:
    """
    Generate contiguous, non-overlapping slots of `duration_minutes` in [start_time, end_time).

    Slots step by the duration and the last slot never passes end_time. A window
    shorter than one duration yields an empty list.

    Args:
        start_time: Window start (HH:MM)
        end_time: Window end (HH:MM)
        duration_minutes: Length of each slot

    Returns:
        Ordered list of TimeSlot(start, end)

    Raises:
        ValueError: If duration_minutes is not positive or a time is malformed
    """
    if duration_minutes <= 0:
        raise ValueError(f"Slot duration must be positive, got {duration_minutes}")

    current = TimeOfDay(start_time).minutes
    end = TimeOfDay(end_time).minutes

    slots: List[TimeSlot] = []
    while current + duration_minutes <= end:
        slots.append(TimeSlot(
            TimeOfDay.from_minutes(current),
            TimeOfDay.from_minutes(current + duration_minutes),
        ))
        current += duration_minutes

    return slots
