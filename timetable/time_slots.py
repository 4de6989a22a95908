"""Fixed-width time slot labels for the timeline and print views."""
from datetime import time
from functools import lru_cache
from typing import List, Optional, Tuple, Union

TimeLike = Union[str, time]


def generate_time_slots(
    start: TimeLike,
    end: TimeLike,
    interval_minutes: int
) -> List[str]:
    """
    Generate HH:MM labels from start to end at a fixed interval.

    The first label is start; labels keep coming while they are <= end, so
    end itself only appears when (end - start) is a multiple of the interval.
    Degenerate input (start after end, non-positive interval, unparseable
    bounds) yields an empty list.

    Args:
        start: First slot, "HH:MM" or datetime.time
        end: Upper bound, "HH:MM" or datetime.time
        interval_minutes: Slot width in minutes

    Returns:
        List of HH:MM labels
    """
    # Only hashable, well-typed arguments reach the cache
    if not all(isinstance(bound, (str, time)) for bound in (start, end)):
        return []
    if isinstance(interval_minutes, bool) or not isinstance(interval_minutes, int):
        return []
    if interval_minutes <= 0:
        return []

    return list(_generate(start, end, interval_minutes))


@lru_cache(maxsize=64)
def _generate(start: TimeLike, end: TimeLike, interval_minutes: int) -> Tuple[str, ...]:
    start_minutes = to_minutes(start)
    end_minutes = to_minutes(end)
    if start_minutes is None or end_minutes is None:
        return ()

    return tuple(
        format_minutes(minutes)
        for minutes in range(start_minutes, end_minutes + 1, interval_minutes)
    )


def to_minutes(value: TimeLike) -> Optional[int]:
    """Minutes since midnight for "HH:MM" or a time object, None if invalid."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        return None

    parts = value.strip().split(':')
    if len(parts) < 2 or not all(part.isdecimal() for part in parts[:2]):
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
