"""Schedule aggregation: day buckets and the day x slot occupancy matrix."""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from timetable.models import (
    DAYS_OF_WEEK,
    UNSCHEDULED,
    AggregateResult,
    LectureEvent,
    PrintLayout,
    ScheduleView,
)
from timetable.search_filter import filter_events
from timetable.time_slots import generate_time_slots

logger = logging.getLogger(__name__)

Matrix = Dict[str, Dict[str, List[LectureEvent]]]


@dataclass(frozen=True)
class SlotSettings:
    """Slot boundaries for the screen timeline and the print layout."""
    start: str = '08:30'
    end: str = '20:30'
    interval_minutes: int = 60
    print_start: Optional[str] = None
    print_end: Optional[str] = None

    @property
    def screen_bounds(self):
        return (self.start, self.end, self.interval_minutes)

    @property
    def print_bounds(self):
        return (
            self.print_start or self.start,
            self.print_end or self.end,
            self.interval_minutes,
        )


def aggregate(
    events: Iterable[LectureEvent],
    query: Optional[str] = '',
    day_labels: Sequence[str] = DAYS_OF_WEEK,
    slots: Optional[Sequence[str]] = None
) -> AggregateResult:
    """
    Filter, bucket, sort and lay out a week of lectures.

    Args:
        events: Lectures of one (stage, week) snapshot
        query: Free-text search applied once before anything else
        day_labels: Days that get their own bucket and matrix column
        slots: Slot labels for the matrix (defaults to the screen slots)

    Returns:
        AggregateResult with buckets and matrix
    """
    if slots is None:
        slots = generate_time_slots(*SlotSettings().screen_bounds)

    buckets = bucket_by_day(filter_events(events, query), day_labels)
    matrix = build_matrix(buckets, day_labels, slots)
    return AggregateResult(buckets=buckets, matrix=matrix)


def bucket_by_day(
    events: Iterable[LectureEvent],
    day_labels: Sequence[str] = DAYS_OF_WEEK
) -> Dict[str, List[LectureEvent]]:
    """
    Partition lectures by day, with a catch-all Unscheduled bucket.

    Each bucket is sorted by start time; ties keep input order and lectures
    without a usable start time go last.
    """
    buckets: Dict[str, List[LectureEvent]] = {day: [] for day in day_labels}
    buckets[UNSCHEDULED] = []
    known_days = set(day_labels)

    for event in events:
        day = event.day_of_week if event.day_of_week in known_days else UNSCHEDULED
        if day == UNSCHEDULED:
            logger.debug(
                f"Lecture {event.id!r} has no known day ({event.day_of_week!r}), "
                f"listing it as {UNSCHEDULED}"
            )
        buckets[day].append(event)

    for bucket in buckets.values():
        bucket.sort(key=_start_sort_key)

    return buckets


def build_matrix(
    buckets: Dict[str, List[LectureEvent]],
    day_labels: Sequence[str],
    slots: Sequence[str]
) -> Matrix:
    """
    Build matrix[day][slot] using the containment rule.

    A lecture occupies slot t when start <= t <= end, inclusive on both ends,
    so a lecture spanning several slots shows up in each of them. Lectures
    without usable times stay out of the matrix.
    """
    matrix: Matrix = {}
    for day in day_labels:
        timed = [event for event in buckets.get(day, []) if event.has_valid_times]
        matrix[day] = {
            slot: [event for event in timed if occupies(event, slot)]
            for slot in slots
        }
    return matrix


def occupies(event: LectureEvent, slot: str) -> bool:
    if not event.has_valid_times:
        return False
    return event.start_time <= slot <= event.end_time


def build_schedule_view(
    events: Iterable[LectureEvent],
    query: Optional[str] = '',
    settings: SlotSettings = SlotSettings(),
    day_labels: Sequence[str] = DAYS_OF_WEEK,
    title: str = '',
    week_range: str = ''
) -> ScheduleView:
    """
    Build the grid, timeline and print view models from one filtering pass.

    The print layout reads the same buckets as the screen. With the default
    settings it also shares the screen matrix object; custom print bounds
    are laid out by the same build_matrix call.
    """
    events = list(events)
    screen_slots = generate_time_slots(*settings.screen_bounds)
    result = aggregate(events, query, day_labels, screen_slots)

    print_slots = generate_time_slots(*settings.print_bounds)
    if print_slots == screen_slots:
        print_matrix = result.matrix
    else:
        print_matrix = build_matrix(result.buckets, day_labels, print_slots)

    filtered_count = sum(len(bucket) for bucket in result.buckets.values())
    logger.info(
        f"Aggregated {filtered_count} of {len(events)} lectures "
        f"into {len(day_labels)} days x {len(screen_slots)} slots"
    )

    return ScheduleView(
        query=query or '',
        day_labels=tuple(day_labels),
        buckets=result.buckets,
        slots=screen_slots,
        matrix=result.matrix,
        print_layout=PrintLayout(
            slots=print_slots,
            matrix=print_matrix,
            title=title,
            week_range=week_range,
        ),
        total_events=len(events),
        filtered_events=filtered_count,
    )


def _start_sort_key(event: LectureEvent):
    return (event.start_time is None, event.start_time or '')
