"""Text search over lectures, shared by the grid, timeline and print views."""
from typing import Iterable, List, Optional

from timetable.models import LectureEvent


def matches(event: LectureEvent, query: Optional[str]) -> bool:
    """
    Check whether a lecture matches a free-text query.

    Matching is a case-insensitive substring test against the course name,
    every lecturer name and the room name. An empty query matches everything;
    missing room or lecturer data simply does not match.
    """
    needle = normalize_query(query)
    if not needle:
        return True

    if needle in (event.course_name or '').casefold():
        return True

    for lecturer in event.lecturers:
        if lecturer.name and needle in lecturer.name.casefold():
            return True

    room_name = event.room.room_name if event.room else None
    return bool(room_name) and needle in room_name.casefold()


def filter_events(events: Iterable[LectureEvent], query: Optional[str]) -> List[LectureEvent]:
    """Apply matches() once, preserving input order."""
    return [event for event in events if matches(event, query)]


def normalize_query(query: Optional[str]) -> str:
    if not isinstance(query, str):
        return ''
    return query.strip().casefold()
