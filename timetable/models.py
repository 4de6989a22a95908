"""Data models for the timetable data layer."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


DAYS_OF_WEEK = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday')
UNSCHEDULED = 'Unscheduled'


@dataclass(frozen=True)
class RoomRef:
    """Room referenced by a lecture."""
    id: Any
    room_name: str


@dataclass(frozen=True)
class StageRef:
    """Study stage (year group) referenced by a lecture."""
    id: Any
    name: str


@dataclass(frozen=True)
class LecturerSummary:
    """Lecturer as returned by the lecturer list endpoint."""
    id: Any
    name: str
    day_offs: Tuple[str, ...] = ()

    def available_days(self, days: Tuple[str, ...] = DAYS_OF_WEEK) -> List[str]:
        """Days of the teaching week the lecturer is not off."""
        return [day for day in days if day not in self.day_offs]


@dataclass(frozen=True)
class LectureEvent:
    """Normalized lecture record.

    start_time and end_time are zero-padded HH:MM strings, or None when the
    server sent nothing usable. day_of_week keeps the raw value so that
    bucketing can route unknown days to the Unscheduled bucket.
    """
    id: Any
    course_name: str
    day_of_week: Optional[str]
    start_time: Optional[str]
    end_time: Optional[str]
    room: Optional[RoomRef] = None
    stage: Optional[StageRef] = None
    lecturers: Tuple[LecturerSummary, ...] = ()

    @property
    def has_valid_times(self) -> bool:
        return (
            self.start_time is not None and
            self.end_time is not None and
            self.start_time <= self.end_time
        )


@dataclass(frozen=True)
class PageWindow:
    """One page of the lecturer directory."""
    items: Tuple[LecturerSummary, ...]
    next: Optional[Any]
    prev: Optional[Any]
    limit: int

    @property
    def has_next(self) -> bool:
        return self.next is not None

    @property
    def has_prev(self) -> bool:
        return self.prev is not None


@dataclass
class ApiResult:
    """Tagged outcome of a remote call."""
    ok: bool
    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None


@dataclass
class AggregateResult:
    """Day buckets plus the occupancy matrix built from them."""
    buckets: Dict[str, List[LectureEvent]]
    matrix: Dict[str, Dict[str, List[LectureEvent]]]


@dataclass
class PrintLayout:
    """Print-ready timetable."""
    slots: List[str]
    matrix: Dict[str, Dict[str, List[LectureEvent]]]
    title: str = ''
    week_range: str = ''


@dataclass
class ScheduleView:
    """Everything the grid, timeline and print views need for one week."""
    query: str
    day_labels: Tuple[str, ...]
    buckets: Dict[str, List[LectureEvent]]
    slots: List[str]
    matrix: Dict[str, Dict[str, List[LectureEvent]]]
    print_layout: PrintLayout
    total_events: int = 0
    filtered_events: int = 0

    @property
    def can_print(self) -> bool:
        return self.total_events > 0


@dataclass
class LectureDraft:
    """Validated lecture ready to be posted."""
    course_name: str
    stage_id: Any
    room_id: Any
    start_time: str
    end_time: str
    lecturer_ids: List[Any] = field(default_factory=list)
    day_of_week: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            'course_name': self.course_name,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'room_id': self.room_id,
            'stage_id': self.stage_id,
            'lecturer_ids': list(self.lecturer_ids),
        }
        if self.day_of_week:
            payload['day_of_week'] = self.day_of_week
        return payload
