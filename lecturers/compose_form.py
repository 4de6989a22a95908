"""State of the compose-lecture form: lecturer rows and the lecture draft."""
import logging
from datetime import time
from typing import Any, List, Optional, Union

from lecturers.selection_session import (
    DEFAULT_DEBOUNCE_SECONDS,
    Lookup,
    SelectionCache,
    SelectionSearchSession,
)
from remote.timetable_client import TimetableApiClient
from timetable.models import DAYS_OF_WEEK, ApiResult, LectureDraft, LecturerSummary
from timetable.record_parser import LectureRecordParser

logger = logging.getLogger(__name__)


class DraftValidationError(ValueError):
    """The draft cannot be submitted as entered."""


class ComposeLectureForm:
    """
    Lecturer rows plus the lecture fields of the compose form.

    Every row owns its own SelectionSearchSession; all rows share one
    SelectionCache. There is always at least one row.
    """

    def __init__(self, lookup: Lookup, debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS):
        self.lookup = lookup
        self.debounce_seconds = debounce_seconds
        self.cache = SelectionCache()
        self.rows: List[SelectionSearchSession] = []
        self._next_row_id = 0
        self.add_row()

    def add_row(self) -> SelectionSearchSession:
        row_id = self._next_row_id
        self._next_row_id += 1
        session = SelectionSearchSession(
            lookup=self.lookup,
            cache=self.cache,
            row_id=row_id,
            debounce_seconds=self.debounce_seconds,
            selected_ids=lambda: self._selected_ids_for(row_id),
        )
        self.rows.append(session)
        return session

    def remove_row(self, index: int) -> None:
        """Remove a row and stop its lookups; the last row is replaced by a blank one."""
        session = self.rows.pop(index)
        session.close()
        if not self.rows:
            self.add_row()

    def row(self, index: int) -> SelectionSearchSession:
        return self.rows[index]

    def select(self, index: int, item: Optional[LecturerSummary]) -> None:
        self.rows[index].on_select(item)

    def selected_lecturer_ids(self) -> List[Any]:
        """Ids chosen across rows, in row order, without blanks or repeats."""
        ids = []
        for session in self.rows:
            if session.selected is not None and session.selected.id not in ids:
                ids.append(session.selected.id)
        return ids

    def reset(self) -> None:
        """Drop every row and the selection cache, leaving one blank row."""
        for session in self.rows:
            session.close()
        self.rows = []
        self.cache.clear()
        self.add_row()
        logger.info("Compose form has been reset")

    def build_draft(
        self,
        course_name: str,
        stage_id: Any,
        room_id: Any,
        start_time: Union[str, time, None],
        end_time: Union[str, time, None],
        day_of_week: Optional[str] = None
    ) -> LectureDraft:
        """
        Validate the form fields and build a LectureDraft.

        Raises:
            DraftValidationError: If a required field is missing or invalid
        """
        course_name = (course_name or '').strip()
        if not course_name:
            raise DraftValidationError("Course name is required")
        if stage_id in (None, ''):
            raise DraftValidationError("Stage is required")
        if room_id in (None, ''):
            raise DraftValidationError("Room is required")

        start = _to_hhmm(start_time)
        end = _to_hhmm(end_time)
        if start is None or end is None:
            raise DraftValidationError("Start and end time are required (HH:MM)")
        if end < start:
            raise DraftValidationError("End time cannot be earlier than start time")

        if day_of_week and day_of_week not in DAYS_OF_WEEK:
            raise DraftValidationError(f"Unknown day of week: {day_of_week}")

        lecturer_ids = self.selected_lecturer_ids()
        if not lecturer_ids:
            raise DraftValidationError("At least one lecturer is required")

        return LectureDraft(
            course_name=course_name,
            stage_id=stage_id,
            room_id=room_id,
            start_time=start,
            end_time=end,
            lecturer_ids=lecturer_ids,
            day_of_week=day_of_week or None,
        )

    def submit(self, client: TimetableApiClient, draft: LectureDraft) -> ApiResult:
        """Post the draft; the form resets only when the server accepts it."""
        result = client.create_lecture(draft.to_payload())
        if result.ok:
            logger.info(f"Lecture '{draft.course_name}' added")
            self.reset()
        else:
            logger.warning(f"Lecture '{draft.course_name}' rejected: {result.error}")
        return result

    def _selected_ids_for(self, row_id: int) -> List[Any]:
        # The row's own choice first, then the other rows' choices.
        own = [
            session.selected.id for session in self.rows
            if session.row_id == row_id and session.selected is not None
        ]
        return own + [item_id for item_id in self.selected_lecturer_ids() if item_id not in own]


def _to_hhmm(value: Union[str, time, None]) -> Optional[str]:
    if isinstance(value, time):
        return value.strftime('%H:%M')
    return LectureRecordParser().normalize_time(value)
