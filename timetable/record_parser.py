"""Record parser for normalizing raw API payloads into timetable models."""
import hashlib
import logging
from datetime import datetime
from typing import Any, List, Optional, Tuple

from timetable.models import (
    DAYS_OF_WEEK,
    LectureEvent,
    LecturerSummary,
    RoomRef,
    StageRef,
)

logger = logging.getLogger(__name__)


class LectureRecordParser:
    """Parser for validating and normalizing lecture and lecturer records."""

    MAX_COURSE_NAME_LENGTH = 200

    TIME_FORMATS = [
        '%H:%M',         # 24-hour format
        '%H:%M:%S',      # 24-hour with seconds (server default)
        '%I:%M %p',      # 12-hour format with AM/PM
        '%I:%M%p',       # 12-hour format without space
        '%I:%M:%S %p',   # 12-hour with seconds and AM/PM
    ]

    def parse_lectures(self, raw_records: Any) -> List[LectureEvent]:
        """
        Parse a lecture list response.

        Args:
            raw_records: Either a bare list of records or a {'data': [...]} envelope

        Returns:
            List of LectureEvent objects, one per usable record
        """
        records = unwrap_collection(raw_records)
        lectures = []

        for record in records:
            try:
                lecture = self._parse_single_lecture(record)
                if lecture:
                    lectures.append(lecture)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Failed to parse lecture record {record!r}: {e}")
                continue

        logger.info(
            f"Parsed {len(lectures)} lectures out of {len(records)} records"
        )
        return lectures

    def parse_lecturers(self, raw_records: Any) -> List[LecturerSummary]:
        """
        Parse lecturer records.

        Args:
            raw_records: Either a bare list of records or a {'data': [...]} envelope

        Returns:
            List of LecturerSummary objects; records without an id are skipped
        """
        lecturers = []
        for record in unwrap_collection(raw_records):
            lecturer = self._parse_lecturer(record)
            if lecturer:
                lecturers.append(lecturer)
        return lecturers

    def _parse_single_lecture(self, record: Any) -> Optional[LectureEvent]:
        """
        Parse a single lecture record.

        Malformed days and times are kept as None or as the raw day value so
        the aggregator can still place the lecture in a bucket.

        Args:
            record: Raw lecture dictionary

        Returns:
            LectureEvent or None if the record is not an object
        """
        if not isinstance(record, dict):
            logger.warning(f"Skipping non-object lecture record: {record!r}")
            return None

        course_name = str(record.get('course_name') or '').strip()
        course_name = course_name[:self.MAX_COURSE_NAME_LENGTH]

        start_time = self.normalize_time(record.get('start_time'))
        end_time = self.normalize_time(record.get('end_time'))
        if start_time is None or end_time is None:
            logger.warning(
                f"Lecture '{course_name}' has unusable times: "
                f"{record.get('start_time')!r} - {record.get('end_time')!r}"
            )

        day_of_week = self.normalize_day(record.get('day_of_week'))

        lecture_id = record.get('id')
        if lecture_id is None:
            lecture_id = self.generate_lecture_id(
                course_name=course_name,
                day=day_of_week or '',
                time=start_time or '',
            )

        return LectureEvent(
            id=lecture_id,
            course_name=course_name,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            room=self._parse_room(record.get('Room', record.get('room'))),
            stage=self._parse_stage(record.get('Stage', record.get('stage'))),
            lecturers=tuple(
                lecturer for lecturer in (
                    self._parse_lecturer(item)
                    for item in _as_list(record.get('Lecturers', record.get('lecturers')))
                )
                if lecturer
            ),
        )

    def _parse_room(self, raw: Any) -> Optional[RoomRef]:
        if not isinstance(raw, dict):
            return None
        name = raw.get('room_name', raw.get('name'))
        if not isinstance(name, str):
            return None
        return RoomRef(id=raw.get('id'), room_name=name)

    def _parse_stage(self, raw: Any) -> Optional[StageRef]:
        if not isinstance(raw, dict):
            return None
        name = raw.get('name')
        return StageRef(id=raw.get('id'), name=name if isinstance(name, str) else '')

    def _parse_lecturer(self, raw: Any) -> Optional[LecturerSummary]:
        if not isinstance(raw, dict) or raw.get('id') is None:
            logger.warning(f"Skipping lecturer record without id: {raw!r}")
            return None
        name = raw.get('name')
        return LecturerSummary(
            id=raw['id'],
            name=name if isinstance(name, str) else '',
            day_offs=self._parse_day_offs(raw.get('day_offs')),
        )

    def _parse_day_offs(self, raw: Any) -> Tuple[str, ...]:
        days = []
        for value in _as_list(raw):
            day = self.normalize_day(value)
            if day in DAYS_OF_WEEK and day not in days:
                days.append(day)
        return tuple(days)

    def normalize_time(self, time_value: Any) -> Optional[str]:
        """
        Normalize a wall-clock time to zero-padded 24-hour HH:MM.

        Args:
            time_value: Time string in one of TIME_FORMATS

        Returns:
            HH:MM string or None if parsing fails
        """
        if not isinstance(time_value, str) or not time_value.strip():
            return None

        time_str = time_value.strip()

        for fmt in self.TIME_FORMATS:
            try:
                time_obj = datetime.strptime(time_str, fmt)
                return time_obj.strftime('%H:%M')
            except ValueError:
                continue

        return None

    def normalize_day(self, day_value: Any) -> Optional[str]:
        """
        Match a day value against the teaching week, ignoring case.

        Unknown strings are returned stripped but otherwise untouched.
        """
        if not isinstance(day_value, str) or not day_value.strip():
            return None
        day_str = day_value.strip()
        for day in DAYS_OF_WEEK:
            if day.lower() == day_str.lower():
                return day
        return day_str

    def generate_lecture_id(self, course_name: str, day: str, time: str) -> str:
        """
        Generate a stable identifier for a lecture record that came without one.

        Args:
            course_name: Course name
            day: Day of week (may be empty)
            time: Start time HH:MM (may be empty)

        Returns:
            SHA256 hex digest of the composite key
        """
        composite = f"{course_name}|{day}|{time}"
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()


def unwrap_collection(payload: Any) -> list:
    """Return the record list from a {'data': [...]} envelope or a bare list."""
    if isinstance(payload, dict):
        payload = payload.get('data')
    return _as_list(payload)


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []
