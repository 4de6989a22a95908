"""Week navigation and the (stage, week) keyed lecture loader."""
import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Tuple

from remote.timetable_client import ApiError, TimetableApiClient
from timetable.models import ApiResult, LectureEvent
from timetable.record_parser import LectureRecordParser

logger = logging.getLogger(__name__)

FETCH_FAILED_NOTICE = 'Failed to fetch lectures for this week'


def week_bounds(day: date) -> Tuple[date, date]:
    """Sunday-to-Saturday week containing the given day."""
    if isinstance(day, datetime):
        day = day.date()
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def shift_week(day: date, weeks: int) -> date:
    return day + timedelta(weeks=weeks)


def format_week_range(day: date) -> str:
    start, end = week_bounds(day)
    return f"{start.strftime('%Y/%m/%d')} - {end.strftime('%Y/%m/%d')}"


class WeeklyScheduleLoader:
    """
    Loads the lectures of one stage for one week.

    Only the most recently requested (stage, week) may replace the loaded
    snapshot; a response for a superseded request is dropped, never merged.
    """

    def __init__(
        self,
        client: TimetableApiClient,
        parser: Optional[LectureRecordParser] = None
    ):
        self.client = client
        self.parser = parser or LectureRecordParser()
        self.key: Optional[Tuple[Any, date]] = None
        self.lectures: List[LectureEvent] = []
        self.notice: Optional[str] = None
        self._sequence = 0

    def fetch(self, stage_id: Any, week_of: date) -> ApiResult:
        """
        Fetch and parse one week synchronously.

        Returns:
            ApiResult whose data is the list of LectureEvent objects; on
            failure data is an empty list and error holds a user notice
        """
        start, end = week_bounds(week_of)
        try:
            raw_records = self.client.list_lectures(stage_id, start, end)
        except ApiError as e:
            logger.error(
                f"Failed to fetch lectures for stage {stage_id!r}, "
                f"week {start.isoformat()}: {e}"
            )
            return ApiResult(ok=False, data=[], error=FETCH_FAILED_NOTICE, status_code=e.status_code)

        lectures = self.parser.parse_lectures(raw_records)
        return ApiResult(ok=True, data=lectures)

    async def load(self, stage_id: Any, week_of: date) -> Optional[ApiResult]:
        """
        Fetch a week without blocking the event loop and apply it if still current.

        Returns:
            The applied ApiResult, or None when a newer request superseded this one
        """
        week_start, _ = week_bounds(week_of)
        key = (stage_id, week_start)

        self._sequence += 1
        sequence = self._sequence
        logger.info(f"Loading lectures for stage {stage_id!r}, week of {week_start.isoformat()}")

        result = await asyncio.to_thread(self.fetch, stage_id, week_of)

        if sequence != self._sequence:
            logger.debug(f"Discarding superseded lecture response for {key!r}")
            return None

        self.key = key
        self.lectures = result.data
        self.notice = result.error
        return result
