"""Request handlers for the lecture timetable admin data layer."""
import json
import logging
import os
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from remote.timetable_client import ApiError, TimetableApiClient
from lecturers.compose_form import ComposeLectureForm, DraftValidationError
from lecturers.paginator import CursorPaginator
from lecturers.selection_session import make_lecturer_lookup
from timetable.aggregator import SlotSettings, build_schedule_view
from timetable.models import LectureEvent, LecturerSummary, PageWindow, ScheduleView
from timetable.record_parser import LectureRecordParser
from timetable.weekly_loader import WeeklyScheduleLoader, format_week_range


DEFAULT_API_URL = TimetableApiClient.DEFAULT_BASE_URL


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class AdminConfig:
    """Settings read from the environment."""
    api_url: str = DEFAULT_API_URL
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    max_retries: int = 3
    slot_start: str = '08:30'
    slot_end: str = '20:30'
    slot_interval_minutes: int = 60
    print_slot_start: Optional[str] = None
    print_slot_end: Optional[str] = None
    lecturer_page_size: int = 5
    search_debounce_ms: int = 350

    @property
    def slot_settings(self) -> SlotSettings:
        return SlotSettings(
            start=self.slot_start,
            end=self.slot_end,
            interval_minutes=self.slot_interval_minutes,
            print_start=self.print_slot_start,
            print_end=self.print_slot_end,
        )


def load_config() -> AdminConfig:
    """Read configuration from environment variables."""
    return AdminConfig(
        api_url=os.environ.get('TIMETABLE_API_URL', DEFAULT_API_URL),
        log_level=os.environ.get('LOG_LEVEL', 'INFO'),
        timeout_seconds=_env_int('TIMEOUT_SECONDS', 30),
        max_retries=_env_int('MAX_RETRIES', 3),
        slot_start=os.environ.get('SLOT_START', '08:30'),
        slot_end=os.environ.get('SLOT_END', '20:30'),
        slot_interval_minutes=_env_int('SLOT_INTERVAL_MINUTES', 60),
        print_slot_start=os.environ.get('PRINT_SLOT_START') or None,
        print_slot_end=os.environ.get('PRINT_SLOT_END') or None,
        lecturer_page_size=_env_int('LECTURER_PAGE_SIZE', 5),
        search_debounce_ms=_env_int('SEARCH_DEBOUNCE_MS', 350),
    )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid integer for {name}: {raw!r}, using {default}"
        )
        return default


def _make_client(config: AdminConfig) -> TimetableApiClient:
    return TimetableApiClient(
        base_url=config.api_url,
        timeout=config.timeout_seconds,
        max_retries=config.max_retries
    )


def _response(status_code: int, body: Dict[str, Any], started: float) -> Dict[str, Any]:
    body['duration_seconds'] = round(time.time() - started, 2)
    return {'statusCode': status_code, 'body': json.dumps(body)}


def schedule_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Build the weekly schedule view for one stage.

    Args:
        event: Request with stage_id, optional week_of (YYYY-MM-DD),
            query and stage_label
        context: Unused invocation context

    Returns:
        Response dict with statusCode and the serialized schedule view
    """
    config = load_config()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)
    start_time = time.time()

    stage_id = event.get('stage_id')
    if stage_id in (None, ''):
        return _response(400, {'message': 'stage_id is required'}, start_time)

    try:
        week_of = _parse_date(event.get('week_of'))
    except ValueError as e:
        return _response(400, {'message': f'Invalid week_of: {e}'}, start_time)

    query = event.get('query') or ''
    stage_label = event.get('stage_label') or str(stage_id)
    logger.info(
        "Schedule request started",
        extra={'stage_id': stage_id, 'week_of': week_of.isoformat(), 'query': query}
    )

    try:
        loader = WeeklyScheduleLoader(_make_client(config), LectureRecordParser())
        result = loader.fetch(stage_id, week_of)

        view = build_schedule_view(
            result.data,
            query=query,
            settings=config.slot_settings,
            title=f"Lecture timetable {stage_label}",
            week_range=format_week_range(week_of),
        )
    except Exception as e:
        logger.error(
            f"Schedule request failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Failed to build schedule',
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)

    body = serialize_schedule_view(view)
    body['stage_id'] = stage_id
    body['notice'] = result.error

    logger.info(
        f"Schedule request completed: {view.filtered_events} of {view.total_events} lectures shown"
    )
    return _response(200 if result.ok else 502, body, start_time)


def lecturers_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Return one page of the lecturer directory.

    Args:
        event: Request with optional limit, cursor and search
        context: Unused invocation context
    """
    config = load_config()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)
    start_time = time.time()

    raw_limit = event.get('limit')
    search = event.get('search') or ''
    logger.info(
        "Lecturer page request started",
        extra={'limit': raw_limit, 'cursor': event.get('cursor'), 'search': search}
    )

    try:
        limit = config.lecturer_page_size if raw_limit is None else int(raw_limit)
        paginator = CursorPaginator(_make_client(config), limit=limit, search=search)
        window = paginator.fetch_page(limit, event.get('cursor'))
    except ValueError as e:
        logger.warning(f"Rejected lecturer page request: {e}")
        return _response(400, {'message': str(e)}, start_time)
    except ApiError as e:
        logger.error(f"Failed to fetch lecturers: {e}", extra={'error_type': type(e).__name__})
        return _response(502, {
            'message': 'Failed to fetch lecturers',
            'error': str(e),
            'items': [],
        }, start_time)

    logger.info(
        f"Lecturer page request completed: {len(window.items)} lecturers, "
        f"has_next={window.has_next}, has_prev={window.has_prev}"
    )
    return _response(200, serialize_page_window(window), start_time)


def lecture_create_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Validate and submit a new lecture.

    Args:
        event: Request with course_name, stage_id, room_id, start_time,
            end_time, lecturer_ids and optional day_of_week
        context: Unused invocation context

    Returns:
        201 on success, 400 on local validation errors, the server's status
        and message on conflicts, 502 when the server is unreachable
    """
    config = load_config()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)
    start_time = time.time()
    logger.info("Lecture create request started", extra={'course_name': event.get('course_name')})

    client = _make_client(config)
    form = ComposeLectureForm(
        lookup=make_lecturer_lookup(client, limit=config.lecturer_page_size),
        debounce_seconds=config.search_debounce_ms / 1000
    )
    lecturer_ids = [
        lecturer_id for lecturer_id in (event.get('lecturer_ids') or [])
        if lecturer_id not in (None, '')
    ]
    for index, lecturer_id in enumerate(lecturer_ids):
        if index > 0:
            form.add_row()
        form.select(index, LecturerSummary(id=lecturer_id, name=''))

    try:
        draft = form.build_draft(
            course_name=event.get('course_name'),
            stage_id=event.get('stage_id'),
            room_id=event.get('room_id'),
            start_time=event.get('start_time'),
            end_time=event.get('end_time'),
            day_of_week=event.get('day_of_week'),
        )
    except DraftValidationError as e:
        return _response(400, {'message': str(e)}, start_time)

    result = form.submit(client, draft)
    if result.ok:
        logger.info(f"Lecture '{draft.course_name}' created")
        return _response(201, {'message': 'Lecture added successfully', 'data': result.data}, start_time)

    status = result.status_code if result.status_code else 502
    logger.warning(f"Lecture create request rejected with status {status}: {result.error}")
    return _response(status, {'message': result.error}, start_time)


def serialize_lecture(lecture: LectureEvent) -> Dict[str, Any]:
    return {
        'id': lecture.id,
        'course_name': lecture.course_name,
        'day_of_week': lecture.day_of_week,
        'start_time': lecture.start_time,
        'end_time': lecture.end_time,
        'room': lecture.room.room_name if lecture.room else None,
        'lecturers': [lecturer.name for lecturer in lecture.lecturers],
    }


def serialize_schedule_view(view: ScheduleView) -> Dict[str, Any]:
    """Turn a ScheduleView into JSON-friendly dictionaries."""
    layout = view.print_layout
    return {
        'query': view.query,
        'week_range': layout.week_range,
        'days': list(view.day_labels),
        'total_events': view.total_events,
        'filtered_events': view.filtered_events,
        'can_print': view.can_print,
        'buckets': {
            day: [serialize_lecture(lecture) for lecture in lectures]
            for day, lectures in view.buckets.items()
        },
        'timeline': {
            'slots': view.slots,
            'cells': _serialize_matrix(view.matrix),
        },
        'print': {
            'title': layout.title,
            'week_range': layout.week_range,
            'slots': layout.slots,
            'cells': _serialize_matrix(layout.matrix),
        },
    }


def serialize_page_window(window: PageWindow) -> Dict[str, Any]:
    return {
        'items': [
            {
                'id': item.id,
                'name': item.name,
                'day_offs': list(item.day_offs),
                'available_days': item.available_days(),
            }
            for item in window.items
        ],
        'next': window.next,
        'prev': window.prev,
        'limit': window.limit,
        'has_next': window.has_next,
        'has_prev': window.has_prev,
    }


def _serialize_matrix(matrix) -> Dict[str, Dict[str, List[Any]]]:
    return {
        day: {slot: [lecture.id for lecture in lectures] for slot, lectures in row.items()}
        for day, row in matrix.items()
    }


def _parse_date(value: Any) -> date:
    if value in (None, ''):
        return date.today()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value), '%Y-%m-%d').date()
