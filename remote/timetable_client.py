"""HTTP client for the timetable server's REST API."""
import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from timetable.models import ApiResult
from timetable.record_parser import unwrap_collection

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A read request failed at the transport or HTTP level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TimetableApiClient:
    """Client for the lecture timetable server."""

    DEFAULT_BASE_URL = "http://localhost:3000/api"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 30,
        max_retries: int = 3,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: Server root, e.g. "https://host/api"
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts for retried reads (default: 3)
            session: Optional requests session to reuse
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_lectures(self, stage_id: Any, start_date: date, end_date: date) -> List[dict]:
        """
        Fetch the raw lecture records of one stage for a date range.

        Args:
            stage_id: Stage identifier
            start_date: First day of the week
            end_date: Last day of the week

        Returns:
            List of raw lecture dictionaries

        Raises:
            ApiError: If all retry attempts fail
        """
        params = {
            'stage_id': stage_id,
            'start_date': start_date.strftime('%Y-%m-%d'),
            'end_date': end_date.strftime('%Y-%m-%d'),
        }
        payload = self._get_json('/lectures', params=params, retries=self.max_retries)
        return unwrap_collection(payload)

    def list_lecturers(
        self,
        search: str = '',
        limit: int = 5,
        next_cursor: Optional[Any] = None
    ) -> Dict[str, Any]:
        """
        Fetch one page of lecturers.

        Search-as-you-type and paging are not retried; the next keystroke or
        navigation issues a fresh request.

        Returns:
            Dictionary with 'data', 'next' and 'prev' keys
        """
        params: Dict[str, Any] = {'limit': limit}
        if search:
            params['search'] = search
        if next_cursor is not None:
            params['next'] = next_cursor

        payload = self._get_json('/lecturers', params=params, retries=1)
        if isinstance(payload, dict):
            return {
                'data': unwrap_collection(payload),
                'next': payload.get('next'),
                'prev': payload.get('prev'),
            }
        return {'data': unwrap_collection(payload), 'next': None, 'prev': None}

    def list_rooms(self) -> List[dict]:
        return unwrap_collection(self._get_json('/rooms', retries=self.max_retries))

    def list_stages(self) -> List[dict]:
        return unwrap_collection(self._get_json('/stages', retries=self.max_retries))

    # ------------------------------------------------------------------
    # Mutations (never retried)
    # ------------------------------------------------------------------

    def create_lecture(self, payload: Dict[str, Any]) -> ApiResult:
        return self._send('POST', '/lectures', json=payload)

    def create_lecturer(self, name: str, day_offs: Optional[List[str]] = None) -> ApiResult:
        return self._send('POST', '/lecturers', json={'name': name, 'day_offs': list(day_offs or [])})

    def create_room(self, room_name: str) -> ApiResult:
        return self._send('POST', '/rooms', json={'room_name': room_name})

    def delete_lecture(self, lecture_id: Any) -> ApiResult:
        return self._send('DELETE', f'/lectures/{lecture_id}')

    def delete_lecturer(self, lecturer_id: Any) -> ApiResult:
        return self._send('DELETE', f'/lecturers/{lecturer_id}')

    def delete_room(self, room_id: Any) -> ApiResult:
        return self._send('DELETE', f'/rooms/{room_id}')

    def update_day_offs(self, lecturer_id: Any, day_offs: List[str]) -> ApiResult:
        return self._send(
            'PUT',
            f'/lecturers/{lecturer_id}/day-offs',
            json={'day_offs': list(day_offs)}
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get_json(self, path: str, params: Optional[dict] = None, retries: int = 1) -> Any:
        """
        GET a JSON document with retry logic.

        Args:
            path: Path below base_url
            params: Query parameters
            retries: Total number of attempts

        Returns:
            Decoded JSON body

        Raises:
            ApiError: If all retry attempts fail
        """
        url = f"{self.base_url}{path}"
        base_delay = 1  # seconds

        for attempt in range(retries):
            try:
                logger.info(f"GET {path} (attempt {attempt + 1}/{retries})")
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except (requests.RequestException, ValueError) as e:
                if attempt < retries - 1:
                    # Calculate exponential backoff delay
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"GET {path} failed (attempt {attempt + 1}/{retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(f"GET {path} failed after {retries} attempt(s): {e}")
                    status = getattr(getattr(e, 'response', None), 'status_code', None)
                    raise ApiError(str(e), status_code=status) from e

    def _send(self, method: str, path: str, json: Optional[dict] = None) -> ApiResult:
        """
        Issue a mutation and turn the outcome into an ApiResult.

        Conflict and validation errors carry the server's message verbatim.
        """
        url = f"{self.base_url}{path}"
        logger.info(f"{method} {path}")

        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            return ApiResult(ok=False, error=f"Network error: {e}")

        body = _decode_body(response)
        if response.ok:
            return ApiResult(ok=True, data=body, status_code=response.status_code)

        message = _error_message(body) or f"Request failed with status {response.status_code}"
        logger.warning(f"{method} {path} rejected ({response.status_code}): {message}")
        return ApiResult(ok=False, data=body, error=message, status_code=response.status_code)


def _decode_body(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get('message') or body.get('error')
        if isinstance(message, str) and message:
            return message
    if isinstance(body, str) and body.strip():
        return body.strip()
    return None
