"""Cursor-based pagination over the lecturer directory."""
import logging
from typing import Any, Optional

from remote.timetable_client import TimetableApiClient
from timetable.models import PageWindow
from timetable.record_parser import LectureRecordParser

logger = logging.getLogger(__name__)


class CursorPaginator:
    """
    Pager for GET /lecturers.

    Cursors are opaque: the paginator only hands back the next/prev values
    the server issued and never derives an offset from the page size. Pages
    are not cached because other editors may change the directory between
    navigations.
    """

    DEFAULT_LIMIT = 5

    def __init__(
        self,
        client: TimetableApiClient,
        limit: int = DEFAULT_LIMIT,
        search: str = '',
        parser: Optional[LectureRecordParser] = None
    ):
        self.client = client
        self.limit = _validate_limit(limit)
        self.search = search
        self.parser = parser or LectureRecordParser()
        self.cursor: Optional[Any] = None
        self.window: Optional[PageWindow] = None

    def fetch_page(self, limit: int, cursor: Optional[Any] = None) -> PageWindow:
        """
        Fetch one page.

        Args:
            limit: Page size
            cursor: Server-issued next/prev value, None for the first page

        Returns:
            PageWindow for the requested position

        Raises:
            ApiError: If the request fails
        """
        limit = _validate_limit(limit)
        payload = self.client.list_lecturers(search=self.search, limit=limit, next_cursor=cursor)
        window = PageWindow(
            items=tuple(self.parser.parse_lecturers(payload.get('data'))),
            next=payload.get('next'),
            prev=payload.get('prev'),
            limit=limit,
        )
        logger.info(
            f"Fetched {len(window.items)} lecturers (limit={limit}, cursor={cursor!r}, "
            f"next={window.next!r}, prev={window.prev!r})"
        )
        return window

    def first_page(self) -> PageWindow:
        return self._navigate(None)

    def next_page(self) -> Optional[PageWindow]:
        """Move forward; returns None when already on the last page."""
        if self.window is None:
            return self.first_page()
        if not self.window.has_next:
            return None
        return self._navigate(self.window.next)

    def prev_page(self) -> Optional[PageWindow]:
        """Move back; returns None when already on the first page."""
        if self.window is None:
            return self.first_page()
        if not self.window.has_prev:
            return None
        return self._navigate(self.window.prev)

    def refresh(self) -> PageWindow:
        """Re-fetch the current position, e.g. after a delete or edit."""
        return self._navigate(self.cursor)

    def set_page_size(self, limit: int) -> PageWindow:
        """Change the page size; outstanding cursors are invalid, so restart."""
        self.limit = _validate_limit(limit)
        return self._navigate(None)

    def set_search(self, search: str) -> PageWindow:
        self.search = search or ''
        return self._navigate(None)

    @property
    def can_go_next(self) -> bool:
        return self.window is not None and self.window.has_next

    @property
    def can_go_prev(self) -> bool:
        return self.window is not None and self.window.has_prev

    def _navigate(self, cursor: Optional[Any]) -> PageWindow:
        # The previous window stays in place if fetch_page raises.
        window = self.fetch_page(self.limit, cursor)
        self.cursor = cursor
        self.window = window
        return window


def _validate_limit(limit: Any) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValueError(f"Page size must be a positive integer, got {limit!r}")
    return limit
