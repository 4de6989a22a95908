"""Debounced, cancellable lecturer lookups for one compose-form row."""
import asyncio
import logging
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
)

from remote.timetable_client import TimetableApiClient
from timetable.models import LecturerSummary
from timetable.record_parser import LectureRecordParser

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[List[LecturerSummary]]]

DEFAULT_DEBOUNCE_SECONDS = 0.35


class SessionState(Enum):
    IDLE = 'idle'
    PENDING = 'pending'
    INFLIGHT = 'inflight'


class SelectionCache:
    """Lecturers chosen during one compose session, keyed by id."""

    def __init__(self):
        self._items: Dict[Any, LecturerSummary] = {}

    def add(self, item: LecturerSummary) -> None:
        # Append-only: the first copy of a lecturer stays.
        self._items.setdefault(item.id, item)

    def get(self, item_id: Any) -> Optional[LecturerSummary]:
        return self._items.get(item_id)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, item_id: Any) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)


def make_lecturer_lookup(
    client: TimetableApiClient,
    limit: int = 5,
    parser: Optional[LectureRecordParser] = None
) -> Lookup:
    """
    Build a lookup coroutine over GET /lecturers.

    The blocking request runs in a worker thread; cancelling the awaiting
    task drops the result without aborting the transport.
    """
    parser = parser or LectureRecordParser()

    async def lookup(query: str) -> List[LecturerSummary]:
        payload = await asyncio.to_thread(
            client.list_lecturers, search=query.strip(), limit=limit
        )
        return parser.parse_lecturers(payload.get('data'))

    return lookup


def dedupe_by_id(*groups: Iterable[LecturerSummary]) -> List[LecturerSummary]:
    """Merge groups in order; the first occurrence of an id wins."""
    seen = set()
    merged = []
    for group in groups:
        for item in group:
            if item.id in seen:
                continue
            seen.add(item.id)
            merged.append(item)
    return merged


class SelectionSearchSession:
    """
    Lecturer autocomplete state for a single row.

    Keystrokes re-arm a debounce timer. When it fires the row issues a
    lookup and cancels its own previous one; every request carries a
    per-row sequence number and only the latest may update the row, so
    late responses from superseded requests are dropped. Rows never share
    timers, tasks or sequence numbers.
    """

    def __init__(
        self,
        lookup: Lookup,
        cache: SelectionCache,
        row_id: Any = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        selected_ids: Optional[Callable[[], Iterable[Any]]] = None
    ):
        self.lookup = lookup
        self.cache = cache
        self.row_id = row_id
        self.debounce_seconds = debounce_seconds
        self.query = ''
        self.results: List[LecturerSummary] = []
        self.selected: Optional[LecturerSummary] = None
        self.state = SessionState.IDLE
        self.last_error: Optional[str] = None
        self.closed = False
        self._selected_ids = selected_ids
        self._sequence = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def sequence(self) -> int:
        return self._sequence

    def on_query_change(self, text: str) -> None:
        """Record the input text and (re)arm the debounce timer."""
        if self.closed:
            logger.debug(f"Ignoring query for closed row {self.row_id!r}")
            return

        self.query = text or ''
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)
        if self.state is SessionState.IDLE:
            self.state = SessionState.PENDING

    def refresh(self) -> None:
        """Look up the current query right away, skipping the debounce."""
        if self.closed:
            return
        self._cancel_timer()
        self._issue(self.query)

    def on_select(self, item: Optional[LecturerSummary]) -> None:
        """Commit the row's choice; chosen lecturers go into the shared cache."""
        self.selected = item
        if item is not None:
            self.cache.add(item)

    def current_options(self) -> List[LecturerSummary]:
        """Cached selections first, then the latest results, deduped by id."""
        if self._selected_ids is not None:
            ids = list(self._selected_ids())
        else:
            ids = [self.selected.id] if self.selected is not None else []

        cached = [self.cache.get(item_id) for item_id in ids if item_id in self.cache]
        return dedupe_by_id(cached, self.results)

    def close(self) -> None:
        """Tear the row down; anything still in flight is discarded."""
        self._cancel_timer()
        self._cancel_task()
        self._sequence += 1
        self.state = SessionState.IDLE
        self.closed = True

    async def settle(self) -> None:
        """
        Wait until no timer is armed and no lookup is in flight.

        The current task is looked up again on every pass, so a superseded
        lookup that never finishes cannot keep this waiting.
        """
        poll = max(self.debounce_seconds / 4, 0.001)
        while self.state is not SessionState.IDLE:
            task = self._task
            if self.state is SessionState.INFLIGHT and task is not None and not task.done():
                await asyncio.wait({task}, timeout=poll)
            else:
                await asyncio.sleep(poll)

    def _on_timer(self) -> None:
        self._timer = None
        self._issue(self.query)

    def _issue(self, query: str) -> None:
        self._cancel_task()
        self._sequence += 1
        sequence = self._sequence
        self.state = SessionState.INFLIGHT
        logger.debug(f"Row {self.row_id!r}: lookup #{sequence} for {query!r}")
        self._task = asyncio.get_running_loop().create_task(self._run(query, sequence))

    async def _run(self, query: str, sequence: int) -> None:
        error = None
        try:
            results = await self.lookup(query)
        except asyncio.CancelledError:
            logger.debug(f"Row {self.row_id!r}: lookup #{sequence} cancelled")
            raise
        except Exception as e:
            logger.warning(f"Row {self.row_id!r}: lecturer lookup for {query!r} failed: {e}")
            results = []
            error = 'Failed to fetch lecturers'

        if sequence != self._sequence:
            logger.debug(f"Row {self.row_id!r}: dropping stale response #{sequence}")
            return

        self.results = list(results)
        self.last_error = error
        self._task = None
        self.state = SessionState.PENDING if self._timer is not None else SessionState.IDLE

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
