"""Unit tests for CursorPaginator."""
from unittest.mock import Mock

import pytest

from lecturers.paginator import CursorPaginator
from remote.timetable_client import ApiError


class FakeLecturerDirectory:
    """In-memory stand-in for GET /lecturers with server-owned offset cursors."""

    def __init__(self, count):
        self.records = [{'id': i, 'name': f'Lecturer {i:02d}'} for i in range(count)]
        self.calls = []

    def list_lecturers(self, search='', limit=5, next_cursor=None):
        self.calls.append({'search': search, 'limit': limit, 'next_cursor': next_cursor})
        records = [r for r in self.records if search.lower() in r['name'].lower()]
        offset = int(next_cursor or 0)
        page = records[offset:offset + limit]
        return {
            'data': page,
            'next': offset + limit if offset + limit < len(records) else None,
            'prev': max(offset - limit, 0) if offset > 0 else None,
        }


@pytest.fixture
def directory():
    return FakeLecturerDirectory(12)


class TestFetchPage:
    """Test cases for the stateless fetch_page contract."""

    def test_round_trip_through_prev(self, directory):
        paginator = CursorPaginator(directory)

        p1 = paginator.fetch_page(5)
        p2 = paginator.fetch_page(5, p1.next)
        back = paginator.fetch_page(5, p2.prev)

        assert back == p1
        assert [item.id for item in p2.items] == [5, 6, 7, 8, 9]

    def test_first_and_last_page_flags(self, directory):
        paginator = CursorPaginator(directory)

        first = paginator.fetch_page(5)
        last = paginator.fetch_page(5, 10)

        assert not first.has_prev and first.has_next
        assert last.has_prev and not last.has_next
        assert [item.id for item in last.items] == [10, 11]

    def test_cursor_is_passed_verbatim(self):
        client = Mock()
        client.list_lecturers.return_value = {'data': [], 'next': 'opaque-2', 'prev': None}
        paginator = CursorPaginator(client)

        window = paginator.fetch_page(5, 'opaque-1')

        client.list_lecturers.assert_called_once_with(search='', limit=5, next_cursor='opaque-1')
        assert window.next == 'opaque-2'

    @pytest.mark.parametrize("limit", [0, -1, 2.5, True, '5'])
    def test_rejects_invalid_limit(self, directory, limit):
        paginator = CursorPaginator(directory)

        with pytest.raises(ValueError):
            paginator.fetch_page(limit)


class TestNavigation:
    """Test cases for stateful navigation."""

    def test_walks_forward_and_back(self, directory):
        paginator = CursorPaginator(directory, limit=5)

        paginator.first_page()
        paginator.next_page()
        third = paginator.next_page()

        assert [item.id for item in third.items] == [10, 11]
        assert not paginator.can_go_next
        assert paginator.next_page() is None

        second = paginator.prev_page()
        assert [item.id for item in second.items] == [5, 6, 7, 8, 9]

    def test_prev_on_first_page_is_noop(self, directory):
        paginator = CursorPaginator(directory)
        paginator.first_page()

        assert not paginator.can_go_prev
        assert paginator.prev_page() is None

    def test_page_size_change_restarts_from_first_page(self, directory):
        paginator = CursorPaginator(directory, limit=5)
        paginator.first_page()
        paginator.next_page()

        window = paginator.set_page_size(10)

        assert directory.calls[-1] == {'search': '', 'limit': 10, 'next_cursor': None}
        assert [item.id for item in window.items] == list(range(10))
        assert paginator.cursor is None

    def test_every_navigation_is_a_fresh_request(self, directory):
        paginator = CursorPaginator(directory)
        paginator.first_page()
        paginator.next_page()
        paginator.prev_page()

        assert len(directory.calls) == 3

    def test_refresh_refetches_current_position(self, directory):
        paginator = CursorPaginator(directory)
        paginator.first_page()
        paginator.next_page()
        directory.records.pop(5)

        window = paginator.refresh()

        assert directory.calls[-1]['next_cursor'] == 5
        assert [item.id for item in window.items] == [6, 7, 8, 9, 10]

    def test_search_restarts_from_first_page(self, directory):
        paginator = CursorPaginator(directory)
        paginator.first_page()
        paginator.next_page()

        window = paginator.set_search('lecturer 1')

        assert [item.id for item in window.items] == [10, 11]
        assert directory.calls[-1]['next_cursor'] is None

    def test_failed_navigation_keeps_previous_window(self, directory):
        paginator = CursorPaginator(directory)
        first = paginator.first_page()
        directory.list_lecturers = Mock(side_effect=ApiError('down'))

        with pytest.raises(ApiError):
            paginator.next_page()

        assert paginator.window is first
        assert paginator.cursor is None
