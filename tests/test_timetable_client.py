"""Unit tests for TimetableApiClient."""
import json
from datetime import date
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
import responses
from requests.exceptions import ConnectionError, Timeout

from remote.timetable_client import ApiError, TimetableApiClient

BASE_URL = "http://timetable.test/api"


@pytest.fixture
def client():
    return TimetableApiClient(base_url=BASE_URL + "/", timeout=5, max_retries=3)


@pytest.fixture(autouse=True)
def no_backoff():
    """Skip the exponential backoff sleeps."""
    with patch('remote.timetable_client.time.sleep') as mock_sleep:
        yield mock_sleep


def query_of(call):
    return parse_qs(urlparse(call.request.url).query)


class TestReads:
    """Test cases for read endpoints."""

    @responses.activate
    def test_list_lectures_sends_week_range(self, client):
        responses.add(
            responses.GET,
            f"{BASE_URL}/lectures",
            json={'data': [{'id': 1, 'course_name': 'AI'}]},
            status=200
        )

        records = client.list_lectures('stage1', date(2024, 3, 3), date(2024, 3, 9))

        assert records == [{'id': 1, 'course_name': 'AI'}]
        assert query_of(responses.calls[0]) == {
            'stage_id': ['stage1'],
            'start_date': ['2024-03-03'],
            'end_date': ['2024-03-09'],
        }

    @responses.activate
    def test_list_lectures_accepts_bare_array(self, client):
        responses.add(responses.GET, f"{BASE_URL}/lectures", json=[{'id': 2}], status=200)

        assert client.list_lectures(1, date(2024, 3, 3), date(2024, 3, 9)) == [{'id': 2}]

    @responses.activate
    def test_list_lectures_retries_then_succeeds(self, client, no_backoff):
        responses.add(responses.GET, f"{BASE_URL}/lectures", body="Server Error", status=500)
        responses.add(responses.GET, f"{BASE_URL}/lectures", body="Server Error", status=500)
        responses.add(responses.GET, f"{BASE_URL}/lectures", json={'data': []}, status=200)

        assert client.list_lectures(1, date(2024, 3, 3), date(2024, 3, 9)) == []
        assert len(responses.calls) == 3
        assert [c.args[0] for c in no_backoff.call_args_list] == [1, 2]

    @responses.activate
    def test_list_lectures_raises_after_all_retries(self, client):
        for _ in range(3):
            responses.add(responses.GET, f"{BASE_URL}/lectures", body="Bad Gateway", status=502)

        with pytest.raises(ApiError) as excinfo:
            client.list_lectures(1, date(2024, 3, 3), date(2024, 3, 9))

        assert excinfo.value.status_code == 502
        assert len(responses.calls) == 3

    @responses.activate
    def test_timeout_is_wrapped(self, client):
        for _ in range(3):
            responses.add(responses.GET, f"{BASE_URL}/rooms", body=Timeout("Request timed out"))

        with pytest.raises(ApiError):
            client.list_rooms()

    @responses.activate
    def test_list_lecturers_is_not_retried(self, client):
        responses.add(responses.GET, f"{BASE_URL}/lecturers", body=ConnectionError("down"))

        with pytest.raises(ApiError):
            client.list_lecturers(search='ali', limit=5)

        assert len(responses.calls) == 1

    @responses.activate
    def test_list_lecturers_threads_cursor(self, client):
        responses.add(
            responses.GET,
            f"{BASE_URL}/lecturers",
            json={'data': [{'id': 1, 'name': 'Ali'}], 'next': 10, 'prev': 0},
            status=200
        )

        page = client.list_lecturers(search='al', limit=5, next_cursor=5)

        assert page == {'data': [{'id': 1, 'name': 'Ali'}], 'next': 10, 'prev': 0}
        assert query_of(responses.calls[0]) == {'limit': ['5'], 'search': ['al'], 'next': ['5']}

    @responses.activate
    def test_list_lecturers_omits_empty_search_and_cursor(self, client):
        responses.add(responses.GET, f"{BASE_URL}/lecturers", json=[], status=200)

        page = client.list_lecturers(limit=5)

        assert page == {'data': [], 'next': None, 'prev': None}
        assert query_of(responses.calls[0]) == {'limit': ['5']}

    @responses.activate
    def test_list_stages(self, client):
        responses.add(responses.GET, f"{BASE_URL}/stages", json=[{'id': 1, 'name': 'Stage 1'}], status=200)

        assert client.list_stages() == [{'id': 1, 'name': 'Stage 1'}]


class TestMutations:
    """Test cases for mutation endpoints."""

    @responses.activate
    def test_create_lecture_success(self, client):
        responses.add(responses.POST, f"{BASE_URL}/lectures", json={'id': 9}, status=201)
        payload = {'course_name': 'AI', 'start_time': '09:00', 'end_time': '10:00'}

        result = client.create_lecture(payload)

        assert result.ok
        assert result.data == {'id': 9}
        assert result.status_code == 201
        assert json.loads(responses.calls[0].request.body) == payload

    @responses.activate
    def test_conflict_message_is_passed_through(self, client):
        responses.add(
            responses.POST,
            f"{BASE_URL}/lectures",
            json={'message': 'Room Hall A is already booked at 09:00'},
            status=409
        )

        result = client.create_lecture({'course_name': 'AI'})

        assert not result.ok
        assert result.status_code == 409
        assert result.error == 'Room Hall A is already booked at 09:00'

    @responses.activate
    def test_mutation_is_not_retried(self, client):
        responses.add(responses.DELETE, f"{BASE_URL}/rooms/4", body="Server Error", status=500)

        result = client.delete_room(4)

        assert not result.ok
        assert result.error == 'Server Error'
        assert len(responses.calls) == 1

    @responses.activate
    def test_network_failure_becomes_failed_result(self, client):
        responses.add(responses.DELETE, f"{BASE_URL}/lecturers/3", body=ConnectionError("down"))

        result = client.delete_lecturer(3)

        assert not result.ok
        assert result.status_code is None
        assert 'down' in result.error

    @responses.activate
    def test_update_day_offs(self, client):
        responses.add(responses.PUT, f"{BASE_URL}/lecturers/3/day-offs", status=204)

        result = client.update_day_offs(3, ['Monday'])

        assert result.ok
        assert result.data is None
        assert json.loads(responses.calls[0].request.body) == {'day_offs': ['Monday']}

    @responses.activate
    def test_create_lecturer_and_room(self, client):
        responses.add(responses.POST, f"{BASE_URL}/lecturers", json={'id': 1}, status=201)
        responses.add(responses.POST, f"{BASE_URL}/rooms", json={'id': 2}, status=201)

        assert client.create_lecturer('Rana', ['Sunday']).ok
        assert client.create_room('Hall D').ok
        assert json.loads(responses.calls[0].request.body) == {'name': 'Rana', 'day_offs': ['Sunday']}
        assert json.loads(responses.calls[1].request.body) == {'room_name': 'Hall D'}

    @responses.activate
    def test_delete_lecture(self, client):
        responses.add(responses.DELETE, f"{BASE_URL}/lectures/12", status=200)

        assert client.delete_lecture(12).ok
