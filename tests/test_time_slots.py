"""Unit tests for time slot generation."""
from datetime import time

import pytest

from timetable.time_slots import format_minutes, generate_time_slots, to_minutes


class TestGenerateTimeSlots:
    """Test cases for generate_time_slots."""

    def test_end_boundary_is_inclusive(self):
        """Test that an end hit exactly by the interval is emitted."""
        slots = generate_time_slots("08:30", "16:30", 60)

        assert slots == [
            "08:30", "09:30", "10:30", "11:30", "12:30",
            "13:30", "14:30", "15:30", "16:30",
        ]

    def test_end_not_on_interval_is_not_emitted(self):
        """Test that the last label stays below an end not on the grid."""
        slots = generate_time_slots("08:00", "10:45", 60)

        assert slots == ["08:00", "09:00", "10:00"]

    def test_single_slot_when_start_equals_end(self):
        assert generate_time_slots("09:00", "09:00", 30) == ["09:00"]

    def test_start_after_end_yields_nothing(self):
        assert generate_time_slots("10:00", "09:00", 30) == []

    @pytest.mark.parametrize("interval", [0, -15])
    def test_non_positive_interval_yields_nothing(self, interval):
        assert generate_time_slots("08:00", "12:00", interval) == []

    @pytest.mark.parametrize("start,end", [
        ("", "12:00"),
        ("8am", "12:00"),
        ("08:00", "25:00"),
        (None, "12:00"),
        ("0²:00", "10:00"),
        (["08:00"], "10:00"),
        ("08:00", {"end": "10:00"}),
    ])
    def test_unparseable_bounds_yield_nothing(self, start, end):
        assert generate_time_slots(start, end, 60) == []

    def test_unhashable_interval_yields_nothing(self):
        assert generate_time_slots("08:00", "10:00", [60]) == []

    def test_accepts_time_objects(self):
        assert generate_time_slots(time(8, 0), time(9, 0), 30) == ["08:00", "08:30", "09:00"]

    def test_labels_are_zero_padded(self):
        assert generate_time_slots("7:05", "8:05", 30) == ["07:05", "07:35", "08:05"]

    def test_returns_fresh_list_each_call(self):
        """Test that callers cannot corrupt the memoized result."""
        first = generate_time_slots("08:00", "09:00", 60)
        first.append("99:99")

        assert generate_time_slots("08:00", "09:00", 60) == ["08:00", "09:00"]

    def test_helpers(self):
        assert to_minutes("08:30") == 510
        assert to_minutes("08:30:00") == 510
        assert to_minutes("x") is None
        assert to_minutes("0²:00") is None
        assert format_minutes(510) == "08:30"
