"""Tests for the occurrence projector and day aggregator."""

import pytest
from datetime import date

from pawplanner.calendar import (
    count_by_day,
    days_with_occurrences,
    group_by_day,
    is_active_on,
    week_strip,
)
from pawplanner.models import EventCategory, EventRecord, RepeatTag


def make_record(record_id: str, day: date, at: str, repeat=None) -> EventRecord:
    return EventRecord(
        id=record_id,
        owner_id="u1",
        title=f"Event {record_id}",
        date=day,
        time=at,
        category=EventCategory.DAILY,
        repeat=repeat,
    )


class TestIsActiveOn:
    """Tests for the single-day activity predicate."""

    def test_forever_record(self):
        """Test that Forever covers every day from its date on."""
        record = make_record("f", date(2025, 1, 10), "08:00", RepeatTag.FOREVER)
        assert is_active_on(record, date(2025, 1, 10))
        assert is_active_on(record, date(2025, 6, 1))
        assert not is_active_on(record, date(2025, 1, 9))

    def test_single_day_record(self):
        """Test that other records cover only their own date."""
        record = make_record("a", date(2025, 3, 8), "10:00", RepeatTag.WEEKLY)
        assert is_active_on(record, date(2025, 3, 8))
        assert not is_active_on(record, date(2025, 3, 15))
        assert not is_active_on(record, date(2025, 3, 7))


class TestGroupByDay:
    """Tests for the per-day event list."""

    def test_sorted_by_time(self):
        """Test that the day list is ordered by time of day."""
        day = date(2025, 4, 2)
        snapshot = {
            "a": make_record("a", day, "09:00"),
            "b": make_record("b", day, "14:30"),
            "c": make_record("c", day, "08:15"),
        }
        assert [r.time for r in group_by_day(snapshot, day)] == ["08:15", "09:00", "14:30"]

    def test_unpadded_input_sorts_correctly(self):
        """Test that '9:00' sorts before '10:00' once stored."""
        day = date(2025, 4, 2)
        records = [make_record("late", day, "10:00"), make_record("early", day, "9:00")]
        assert [r.id for r in group_by_day(records, day)] == ["early", "late"]

    def test_stable_for_equal_times(self):
        """Test that records at the same time keep snapshot order."""
        day = date(2025, 4, 2)
        records = [make_record(i, day, "08:00") for i in ("x", "y", "z")]
        assert [r.id for r in group_by_day(records, day)] == ["x", "y", "z"]

    def test_includes_forever_and_skips_other_days(self):
        """Test that Forever anchors from earlier days show up."""
        day = date(2025, 4, 2)
        records = [
            make_record("feed", date(2025, 1, 1), "07:00", RepeatTag.FOREVER),
            make_record("other", date(2025, 4, 3), "07:00"),
            make_record("walk", day, "18:00"),
        ]
        assert [r.id for r in group_by_day(records, day)] == ["feed", "walk"]

    def test_empty_snapshot(self):
        """Test an empty day."""
        assert group_by_day({}, date(2025, 1, 1)) == []


class TestWeekStrip:
    """Tests for the dashboard week strip."""

    def test_monday_start(self):
        """Test that a Wednesday anchor yields Monday..Sunday."""
        days = week_strip(date(2025, 1, 8))
        assert days[0] == date(2025, 1, 6)
        assert days[-1] == date(2025, 1, 12)
        assert len(days) == 7

    def test_sunday_start(self):
        """Test a week starting on Sunday."""
        days = week_strip(date(2025, 1, 8), week_starts_on=6)
        assert days[0] == date(2025, 1, 5)

    def test_markers_and_counts(self):
        """Test the dot indicator and per-day counts use the same rule."""
        records = [
            make_record("vet", date(2025, 1, 7), "10:00"),
            make_record("feed", date(2025, 1, 9), "07:00", RepeatTag.FOREVER),
        ]
        days = week_strip(date(2025, 1, 8))
        markers = days_with_occurrences(records, days)
        counts = count_by_day(records, days)

        assert markers[date(2025, 1, 6)] is False
        assert markers[date(2025, 1, 7)] is True
        assert markers[date(2025, 1, 8)] is False
        assert all(markers[d] for d in days[3:])
        assert counts[date(2025, 1, 7)] == 1
        assert counts[date(2025, 1, 12)] == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
