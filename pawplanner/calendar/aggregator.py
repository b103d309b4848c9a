"""
Day Aggregator

Derives per-day views from a collection snapshot. Used by the calendar
day list and the dashboard summary alike.
"""

from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from typing import Union

from pawplanner.calendar.projector import is_active_on
from pawplanner.models.event import EventRecord


Snapshot = Union[Mapping[str, EventRecord], Iterable[EventRecord]]


def _records(snapshot: Snapshot) -> Iterable[EventRecord]:
    if isinstance(snapshot, Mapping):
        return snapshot.values()
    return snapshot


def group_by_day(snapshot: Snapshot, for_day: date) -> list[EventRecord]:
    """
    Records active on `for_day`, ordered by time of day.

    Times are zero-padded "HH:MM", so string order is time order. The
    sort is stable: records at the same time keep their snapshot order.
    """
    active = [record for record in _records(snapshot) if is_active_on(record, for_day)]
    return sorted(active, key=lambda record: record.time)


def week_strip(anchor: date, week_starts_on: int = 0) -> list[date]:
    """The seven days of the week containing `anchor` (0 = Monday start)."""
    offset = (anchor.weekday() - week_starts_on) % 7
    start = anchor - timedelta(days=offset)
    return [start + timedelta(days=i) for i in range(7)]


def days_with_occurrences(snapshot: Snapshot, days: Iterable[date]) -> dict[date, bool]:
    """
    Which of `days` have at least one active record.

    Feeds the dot indicator under each day of the dashboard week strip.
    """
    records = list(_records(snapshot))
    return {
        day: any(is_active_on(record, day) for record in records)
        for day in days
    }


def count_by_day(snapshot: Snapshot, days: Iterable[date]) -> dict[date, int]:
    """Number of active records per day, for the dashboard summary."""
    records = list(_records(snapshot))
    return {
        day: sum(1 for record in records if is_active_on(record, day))
        for day in days
    }
