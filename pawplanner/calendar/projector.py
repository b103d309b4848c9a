"""
Occurrence Projector

Decides whether a stored event record occurs on a given calendar day.

CRITICAL: Every view that asks "does this event happen on day D" (the
day list, the dashboard week strip) must go through is_active_on, so
recurrence semantics can't drift between screens.
"""

from datetime import date

from pawplanner.models.event import EventRecord


def is_active_on(record: EventRecord, day: date) -> bool:
    """
    Is the record active on `day`?

    Forever records cover every day on or after their date; every other
    record covers exactly its own date. Time of day is ignored.
    """
    if record.is_forever:
        return day >= record.date
    return day == record.date
