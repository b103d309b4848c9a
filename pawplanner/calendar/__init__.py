"""Calendar package: recurrence expansion and per-day projection."""

from pawplanner.calendar.aggregator import (
    count_by_day,
    days_with_occurrences,
    group_by_day,
    week_strip,
)
from pawplanner.calendar.projector import is_active_on
from pawplanner.calendar.recurrence import (
    expand,
    occurrence_count_is_valid,
    parse_occurrence_count,
)

__all__ = [
    "count_by_day",
    "days_with_occurrences",
    "expand",
    "group_by_day",
    "is_active_on",
    "occurrence_count_is_valid",
    "parse_occurrence_count",
    "week_strip",
]
