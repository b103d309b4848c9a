"""
Recurrence Expander

Turns one event definition into the concrete records to persist.

DESIGN DECISION: Finite repeats (Daily, Weekly) are materialized into
one row per occurrence. An unbounded repeat (Forever) is stored as a
single anchor row and interpreted at read time by the projector, so
nothing infinite is ever written.

This module performs no I/O. Writing the records (one independent write
each) is the caller's responsibility.
"""

from datetime import timedelta
from typing import Optional, Union

from pawplanner.models.event import (
    EventRecord,
    EventSkeleton,
    RepeatMode,
    RepeatTag,
)


# Days between consecutive occurrences of a finite series
_STEP_DAYS = {
    RepeatMode.DAILY: 1,
    RepeatMode.WEEKLY: 7,
}


def parse_occurrence_count(raw: Union[int, str, None]) -> int:
    """
    Interpret the occurrence count typed into the form.

    Anything that isn't a whole number of at least 1 becomes 1.
    """
    if isinstance(raw, bool):
        return 1
    if isinstance(raw, int):
        return max(1, raw)
    if isinstance(raw, str):
        try:
            return max(1, int(raw.strip()))
        except ValueError:
            return 1
    return 1


def occurrence_count_is_valid(raw: Union[int, str, None]) -> bool:
    """Would parse_occurrence_count use the value as typed?"""
    if isinstance(raw, bool) or raw is None:
        return False
    if isinstance(raw, int):
        return raw >= 1
    try:
        return int(str(raw).strip()) >= 1
    except ValueError:
        return False


def expand(
    skeleton: EventSkeleton,
    owner_id: Optional[str] = None,
) -> list[EventRecord]:
    """
    Expand an event definition into records to create.

    Args:
        skeleton: The validated form input
        owner_id: Owner to stamp on every record

    Returns:
        A non-empty list of records without ids:
        - Never: one untagged record
        - Forever: one record tagged Forever (count ignored)
        - Daily/Weekly: max(1, count) records, one and seven days apart
    """
    def make(day, repeat: Optional[RepeatTag]) -> EventRecord:
        return EventRecord(
            owner_id=owner_id,
            title=skeleton.title,
            date=day,
            time=skeleton.time,
            category=skeleton.category,
            location=skeleton.location,
            repeat=repeat,
        )

    mode = skeleton.repeat_mode

    if mode == RepeatMode.FOREVER:
        return [make(skeleton.date, RepeatTag.FOREVER)]

    if mode == RepeatMode.NEVER:
        return [make(skeleton.date, None)]

    count = parse_occurrence_count(skeleton.occurrence_count)
    step = timedelta(days=_STEP_DAYS[mode])
    tag = RepeatTag(mode.value)

    return [make(skeleton.date + step * i, tag) for i in range(count)]
