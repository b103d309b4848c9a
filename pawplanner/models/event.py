"""
Calendar Event Models

These models define the two shapes an event takes:
1. EventSkeleton - what the user typed into the form (transient)
2. EventRecord - one persisted row, as stored by the backend

An EventSkeleton is consumed once by the recurrence expander and
discarded. EventRecords live until explicitly deleted and are only ever
changed through the fields in EventPatch.

DESIGN DECISION: The date field is called "date" to match the stored
rows, so this module refers to the datetime module as `dt`.
"""

import datetime as dt
import re
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pawplanner.models.base import OwnedEntity


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EventCategory(str, Enum):
    """Supported event categories."""
    VET = "Vet"
    GROOMING = "Grooming"
    DAILY = "Daily"
    TRAINING = "Training"
    PLAY = "Play"

    @property
    def requires_location(self) -> bool:
        """Appointments happen somewhere; daily care and play don't need a place."""
        return self in LOCATION_CATEGORIES


LOCATION_CATEGORIES = frozenset({
    EventCategory.VET,
    EventCategory.GROOMING,
    EventCategory.TRAINING,
})


class RepeatMode(str, Enum):
    """How the user asked an event to repeat."""
    NEVER = "Never"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    FOREVER = "Forever"


class RepeatTag(str, Enum):
    """
    Marker stored on a record that belongs to a repeating series.

    CRITICAL: Only FOREVER changes what a record means. A FOREVER record
    stands for every day on or after its date; DAILY and WEEKLY records
    are ordinary single-day rows that remember how they were generated.
    """
    DAILY = "Daily"
    WEEKLY = "Weekly"
    FOREVER = "Forever"


# =============================================================================
# TIME HANDLING
# =============================================================================

_TIME_PATTERN = re.compile(
    r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::\d{2})?\s*(?P<meridiem>[AaPp][Mm])?$"
)


def normalize_time(value: Union[str, dt.time]) -> str:
    """
    Normalize a time of day to zero-padded 24-hour "HH:MM".

    Accepts "9:05", "09:05", "09:05:00", "2:30 PM" and datetime.time.
    Zero padding is what makes plain string comparison sort correctly.
    """
    if isinstance(value, dt.time):
        return f"{value.hour:02d}:{value.minute:02d}"

    match = _TIME_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridiem = match.group("meridiem")

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid 12-hour time: {value!r}")
        hour = hour % 12
        if meridiem.lower() == "pm":
            hour += 12

    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {value!r}")

    return f"{hour:02d}:{minute:02d}"


# =============================================================================
# FORM INPUT
# =============================================================================

class EventSkeleton(BaseModel):
    """
    The event definition exactly as the user entered it.

    Title and location presence are checked by EventValidator so the
    caller gets a full list of issues rather than the first failure.
    occurrence_count is kept raw (form fields are text); the expander
    decides what it means.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(
        default="",
        max_length=200,
        description="Event title (required, checked by the validator)"
    )
    location: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Where the event happens (required for Vet/Grooming/Training)"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the first occurrence"
    )
    time: str = Field(
        ...,
        description="Time of day, minute granularity"
    )
    category: EventCategory = Field(
        ...,
        description="Event category"
    )
    repeat_mode: RepeatMode = Field(
        default=RepeatMode.NEVER,
        description="How the event repeats"
    )
    occurrence_count: Union[int, str, None] = Field(
        default=1,
        description="Number of occurrences for Daily/Weekly (raw form input)"
    )

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)


# =============================================================================
# PERSISTED RECORD
# =============================================================================

class EventRecord(OwnedEntity):
    """
    One persisted calendar event.

    A record without a repeat tag, or tagged DAILY/WEEKLY, covers exactly
    one calendar day. A record tagged FOREVER covers all days from its
    date onwards and is never materialized into more rows.
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Event title"
    )
    date: dt.date = Field(
        ...,
        description="Calendar day (first day for FOREVER records)"
    )
    time: str = Field(
        ...,
        description="Zero-padded HH:MM time of day"
    )
    category: EventCategory = Field(
        ...,
        description="Event category"
    )
    location: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Event location"
    )
    repeat: Optional[RepeatTag] = Field(
        default=None,
        description="Set only on records generated from a repeating definition"
    )

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)

    @field_validator('location', 'repeat', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        """Stored rows use "" (and "Never") for absent values."""
        if v is None:
            return None
        if isinstance(v, str) and v.strip() in ("", RepeatMode.NEVER.value):
            return None
        return v

    @property
    def is_forever(self) -> bool:
        return self.repeat == RepeatTag.FOREVER


class EventPatch(BaseModel):
    """
    The fields an edit may change.

    Anything not listed here (id, owner, repeat tag) is immutable after
    creation. Only explicitly set fields are applied.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    date: Optional[dt.date] = None
    time: Optional[str] = None
    category: Optional[EventCategory] = None
    location: Optional[str] = Field(default=None, max_length=200)

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v):
        if v is None:
            return None
        return normalize_time(v)

    def changes(self) -> dict:
        """Explicitly set fields, JSON-ready for a backend update."""
        return self.model_dump(mode="json", exclude_unset=True)
