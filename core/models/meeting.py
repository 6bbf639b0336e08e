# =============================================================================
# core/models/meeting.py - Meeting Schemas
# =============================================================================
# - MeetingCreate: new meeting (defaults applied)
# - MeetingUpdate: partial update (no defaults; absent fields untouched)
# - MeetingQuery: list filters
# - UpcomingMeetingsQuery: look-ahead window for GET /meetings/upcoming
#
# A user may not have two meetings at the same (date, time). The check is
# a read before the write; concurrent writes can still collide.
# =============================================================================

import datetime as dt
import re
from enum import Enum

from pydantic import Field, field_validator

from .base import ApiSchema, normalize_email, reject_null

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


class MeetingType(str, Enum):
    MEETING = "meeting"
    CALL = "call"
    PRESENTATION = "presentation"
    WORKSHOP = "workshop"
    OTHER = "other"


class MeetingPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _normalize_time(value: str | None) -> str | None:
    """Accept H:MM or HH:MM and store zero-padded HH:MM."""
    if value is None:
        return None
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError("Invalid time format (HH:MM)")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def _normalize_participants(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    return [normalize_email(email) for email in value]


class MeetingCreate(ApiSchema):
    """
    Schema for creating a meeting.

    Example:
        {
            "title": "Sprint planning",
            "date": "2024-03-04",
            "time": "10:00",
            "duration": 60,
            "reminderMinutes": 15
        }
    """

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    date: dt.date
    time: str
    duration: int = Field(default=60, ge=15, le=480, description="Minutes, 15 min to 8 hours")
    location: str | None = Field(default=None, max_length=200)
    participants: list[str] | None = None
    type: MeetingType = MeetingType.MEETING
    priority: MeetingPriority = MeetingPriority.MEDIUM
    reminder_minutes: int = Field(
        default=15,
        ge=0,
        le=10080,
        alias="reminderMinutes",
        description="How long before the meeting it counts as 'soon' (up to a week)"
    )

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str | None) -> str | None:
        return _normalize_time(value)

    @field_validator("participants")
    @classmethod
    def _check_participants(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_participants(value)


class MeetingUpdate(ApiSchema):
    """
    Every MeetingCreate field, all optional and without defaults.

    Omitted fields stay untouched; an explicit null is rejected.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    date: dt.date | None = None
    time: str | None = None
    duration: int | None = Field(default=None, ge=15, le=480)
    location: str | None = Field(default=None, max_length=200)
    participants: list[str] | None = None
    type: MeetingType | None = None
    priority: MeetingPriority | None = None
    reminder_minutes: int | None = Field(default=None, ge=0, le=10080, alias="reminderMinutes")

    @field_validator("*", mode="before")
    @classmethod
    def _reject_null(cls, value):
        return reject_null(value)

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str | None) -> str | None:
        return _normalize_time(value)

    @field_validator("participants")
    @classmethod
    def _check_participants(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_participants(value)


class MeetingQuery(ApiSchema):
    """Filters for GET /meetings."""

    date: dt.date | None = None
    start_date: dt.date | None = Field(default=None, alias="startDate")
    end_date: dt.date | None = Field(default=None, alias="endDate")
    type: MeetingType | None = None
    priority: MeetingPriority | None = None


class UpcomingMeetingsQuery(ApiSchema):
    """Look-ahead window for GET /meetings/upcoming."""

    hours: int = Field(default=24, ge=1, le=168)
    limit: int = Field(default=5, ge=1, le=50)
