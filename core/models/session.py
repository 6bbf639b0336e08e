# =============================================================================
# core/models/session.py - Pomodoro Session Schemas
# =============================================================================
# These models define the API contract for timer-session operations:
# - SessionStatus: Enum for session states
# - SessionCreate: Input for starting (or scheduling) a session
# - SessionQuery: Filters and pagination for listing sessions
# - SessionUpdate: Partial edit of a stored session
#
# A session is one timer run owned by one user. A user has at most one
# active session at a time; that is checked before insert, not enforced
# by the database.
# =============================================================================

import datetime as dt
from enum import Enum

from pydantic import Field, field_validator

from .base import ApiSchema, reject_null


class SessionStatus(str, Enum):
    """
    Possible states for a Pomodoro session.

    - scheduled: start time is in the future
    - active: timer is running
    - completed: ran to its end time (or was completed manually)
    - stopped: abandoned before completion

    Flow: scheduled -> active -> completed | stopped
    """
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    STOPPED = "stopped"


class SessionCreate(ApiSchema):
    """
    Schema for starting a new session.

    If scheduledTime is in the future the session is created as scheduled,
    otherwise it starts immediately as active.

    Example:
        {
            "title": "Write chapter 3",
            "goal": "First draft",
            "tags": "writing, book",
            "duration": 25
        }
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What this session is for"
    )

    goal: str | None = Field(default=None, max_length=500)

    # Comma-separated, matched with ILIKE when listing
    tags: str | None = Field(default=None, max_length=200)

    location: str | None = Field(default=None, max_length=100)

    duration: int = Field(
        default=25,
        ge=1,
        le=120,
        description="Length in minutes"
    )

    scheduled_time: dt.datetime | None = Field(
        default=None,
        alias="scheduledTime",
        description="ISO-8601 start time; past or absent means start now"
    )


class SessionQuery(ApiSchema):
    """
    Query parameters for GET /sessions.

    Example:
        ?page=2&limit=10&status=completed&startDate=2024-01-01&tags=writing
    """

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    status: SessionStatus | None = None
    start_date: dt.date | None = Field(default=None, alias="startDate")
    end_date: dt.date | None = Field(default=None, alias="endDate")
    tags: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class SessionUpdate(ApiSchema):
    """
    Schema for PUT /sessions/{id}.

    Only the fields sent are written. Setting status to completed counts
    the session in the owner's statistics, once.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    goal: str | None = Field(default=None, max_length=500)
    tags: str | None = Field(default=None, max_length=200)
    location: str | None = Field(default=None, max_length=100)
    status: SessionStatus | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _reject_null(cls, value):
        return reject_null(value)
