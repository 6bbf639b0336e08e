# =============================================================================
# core/models/user.py - User Profile, Preferences & Stats Schemas
# =============================================================================
# - ProfileUpdate: editable profile fields
# - UserPreferencesUpdate: timer/theme/notification settings
# - StatsQuery: period selection for GET /users/stats
# - LeaderboardQuery: period and size for GET /dashboard/leaderboard
# - DEFAULT_PREFERENCES / initial_stats(): rows seeded for new users
# =============================================================================

import datetime as dt
import re
from enum import Enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from .base import ApiSchema, normalize_email, reject_null

URL_PATTERN = re.compile(r"^https?://\S+$")

DEFAULT_WEEKLY_GOAL = 140


class Theme(str, Enum):
    DEFAULT = "default"
    DARK = "dark"
    MINIMAL = "minimal"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class StatsPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class LeaderboardPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ProfileUpdate(ApiSchema):
    """
    Schema for PUT /users/profile.

    Only fields the client sends are written. An empty avatar string
    clears the avatar; null is rejected for every field.

    Example:
        {"displayName": "Alice", "bio": "Deep work enthusiast"}
    """

    display_name: str | None = Field(default=None, max_length=100, alias="displayName")
    email: str | None = None
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("avatar", "avatarUrl", "avatar_url"),
    )

    @field_validator("*", mode="before")
    @classmethod
    def _reject_null(cls, value):
        return reject_null(value)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        return normalize_email(value)

    @field_validator("avatar_url")
    @classmethod
    def _check_avatar(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return value
        if not URL_PATTERN.match(value):
            raise ValueError("Invalid url")
        return value


class UserPreferencesUpdate(ApiSchema):
    """
    Schema for PUT /users/preferences.

    Absent fields fall back to their defaults, so a PUT always writes a
    complete preferences row.
    """

    default_pomodoro_length: int = Field(default=25, ge=1, le=120, alias="defaultPomodoroLength")
    break_length: int = Field(default=5, ge=1, le=30, alias="breakLength")
    long_break_length: int = Field(default=15, ge=1, le=60, alias="longBreakLength")
    weekly_goal: int = Field(default=DEFAULT_WEEKLY_GOAL, ge=1, le=1000, alias="weeklyGoal")
    theme: Theme = Theme.DEFAULT
    sound_enabled: bool = Field(default=True, alias="soundEnabled")
    notifications_enabled: bool = Field(default=True, alias="notificationsEnabled")
    auto_start_break: bool = Field(default=False, alias="autoStartBreak")
    auto_start_pomodoro: bool = Field(default=False, alias="autoStartPomodoro")


class StatsQuery(ApiSchema):
    """
    Query parameters for GET /users/stats.

    An explicit startDate + endDate pair overrides the period.
    """

    period: StatsPeriod = StatsPeriod.WEEK
    start_date: dt.date | None = Field(default=None, alias="startDate")
    end_date: dt.date | None = Field(default=None, alias="endDate")


class LeaderboardQuery(ApiSchema):
    """Query parameters for GET /dashboard/leaderboard. The period runs up to today."""

    period: LeaderboardPeriod = LeaderboardPeriod.WEEK
    limit: int = Field(default=10, ge=1, le=100)


def default_preferences(weekly_goal: int = DEFAULT_WEEKLY_GOAL) -> dict[str, Any]:
    """Preference columns for a user who has never saved any."""
    return UserPreferencesUpdate(weekly_goal=weekly_goal).to_record()


def initial_stats(weekly_goal: int = DEFAULT_WEEKLY_GOAL) -> dict[str, Any]:
    """Zeroed statistics columns for a new user."""
    return {
        "total_sessions": 0,
        "completed_sessions": 0,
        "total_minutes": 0,
        "completed_minutes": 0,
        "streak_days": 0,
        "longest_streak": 0,
        "last_session_date": None,
        "weekly_goal": weekly_goal,
        "completion_rate": 0,
        "average_session_length": 0,
    }
