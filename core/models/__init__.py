# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for request validation:
# - auth.py: login / registration / refresh / password strength
# - session.py: Pomodoro session create, update + list query
# - meeting.py: meeting create/update/list + upcoming window
# - user.py: profile, preferences, stats and leaderboard queries, seed rows
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Auth Models
# -----------------------------------------------------------------------------
from .auth import (
    LoginRequest,
    PasswordCheckRequest,
    PasswordStrength,
    RefreshRequest,
    RegisterRequest,
)

# -----------------------------------------------------------------------------
# Session Models - Pomodoro timer runs
# -----------------------------------------------------------------------------
from .session import (
    SessionCreate,
    SessionQuery,
    SessionStatus,
    SessionUpdate,
)

# -----------------------------------------------------------------------------
# Meeting Models
# -----------------------------------------------------------------------------
from .meeting import (
    MeetingCreate,
    MeetingPriority,
    MeetingQuery,
    MeetingType,
    MeetingUpdate,
    UpcomingMeetingsQuery,
)

# -----------------------------------------------------------------------------
# User Models - profile, preferences, statistics
# -----------------------------------------------------------------------------
from .user import (
    LeaderboardPeriod,
    LeaderboardQuery,
    ProfileUpdate,
    StatsPeriod,
    StatsQuery,
    Theme,
    UserPreferencesUpdate,
    UserRole,
    default_preferences,
    initial_stats,
)

# -----------------------------------------------------------------------------
# __all__ - Explicit public API
# -----------------------------------------------------------------------------
__all__ = [
    # Auth
    "LoginRequest",
    "PasswordCheckRequest",
    "PasswordStrength",
    "RefreshRequest",
    "RegisterRequest",
    # Session
    "SessionCreate",
    "SessionQuery",
    "SessionStatus",
    "SessionUpdate",
    # Meeting
    "MeetingCreate",
    "MeetingPriority",
    "MeetingQuery",
    "MeetingType",
    "MeetingUpdate",
    "UpcomingMeetingsQuery",
    # User
    "LeaderboardPeriod",
    "LeaderboardQuery",
    "ProfileUpdate",
    "StatsPeriod",
    "StatsQuery",
    "Theme",
    "UserPreferencesUpdate",
    "UserRole",
    "default_preferences",
    "initial_stats",
]
