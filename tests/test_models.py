# =============================================================================
# tests/test_models.py - Pydantic Model Tests
# =============================================================================
# Unit tests for the request schemas to ensure:
# - Valid data is accepted and normalized
# - Invalid data raises ValidationError
# - Aliases and defaults work as expected
#
# Run with: pytest tests/test_models.py -v
# =============================================================================

import datetime as dt

import pytest
from pydantic import ValidationError

from core.models import (
    LeaderboardPeriod,
    LeaderboardQuery,
    LoginRequest,
    MeetingCreate,
    MeetingUpdate,
    ProfileUpdate,
    RegisterRequest,
    SessionCreate,
    SessionQuery,
    SessionStatus,
    SessionUpdate,
    StatsPeriod,
    StatsQuery,
    UpcomingMeetingsQuery,
    UserPreferencesUpdate,
    default_preferences,
    initial_stats,
)


# =============================================================================
# Auth Models
# =============================================================================

class TestAuthModels:
    """Tests for login and registration schemas."""

    def test_login_detects_email(self):
        assert LoginRequest(username="a@b.co", password="x").is_email is True
        assert LoginRequest(username="alice", password="x").is_email is False

    def test_login_remember_me_alias(self):
        request = LoginRequest.model_validate(
            {"username": "alice", "password": "x", "rememberMe": True}
        )
        assert request.remember_me is True

    def test_register_lowercases_email(self):
        request = RegisterRequest.model_validate(
            {"username": "Alice", "email": "Alice@Example.COM", "password": "secret"}
        )
        assert request.email == "alice@example.com"

    def test_register_rejects_bad_email(self):
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="not-an-email", password="secret")

    def test_register_rejects_short_password(self):
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="a@b.co", password="abc")


# =============================================================================
# Session Models
# =============================================================================

class TestSessionModels:
    """Tests for session schemas."""

    def test_duration_bounds(self):
        with pytest.raises(ValidationError):
            SessionCreate(title="Focus", duration=0)
        with pytest.raises(ValidationError):
            SessionCreate(title="Focus", duration=121)

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            SessionCreate(title="")

    def test_scheduled_time_alias(self):
        session = SessionCreate.model_validate(
            {"title": "Focus", "scheduledTime": "2024-03-04T12:00:00Z"}
        )
        assert session.scheduled_time == dt.datetime(2024, 3, 4, 12, tzinfo=dt.timezone.utc)

    def test_query_from_strings(self):
        """Query strings arrive as text and are coerced."""
        query = SessionQuery.model_validate(
            {"page": "3", "limit": "10", "status": "completed", "startDate": "2024-01-01"}
        )

        assert query.page == 3
        assert query.offset == 20
        assert query.status == SessionStatus.COMPLETED
        assert query.start_date == dt.date(2024, 1, 1)

    def test_query_limit_capped(self):
        with pytest.raises(ValidationError):
            SessionQuery(limit=101)

    def test_update_status_and_partial_record(self):
        updates = SessionUpdate.model_validate({"status": "completed", "unknown": 1})

        assert updates.status == SessionStatus.COMPLETED
        assert updates.to_record(partial=True) == {"status": "completed"}

    def test_update_rejects_null_and_bad_status(self):
        with pytest.raises(ValidationError):
            SessionUpdate.model_validate({"title": None})
        with pytest.raises(ValidationError):
            SessionUpdate.model_validate({"status": "paused"})


# =============================================================================
# Meeting Models
# =============================================================================

class TestMeetingModels:
    """Tests for meeting schemas."""

    def test_time_zero_padded(self):
        meeting = MeetingCreate(title="Sync", date=dt.date(2024, 3, 4), time="9:05")
        assert meeting.time == "09:05"

    @pytest.mark.parametrize("bad", ["24:00", "12:60", "noon", "1200"])
    def test_invalid_time_rejected(self, bad):
        with pytest.raises(ValidationError):
            MeetingCreate(title="Sync", date=dt.date(2024, 3, 4), time=bad)

    def test_defaults(self):
        meeting = MeetingCreate(title="Sync", date=dt.date(2024, 3, 4), time="10:00")

        record = meeting.to_record()
        assert record["duration"] == 60
        assert record["type"] == "meeting"
        assert record["priority"] == "medium"
        assert record["reminder_minutes"] == 15
        assert record["date"] == "2024-03-04"

    def test_participants_validated(self):
        with pytest.raises(ValidationError):
            MeetingCreate(
                title="Sync", date=dt.date(2024, 3, 4), time="10:00", participants=["nope"]
            )

    def test_update_partial_record_only_has_sent_fields(self):
        updates = MeetingUpdate.model_validate({"title": "Renamed", "reminderMinutes": 5})

        assert updates.to_record(partial=True) == {"title": "Renamed", "reminder_minutes": 5}

    @pytest.mark.parametrize("field", ["title", "date", "time", "duration", "participants", "type"])
    def test_update_rejects_explicit_null(self, field):
        with pytest.raises(ValidationError) as exc_info:
            MeetingUpdate.model_validate({field: None})

        assert "received null" in str(exc_info.value)

    def test_update_empty_payload_is_empty_record(self):
        assert MeetingUpdate.model_validate({}).to_record(partial=True) == {}

    def test_upcoming_hours_bounds(self):
        assert UpcomingMeetingsQuery().hours == 24
        with pytest.raises(ValidationError):
            UpcomingMeetingsQuery(hours=169)


# =============================================================================
# User Models
# =============================================================================

class TestUserModels:
    """Tests for profile, preference and stats schemas."""

    def test_profile_avatar_aliases(self):
        for key in ("avatar", "avatarUrl", "avatar_url"):
            update = ProfileUpdate.model_validate({key: "https://cdn.example.com/a.png"})
            assert update.avatar_url == "https://cdn.example.com/a.png"

    def test_profile_empty_avatar_allowed(self):
        assert ProfileUpdate.model_validate({"avatar": ""}).avatar_url == ""

    def test_profile_bad_avatar_rejected(self):
        with pytest.raises(ValidationError):
            ProfileUpdate.model_validate({"avatar": "not a url"})

    @pytest.mark.parametrize("key", ["displayName", "email", "bio", "avatar"])
    def test_profile_rejects_explicit_null(self, key):
        with pytest.raises(ValidationError):
            ProfileUpdate.model_validate({key: None})

    def test_preferences_defaults(self):
        assert default_preferences() == {
            "default_pomodoro_length": 25,
            "break_length": 5,
            "long_break_length": 15,
            "weekly_goal": 140,
            "theme": "default",
            "sound_enabled": True,
            "notifications_enabled": True,
            "auto_start_break": False,
            "auto_start_pomodoro": False,
        }

    def test_preferences_camel_case_input(self):
        prefs = UserPreferencesUpdate.model_validate({"breakLength": 10, "theme": "dark"})
        assert prefs.break_length == 10
        assert prefs.to_record()["theme"] == "dark"

    def test_preferences_bad_theme(self):
        with pytest.raises(ValidationError):
            UserPreferencesUpdate.model_validate({"theme": "neon"})

    def test_stats_query_default_period(self):
        assert StatsQuery().period == StatsPeriod.WEEK

    def test_leaderboard_query(self):
        query = LeaderboardQuery.model_validate({"period": "month", "limit": "25"})

        assert query.period == LeaderboardPeriod.MONTH
        assert query.limit == 25
        assert LeaderboardQuery().limit == 10
        with pytest.raises(ValidationError):
            LeaderboardQuery.model_validate({"period": "day"})
        with pytest.raises(ValidationError):
            LeaderboardQuery(limit=101)

    def test_initial_stats_zeroed(self):
        stats = initial_stats(200)
        assert stats["weekly_goal"] == 200
        assert stats["total_sessions"] == 0
        assert stats["last_session_date"] is None
