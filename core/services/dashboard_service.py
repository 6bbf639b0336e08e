# =============================================================================
# core/services/dashboard_service.py - Dashboard Overview & Leaderboard
# =============================================================================
# Read-side aggregates for the dashboard:
# - overview(): the caller's counters, today's and this week's progress,
#   active session, next meetings and recent activity in one payload
# - leaderboard(): completed focus minutes ranked across all users
#
# Only the active-session lookup writes (it may auto-complete a session
# that has run past its end time).
# =============================================================================

import datetime as dt
import logging
from typing import Any
from zoneinfo import ZoneInfo

from app.exceptions import InternalError
from core.models.user import DEFAULT_WEEKLY_GOAL, LeaderboardQuery, StatsPeriod
from core.services.meeting_service import MEETINGS_TABLE, annotate_upcoming, meeting_datetime
from core.services.session_service import SESSIONS_TABLE, SessionService
from core.services.stats_service import StatsService, percent, period_range
from lib.supabase_client import Filter, SupabaseClientError, SupabaseGateway
from lib.utils import round_half_up

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
PROFILE_COLUMNS = "id, username, display_name, avatar_url"

DASHBOARD_MEETINGS = 3
RECENT_SESSIONS_LIMIT = 10
RECENT_ACTIVITY_DAYS = 7


def _minutes(sessions: list[dict[str, Any]]) -> int:
    return sum(s.get("duration") or 0 for s in sessions)


def _completed(sessions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [s for s in sessions if s.get("status") == "completed"]


def activity_by_day(sessions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Per-day session counts and minutes, most recent day first."""
    days: dict[str, dict[str, Any]] = {}
    for session in sessions:
        day = str(session.get("start_time") or "")[:10]
        entry = days.setdefault(day, {"date": day, "sessions": 0, "completed": 0, "minutes": 0})
        entry["sessions"] += 1
        entry["minutes"] += session.get("duration") or 0
        if session.get("status") == "completed":
            entry["completed"] += 1
    return sorted(days.values(), key=lambda e: e["date"], reverse=True)


def rank_completed_sessions(sessions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Group completed sessions by owner and rank them.

    Ordered by completed minutes, then completed sessions, both descending.
    """
    totals: dict[str, dict[str, Any]] = {}
    for session in sessions:
        entry = totals.setdefault(
            session["user_id"],
            {"userId": session["user_id"], "completedSessions": 0, "completedMinutes": 0},
        )
        entry["completedSessions"] += 1
        entry["completedMinutes"] += session.get("duration") or 0

    ranked = sorted(
        totals.values(),
        key=lambda e: (e["completedMinutes"], e["completedSessions"]),
        reverse=True,
    )
    for rank, entry in enumerate(ranked, start=1):
        entry["rank"] = rank
        entry["averageSessionLength"] = round_half_up(
            entry["completedMinutes"] / entry["completedSessions"]
        )
    return ranked


class DashboardService:
    """Aggregates for GET /dashboard and GET /dashboard/leaderboard."""

    def __init__(
        self,
        gateway: SupabaseGateway,
        sessions: SessionService,
        stats: StatsService,
        timezone: str = "UTC",
    ):
        self.gateway = gateway
        self.sessions = sessions
        self.stats = stats
        self.tz = ZoneInfo(timezone)

    # -------------------------------------------------------------------------
    # Overview
    # -------------------------------------------------------------------------

    def _sessions_since(
        self,
        user_id: str,
        start: str,
        end: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        filters = [Filter.eq("user_id", user_id), Filter.gte("start_time", start)]
        if end is not None:
            filters.append(Filter.lte("start_time", end))
        return self.gateway.select(
            SESSIONS_TABLE,
            filters=filters,
            order=("start_time",),
            desc=True,
            limit=limit,
        ).data

    def _next_meetings(self, user_id: str, now: dt.datetime) -> list[dict[str, Any]]:
        local_now = now.astimezone(self.tz)
        rows = self.gateway.select(
            MEETINGS_TABLE,
            filters=[
                Filter.eq("user_id", user_id),
                Filter.gte("date", local_now.date().isoformat()),
            ],
            order=("date", "time"),
        ).data

        window_start = local_now.replace(second=0, microsecond=0)
        upcoming = [m for m in rows if meeting_datetime(m, self.tz) >= window_start]
        upcoming.sort(key=lambda m: meeting_datetime(m, self.tz))
        return [annotate_upcoming(m, local_now, self.tz) for m in upcoming[:DASHBOARD_MEETINGS]]

    def overview(self, user_id: str, now: dt.datetime) -> dict[str, Any]:
        """
        Everything the dashboard screen shows for one user.

        The active session is resolved first, so a session that
        auto-completes here already counts in today's numbers.

        Raises:
            InternalError: If any of the reads fail
        """
        active, auto_completed = self.sessions.get_active_session(user_id, now)
        if active is not None and auto_completed:
            active = {**active, "autoCompleted": True}

        today = now.date()
        week_start, _ = period_range(StatsPeriod.WEEK, today)

        try:
            overall = self.stats.get_overall(user_id)
            week_sessions = self._sessions_since(
                user_id,
                f"{week_start.isoformat()}T00:00:00",
                f"{today.isoformat()}T23:59:59",
            )
            recent_sessions = self._sessions_since(
                user_id,
                (now - dt.timedelta(days=RECENT_ACTIVITY_DAYS)).isoformat(),
                limit=RECENT_SESSIONS_LIMIT,
            )
            meetings = self._next_meetings(user_id, now)
        except SupabaseClientError as e:
            logger.error(f"Failed to load dashboard for user {user_id}: {e}")
            raise InternalError("Failed to load dashboard data")

        today_sessions = [
            s for s in week_sessions if str(s.get("start_time") or "")[:10] == today.isoformat()
        ]
        today_completed = _completed(today_sessions)
        today_stats = {
            "totalSessions": len(today_sessions),
            "completedSessions": len(today_completed),
            "totalMinutes": _minutes(today_sessions),
            "completedMinutes": _minutes(today_completed),
            "completionRate": percent(len(today_completed), len(today_sessions)),
        }

        weekly_goal = overall.get("weekly_goal") or DEFAULT_WEEKLY_GOAL
        week_minutes = _minutes(_completed(week_sessions))
        weekly = {
            "completedMinutes": week_minutes,
            "goal": weekly_goal,
            "progressPercentage": percent(week_minutes, weekly_goal),
        }

        return {
            "user": {"id": user_id},
            "overview": {
                "totalSessions": overall.get("total_sessions") or 0,
                "completedSessions": overall.get("completed_sessions") or 0,
                "totalMinutes": overall.get("total_minutes") or 0,
                "completedMinutes": overall.get("completed_minutes") or 0,
                "currentStreak": overall.get("streak_days") or 0,
                "longestStreak": overall.get("longest_streak") or 0,
                "overallCompletionRate": overall.get("completion_rate") or 0,
                "averageSessionLength": overall.get("average_session_length") or 0,
            },
            "today": today_stats,
            "weekly": weekly,
            "activeSession": active,
            "upcomingMeetings": meetings,
            "recentActivity": activity_by_day(recent_sessions),
            "goals": {
                "weeklyGoal": weekly_goal,
                "weeklyProgress": week_minutes,
                "weeklyProgressPercentage": weekly["progressPercentage"],
                "dailyTarget": round_half_up(weekly_goal / 7),
                "todayProgress": today_stats["completedMinutes"],
            },
        }

    # -------------------------------------------------------------------------
    # Leaderboard
    # -------------------------------------------------------------------------

    def _profiles(self, user_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Public profile fields by id. Missing profiles show as anonymous."""
        if not user_ids:
            return {}
        try:
            rows = self.gateway.select(
                USERS_TABLE,
                columns=PROFILE_COLUMNS,
                filters=[Filter.in_("id", user_ids)],
            ).data
        except SupabaseClientError as e:
            logger.warning(f"Leaderboard profile lookup failed: {e}")
            return {}
        return {row["id"]: row for row in rows}

    def leaderboard(
        self,
        query: LeaderboardQuery,
        today: dt.date,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Rank users by completed minutes from the start of the period up to today.

        Args:
            query: period and number of entries
            today: last day of the range
            user_id: caller, if authenticated; marks their entry and rank

        Raises:
            InternalError: If the session query fails
        """
        start, _ = period_range(StatsPeriod(query.period.value), today)

        try:
            result = self.gateway.select(
                SESSIONS_TABLE,
                filters=[
                    Filter.eq("status", "completed"),
                    Filter.gte("start_time", f"{start.isoformat()}T00:00:00"),
                    Filter.lte("start_time", f"{today.isoformat()}T23:59:59"),
                ],
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to get leaderboard sessions: {e}")
            raise InternalError("Failed to retrieve leaderboard data")

        ranked = rank_completed_sessions(result.data)
        top = ranked[:query.limit]
        profiles = self._profiles([entry["userId"] for entry in top])

        leaderboard = []
        for entry in top:
            profile = profiles.get(entry["userId"], {})
            leaderboard.append({
                "rank": entry["rank"],
                "userId": entry["userId"],
                "username": profile.get("username") or "Anonymous",
                "displayName": profile.get("display_name") or "Anonymous User",
                "avatarUrl": profile.get("avatar_url"),
                "completedSessions": entry["completedSessions"],
                "completedMinutes": entry["completedMinutes"],
                "averageSessionLength": entry["averageSessionLength"],
                "isCurrentUser": entry["userId"] == user_id,
            })

        current_user_rank = None
        if user_id is not None:
            mine = next((e for e in ranked if e["userId"] == user_id), None)
            if mine is not None:
                current_user_rank = {
                    "rank": mine["rank"],
                    "completedSessions": mine["completedSessions"],
                    "completedMinutes": mine["completedMinutes"],
                    "averageSessionLength": mine["averageSessionLength"],
                }

        total_sessions = len(result.data)
        total_minutes = _minutes(result.data)
        return {
            "leaderboard": leaderboard,
            "period": query.period.value,
            "dateRange": {"start": start.isoformat(), "end": today.isoformat()},
            "totalParticipants": len(ranked),
            "currentUserRank": current_user_rank,
            "periodStats": {
                "totalSessions": total_sessions,
                "totalMinutes": total_minutes,
                "averageSessionLength": (
                    round_half_up(total_minutes / total_sessions) if total_sessions else 0
                ),
            },
        }
