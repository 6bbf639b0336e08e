# =============================================================================
# core/services/stats_service.py - User Statistics
# =============================================================================
# Maintains the per-user `user_stats` row and computes period aggregates.
#
# Counter updates after session writes are best-effort: a failure is logged
# and dropped, the primary write has already succeeded.
# =============================================================================

import datetime as dt
import logging
from typing import Any

from app.exceptions import InternalError
from core.models.user import DEFAULT_WEEKLY_GOAL, StatsPeriod, StatsQuery, initial_stats
from lib.supabase_client import Filter, SupabaseClientError, SupabaseGateway
from lib.utils import iso_now, round_half_up

logger = logging.getLogger(__name__)

STATS_TABLE = "user_stats"
SESSIONS_TABLE = "pomodoro_sessions"


# =============================================================================
# Counter Arithmetic
# =============================================================================

def percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def stats_after_new_session(current: dict[str, Any], duration: int) -> dict[str, Any]:
    """Counter values after a session has been created."""
    total = (current.get("total_sessions") or 0) + 1
    completed = current.get("completed_sessions") or 0
    return {
        "total_sessions": total,
        "total_minutes": (current.get("total_minutes") or 0) + duration,
        "completion_rate": percent(completed, total),
    }


def _parse_day(value: Any) -> dt.date | None:
    if not value:
        return None
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value)[:10])


def stats_after_completion(
    current: dict[str, Any],
    duration: int,
    today: dt.date,
) -> dict[str, Any]:
    """
    Counter values after a session has been completed.

    Streak rules by calendar day since the last completed session:
    one day extends the streak, the same day keeps it, anything else
    starts over at 1.
    """
    completed = (current.get("completed_sessions") or 0) + 1
    completed_minutes = (current.get("completed_minutes") or 0) + duration
    # A completion implies the session was counted, even if the row lags behind
    total = max(current.get("total_sessions") or 0, completed)

    streak = current.get("streak_days") or 0
    last_day = _parse_day(current.get("last_session_date"))
    if last_day is None:
        streak = 1
    else:
        gap = (today - last_day).days
        if gap == 1:
            streak += 1
        elif gap != 0:
            streak = 1
        else:
            streak = max(streak, 1)

    return {
        "completed_sessions": completed,
        "completed_minutes": completed_minutes,
        "completion_rate": percent(completed, total),
        "average_session_length": round_half_up(completed_minutes / completed),
        "streak_days": streak,
        "longest_streak": max(current.get("longest_streak") or 0, streak),
        "last_session_date": today.isoformat(),
    }


def stats_after_deletion(current: dict[str, Any], session: dict[str, Any]) -> dict[str, Any]:
    """
    Counter values after a session has been deleted.

    Counters never drop below zero. Streaks are left alone.
    """
    duration = session.get("duration") or 0
    total = max(0, (current.get("total_sessions") or 0) - 1)
    completed = current.get("completed_sessions") or 0
    completed_minutes = current.get("completed_minutes") or 0
    if session.get("status") == "completed":
        completed = max(0, completed - 1)
        completed_minutes = max(0, completed_minutes - duration)

    return {
        "total_sessions": total,
        "total_minutes": max(0, (current.get("total_minutes") or 0) - duration),
        "completed_sessions": completed,
        "completed_minutes": completed_minutes,
        "completion_rate": percent(completed, total),
        "average_session_length": round_half_up(completed_minutes / completed) if completed else 0,
    }


# =============================================================================
# Period Aggregates
# =============================================================================

def period_range(period: StatsPeriod, today: dt.date) -> tuple[dt.date, dt.date]:
    """Inclusive date range for a reporting period. Weeks start on Sunday."""
    if period == StatsPeriod.DAY:
        return today, today
    if period == StatsPeriod.WEEK:
        start = today - dt.timedelta(days=(today.weekday() + 1) % 7)
        return start, start + dt.timedelta(days=6)
    if period == StatsPeriod.MONTH:
        start = today.replace(day=1)
        next_month = (start + dt.timedelta(days=32)).replace(day=1)
        return start, next_month - dt.timedelta(days=1)
    return today.replace(month=1, day=1), today.replace(month=12, day=31)


def summarize_sessions(sessions: list[dict[str, Any]]) -> dict[str, Any]:
    """Totals, per-day buckets and tag/location breakdowns for a list of sessions."""
    completed = [s for s in sessions if s.get("status") == "completed"]
    completed_minutes = sum(s.get("duration") or 0 for s in completed)

    by_day: dict[str, dict[str, int]] = {}
    tag_stats: dict[str, dict[str, int]] = {}
    location_stats: dict[str, dict[str, int]] = {}

    for session in sessions:
        minutes = session.get("duration") or 0
        is_completed = session.get("status") == "completed"

        day = str(session.get("start_time") or "")[:10]
        bucket = by_day.setdefault(day, {"total": 0, "completed": 0, "minutes": 0})
        bucket["total"] += 1
        bucket["minutes"] += minutes
        if is_completed:
            bucket["completed"] += 1

        tags = [t.strip() for t in (session.get("tags") or "").split(",") if t.strip()]
        for tag in tags:
            entry = tag_stats.setdefault(tag, {"count": 0, "minutes": 0})
            entry["count"] += 1
            if is_completed:
                entry["minutes"] += minutes

        location = session.get("location")
        if location:
            entry = location_stats.setdefault(location, {"count": 0, "minutes": 0})
            entry["count"] += 1
            if is_completed:
                entry["minutes"] += minutes

    return {
        "totalSessions": len(sessions),
        "completedSessions": len(completed),
        "totalMinutes": sum(s.get("duration") or 0 for s in sessions),
        "completedMinutes": completed_minutes,
        "averageSessionLength": (
            round_half_up(completed_minutes / len(completed)) if completed else 0
        ),
        "completionRate": percent(len(completed), len(sessions)),
        "sessionsByDay": by_day,
        "tagStats": tag_stats,
        "locationStats": location_stats,
    }


# =============================================================================
# Service
# =============================================================================

class StatsService:
    """Reads and maintains the `user_stats` row of a user."""

    def __init__(self, gateway: SupabaseGateway, weekly_goal: int = DEFAULT_WEEKLY_GOAL):
        self.gateway = gateway
        self.weekly_goal = weekly_goal

    def _load(self, user_id: str) -> dict[str, Any] | None:
        return self.gateway.select_one(
            STATS_TABLE, filters=[Filter.eq("user_id", user_id)]
        )

    def _insert(self, user_id: str, values: dict[str, Any]) -> None:
        row = {**initial_stats(self.weekly_goal), **values, "user_id": user_id}
        self.gateway.insert(STATS_TABLE, row)

    def _write(self, user_id: str, values: dict[str, Any]) -> None:
        self.gateway.update(
            STATS_TABLE,
            {**values, "updated_at": iso_now()},
            filters=[Filter.eq("user_id", user_id)],
        )

    def record_session_started(self, user_id: str, duration: int) -> None:
        """Count a newly created session. Best-effort."""
        try:
            current = self._load(user_id)
            if current is None:
                self._insert(user_id, stats_after_new_session({}, duration))
            else:
                self._write(user_id, stats_after_new_session(current, duration))
        except SupabaseClientError as e:
            logger.warning(f"Stats update after session start failed for user {user_id}: {e}")

    def record_session_completed(self, user_id: str, duration: int, today: dt.date) -> None:
        """Count a completed session and advance the streak. Best-effort."""
        try:
            current = self._load(user_id)
            if current is None:
                self._insert(user_id, {
                    "total_sessions": 1,
                    "total_minutes": duration,
                    **stats_after_completion({}, duration, today),
                })
            else:
                self._write(user_id, stats_after_completion(current, duration, today))
        except SupabaseClientError as e:
            logger.warning(f"Stats update after completion failed for user {user_id}: {e}")

    def record_session_deleted(self, user_id: str, session: dict[str, Any]) -> None:
        """Take a deleted session back out of the counters. Best-effort."""
        try:
            current = self._load(user_id)
            if current is not None:
                self._write(user_id, stats_after_deletion(current, session))
        except SupabaseClientError as e:
            logger.warning(f"Stats update after deletion failed for user {user_id}: {e}")

    def get_overall(self, user_id: str) -> dict[str, Any]:
        """Stored counters, or a zeroed row for users who have none yet."""
        overall = self._load(user_id)
        if overall is None:
            overall = {**initial_stats(self.weekly_goal), "user_id": user_id}
        return overall

    def get_stats(self, user_id: str, query: StatsQuery, today: dt.date) -> dict[str, Any]:
        """
        Overall counters plus aggregates for the requested period.

        Raises:
            InternalError: If the stats or session reads fail
        """
        try:
            overall = self.get_overall(user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to get user stats for {user_id}: {e}")
            raise InternalError("Failed to retrieve statistics")

        if query.start_date and query.end_date:
            start, end = query.start_date, query.end_date
        else:
            start, end = period_range(query.period, today)

        try:
            result = self.gateway.select(
                SESSIONS_TABLE,
                filters=[
                    Filter.eq("user_id", user_id),
                    Filter.gte("start_time", f"{start.isoformat()}T00:00:00"),
                    Filter.lte("start_time", f"{end.isoformat()}T23:59:59"),
                ],
                order=("start_time",),
                desc=True,
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to get sessions for stats of {user_id}: {e}")
            raise InternalError("Failed to retrieve session data")

        summary = summarize_sessions(result.data)
        weekly_goal = overall.get("weekly_goal") or self.weekly_goal
        is_week = query.period == StatsPeriod.WEEK
        return {
            "overall": overall,
            "period": {
                **summary,
                "dateRange": {"start": start.isoformat(), "end": end.isoformat()},
                "period": query.period.value,
            },
            "goals": {
                "weeklyGoal": weekly_goal,
                "weeklyProgress": summary["completedMinutes"] if is_week else 0,
                "weeklyProgressPercentage": (
                    percent(summary["completedMinutes"], weekly_goal) if is_week else 0
                ),
            },
        }
