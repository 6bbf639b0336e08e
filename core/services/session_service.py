# =============================================================================
# core/services/session_service.py - Pomodoro Session Business Logic
# =============================================================================
# Handles session CRUD and the active-session lifecycle:
#   scheduled -> active -> completed | stopped
# Separates HTTP concerns from database/business logic.
# =============================================================================

import datetime as dt
import logging
from typing import Any

from app.exceptions import ConflictError, InternalError, NotFoundError
from core.models.session import SessionCreate, SessionQuery, SessionStatus, SessionUpdate
from core.services.stats_service import StatsService
from lib.supabase_client import Filter, SupabaseClientError, SupabaseGateway

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "pomodoro_sessions"


def _parse_timestamp(value: Any) -> dt.datetime:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if isinstance(value, dt.datetime):
        parsed = value
    else:
        parsed = dt.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


class SessionService:
    """
    Service for Pomodoro session operations.

    Every query is scoped to the owning user. Stats updates that follow a
    session write go through StatsService and never fail the request.
    """

    def __init__(self, gateway: SupabaseGateway, stats: StatsService):
        self.gateway = gateway
        self.stats = stats

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_sessions(self, user_id: str, query: SessionQuery) -> tuple[list[dict[str, Any]], int]:
        """
        List a user's sessions, newest first.

        Returns:
            (rows for the requested page, total matching rows)

        Raises:
            InternalError: If the query fails
        """
        filters = [Filter.eq("user_id", user_id)]
        if query.status:
            filters.append(Filter.eq("status", query.status.value))
        if query.start_date:
            filters.append(Filter.gte("start_time", f"{query.start_date.isoformat()}T00:00:00"))
        if query.end_date:
            filters.append(Filter.lte("start_time", f"{query.end_date.isoformat()}T23:59:59"))
        if query.tags:
            filters.append(Filter.ilike("tags", f"%{query.tags}%"))

        try:
            result = self.gateway.select(
                SESSIONS_TABLE,
                filters=filters,
                order=("start_time",),
                desc=True,
                offset=query.offset,
                limit=query.limit,
                count=True,
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to list sessions for user {user_id}: {e}")
            raise InternalError("Failed to retrieve sessions")

        total = result.count if result.count is not None else len(result.data)
        return result.data, total

    def get_session(self, user_id: str, session_id: str) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the session doesn't exist or belongs to another user
        """
        try:
            session = self.gateway.select_one(
                SESSIONS_TABLE,
                filters=[Filter.eq("id", session_id), Filter.eq("user_id", user_id)],
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to fetch session {session_id}: {e}")
            raise InternalError("Failed to retrieve session")

        if session is None:
            raise NotFoundError("Session not found", details={"session_id": session_id})
        return session

    def _find_active(self, user_id: str) -> dict[str, Any] | None:
        return self.gateway.select_one(
            SESSIONS_TABLE,
            filters=[
                Filter.eq("user_id", user_id),
                Filter.eq("status", SessionStatus.ACTIVE.value),
            ],
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_session(self, user_id: str, data: SessionCreate, now: dt.datetime) -> dict[str, Any]:
        """
        Start (or schedule) a session.

        A scheduled time in the future creates a `scheduled` session, otherwise
        the timer starts now as `active`.

        Raises:
            ConflictError: If the user already has an active session
            InternalError: If the insert fails
        """
        try:
            active = self._find_active(user_id)
        except SupabaseClientError as e:
            logger.error(f"Active session check failed for user {user_id}: {e}")
            raise InternalError("Failed to create session")

        if active is not None:
            raise ConflictError(
                "You already have an active session. Please complete or stop it first.",
                details={"activeSessionId": active.get("id")},
            )

        start = now
        if data.scheduled_time is not None:
            scheduled = data.scheduled_time
            if scheduled.tzinfo is None:
                scheduled = scheduled.replace(tzinfo=dt.timezone.utc)
            if scheduled > now:
                start = scheduled
        end = start + dt.timedelta(minutes=data.duration)

        row = {
            "user_id": user_id,
            "title": data.title,
            "goal": data.goal,
            "tags": data.tags,
            "location": data.location,
            "duration": data.duration,
            "start_time": start.isoformat(),
            "end_time": end.isoformat(),
            "status": (SessionStatus.SCHEDULED if start > now else SessionStatus.ACTIVE).value,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }

        try:
            session = self.gateway.insert(SESSIONS_TABLE, row)
        except SupabaseClientError as e:
            logger.error(f"Failed to create session for user {user_id}: {e}")
            raise InternalError("Failed to create session")

        logger.info(f"Created session {session.get('id')} for user {user_id}")
        self.stats.record_session_started(user_id, data.duration)
        return session

    def _update(
        self,
        session: dict[str, Any],
        values: dict[str, Any],
        error_message: str,
    ) -> dict[str, Any]:
        try:
            rows = self.gateway.update(
                SESSIONS_TABLE,
                values,
                filters=[Filter.eq("id", session["id"]), Filter.eq("user_id", session["user_id"])],
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to update session {session['id']}: {e}")
            raise InternalError(error_message)
        return rows[0] if rows else {**session, **values}

    def get_active_session(self, user_id: str, now: dt.datetime) -> tuple[dict[str, Any] | None, bool]:
        """
        Current active session, auto-completing it once its end time has passed.

        Returns:
            (session or None, whether it was auto-completed by this call)
        """
        try:
            active = self._find_active(user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to get active session for user {user_id}: {e}")
            raise InternalError("Failed to retrieve active session")

        if active is None:
            return None, False

        end_time = _parse_timestamp(active["end_time"])
        if now < end_time:
            return active, False

        try:
            rows = self.gateway.update(
                SESSIONS_TABLE,
                {
                    "status": SessionStatus.COMPLETED.value,
                    "completed_at": end_time.isoformat(),
                    "updated_at": now.isoformat(),
                },
                filters=[Filter.eq("id", active["id"]), Filter.eq("user_id", user_id)],
            )
        except SupabaseClientError as e:
            # The session is still returned as-is; the next read retries
            logger.warning(f"Auto-complete of session {active['id']} failed: {e}")
            return active, False

        completed = rows[0] if rows else active
        logger.info(f"Auto-completed session {active['id']} for user {user_id}")
        self.stats.record_session_completed(user_id, active.get("duration") or 0, now.date())
        return completed, True

    def complete_active(self, user_id: str, now: dt.datetime) -> dict[str, Any]:
        """
        Mark the active session completed and update stats.

        Raises:
            NotFoundError: If there is no active session
        """
        try:
            active = self._find_active(user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to get active session for user {user_id}: {e}")
            raise InternalError("Failed to complete session")

        if active is None:
            raise NotFoundError("No active session found")

        completed = self._update(
            active,
            {
                "status": SessionStatus.COMPLETED.value,
                "completed_at": now.isoformat(),
                "updated_at": now.isoformat(),
            },
            "Failed to complete session",
        )
        logger.info(f"Completed session {active['id']} for user {user_id}")
        self.stats.record_session_completed(user_id, active.get("duration") or 0, now.date())
        return completed

    def stop_active(self, user_id: str, now: dt.datetime) -> dict[str, Any]:
        """
        Abandon the active session.

        Raises:
            NotFoundError: If there is no active session
        """
        try:
            active = self._find_active(user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to get active session for user {user_id}: {e}")
            raise InternalError("Failed to stop session")

        if active is None:
            raise NotFoundError("No active session found")

        stopped = self._update(
            active,
            {
                "status": SessionStatus.STOPPED.value,
                "stopped_at": now.isoformat(),
                "updated_at": now.isoformat(),
            },
            "Failed to stop session",
        )
        logger.info(f"Stopped session {active['id']} for user {user_id}")
        return stopped

    def update_session(
        self,
        user_id: str,
        session_id: str,
        updates: SessionUpdate,
        now: dt.datetime,
    ) -> dict[str, Any]:
        """
        Apply a partial edit to one of the user's sessions.

        Moving a session into `completed` from any other status counts it
        in the user's stats; re-sending `completed` does not count it twice.

        Raises:
            NotFoundError: If the session doesn't exist or belongs to another user
            InternalError: If the update fails
        """
        existing = self.get_session(user_id, session_id)

        values = updates.to_record(partial=True)
        newly_completed = (
            updates.status == SessionStatus.COMPLETED
            and existing.get("status") != SessionStatus.COMPLETED.value
        )
        if newly_completed:
            values.setdefault("completed_at", now.isoformat())
        values["updated_at"] = now.isoformat()

        session = self._update(existing, values, "Failed to update session")
        logger.info(f"Updated session {session_id} for user {user_id}")

        if newly_completed:
            self.stats.record_session_completed(user_id, existing.get("duration") or 0, now.date())
        return session

    def delete_session(self, user_id: str, session_id: str) -> None:
        """
        Delete one of the user's sessions and take it back out of the stats.

        Raises:
            NotFoundError: If the session doesn't exist or belongs to another user
            InternalError: If the delete fails
        """
        existing = self.get_session(user_id, session_id)

        try:
            self.gateway.delete(
                SESSIONS_TABLE,
                filters=[Filter.eq("id", session_id), Filter.eq("user_id", user_id)],
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to delete session {session_id}: {e}")
            raise InternalError("Failed to delete session")

        logger.info(f"Deleted session {session_id} for user {user_id}")
        self.stats.record_session_deleted(user_id, existing)
