# =============================================================================
# core/services/meeting_service.py - Meeting Business Logic
# =============================================================================
# Meeting CRUD, slot-conflict checks and the upcoming-meetings window.
#
# Meeting `date`/`time` are wall-clock values; they are interpreted in the
# configured meeting timezone when compared with the current instant.
# =============================================================================

import datetime as dt
import logging
from typing import Any
from zoneinfo import ZoneInfo

from app.exceptions import ConflictError, InternalError, NotFoundError
from core.models.meeting import MeetingCreate, MeetingQuery, MeetingUpdate, UpcomingMeetingsQuery
from lib.supabase_client import Filter, SupabaseClientError, SupabaseGateway
from lib.utils import round_half_up

logger = logging.getLogger(__name__)

MEETINGS_TABLE = "meetings"


# =============================================================================
# Time Helpers
# =============================================================================

def format_time_until(minutes: int) -> str:
    """
    Human-readable countdown.

    Examples:
        -5 -> "Past due", 0 -> "Now", 1 -> "1 minute", 45 -> "45 minutes",
        120 -> "2 hours", 90 -> "1h 30m"
    """
    if minutes < 0:
        return "Past due"
    if minutes == 0:
        return "Now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    hours, remainder = divmod(minutes, 60)
    if remainder == 0:
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{hours}h {remainder}m"


def _short_time(value: Any) -> str:
    """Stored TIME values come back as HH:MM:SS; compare on HH:MM."""
    return str(value)[:5]


def meeting_datetime(meeting: dict[str, Any], tz: dt.tzinfo) -> dt.datetime:
    """Combine a meeting's date and time into an aware datetime."""
    day = dt.date.fromisoformat(str(meeting["date"])[:10])
    clock = dt.time.fromisoformat(_short_time(meeting["time"]))
    return dt.datetime.combine(day, clock, tzinfo=tz)


def annotate_upcoming(
    meeting: dict[str, Any],
    now: dt.datetime,
    tz: dt.tzinfo,
) -> dict[str, Any]:
    """Add countdown fields to a meeting row relative to `now`."""
    local_now = now.astimezone(tz)
    starts_at = meeting_datetime(meeting, tz)
    minutes = round_half_up((starts_at - local_now).total_seconds() / 60)
    reminder = meeting.get("reminder_minutes")
    if reminder is None:
        reminder = 15
    return {
        **meeting,
        "minutesUntil": max(0, minutes),
        "hoursUntil": max(0, round_half_up(minutes / 60)),
        "isToday": starts_at.date() == local_now.date(),
        "isSoon": minutes <= reminder,
        "timeUntilText": format_time_until(minutes),
    }


# =============================================================================
# Service
# =============================================================================

class MeetingService:
    """Owner-scoped meeting operations."""

    def __init__(self, gateway: SupabaseGateway, timezone: str = "UTC"):
        self.gateway = gateway
        self.tz = ZoneInfo(timezone)

    def list_meetings(self, user_id: str, query: MeetingQuery) -> list[dict[str, Any]]:
        filters = [Filter.eq("user_id", user_id)]
        if query.date:
            filters.append(Filter.eq("date", query.date.isoformat()))
        if query.start_date:
            filters.append(Filter.gte("date", query.start_date.isoformat()))
        if query.end_date:
            filters.append(Filter.lte("date", query.end_date.isoformat()))
        if query.type:
            filters.append(Filter.eq("type", query.type.value))
        if query.priority:
            filters.append(Filter.eq("priority", query.priority.value))

        try:
            result = self.gateway.select(MEETINGS_TABLE, filters=filters, order=("date", "time"))
        except SupabaseClientError as e:
            logger.error(f"Failed to list meetings for user {user_id}: {e}")
            raise InternalError("Failed to retrieve meetings")
        return result.data

    def get_meeting(self, user_id: str, meeting_id: str) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the meeting doesn't exist or belongs to another user
        """
        try:
            meeting = self.gateway.select_one(
                MEETINGS_TABLE,
                filters=[Filter.eq("id", meeting_id), Filter.eq("user_id", user_id)],
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to fetch meeting {meeting_id}: {e}")
            raise InternalError("Failed to retrieve meeting")

        if meeting is None:
            raise NotFoundError("Meeting not found", details={"meeting_id": meeting_id})
        return meeting

    def _ensure_slot_free(
        self,
        user_id: str,
        date: str,
        time: str,
        exclude_id: str | None,
        error_message: str,
    ) -> None:
        filters = [
            Filter.eq("user_id", user_id),
            Filter.eq("date", date),
            Filter.eq("time", time),
        ]
        if exclude_id is not None:
            filters.append(Filter.neq("id", exclude_id))

        try:
            existing = self.gateway.select_one(MEETINGS_TABLE, filters=filters)
        except SupabaseClientError as e:
            logger.error(f"Meeting conflict check failed for user {user_id}: {e}")
            raise InternalError(error_message)

        if existing is not None:
            raise ConflictError(
                "A meeting already exists at this time",
                details={
                    "conflictingMeeting": {
                        "id": existing.get("id"),
                        "title": existing.get("title"),
                        "date": existing.get("date"),
                        "time": existing.get("time"),
                    }
                },
            )

    def create_meeting(self, user_id: str, data: MeetingCreate, now: dt.datetime) -> dict[str, Any]:
        """
        Raises:
            ConflictError: If the user already has a meeting at that date and time
        """
        record = data.to_record()
        self._ensure_slot_free(user_id, record["date"], record["time"], None, "Failed to create meeting")

        row = {
            **record,
            "participants": record.get("participants") or [],
            "user_id": user_id,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        try:
            meeting = self.gateway.insert(MEETINGS_TABLE, row)
        except SupabaseClientError as e:
            logger.error(f"Failed to create meeting for user {user_id}: {e}")
            raise InternalError("Failed to create meeting")

        logger.info(f"Created meeting {meeting.get('id')} for user {user_id}")
        return meeting

    def update_meeting(
        self,
        user_id: str,
        meeting_id: str,
        updates: MeetingUpdate,
        now: dt.datetime,
    ) -> dict[str, Any]:
        """
        Apply a partial update.

        The slot-conflict check only runs when the update moves the meeting
        to a different date or time.

        Raises:
            NotFoundError: If the meeting doesn't exist or belongs to another user
            ConflictError: If the target slot is taken by another meeting
        """
        existing = self.get_meeting(user_id, meeting_id)
        values = updates.to_record(partial=True)

        current_slot = (str(existing["date"])[:10], _short_time(existing["time"]))
        target_slot = (values.get("date", current_slot[0]), values.get("time", current_slot[1]))
        if target_slot != current_slot:
            self._ensure_slot_free(
                user_id, target_slot[0], target_slot[1], meeting_id, "Failed to update meeting"
            )

        values["updated_at"] = now.isoformat()
        try:
            rows = self.gateway.update(
                MEETINGS_TABLE,
                values,
                filters=[Filter.eq("id", meeting_id), Filter.eq("user_id", user_id)],
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to update meeting {meeting_id}: {e}")
            raise InternalError("Failed to update meeting")

        logger.info(f"Updated meeting {meeting_id} for user {user_id}")
        return rows[0] if rows else {**existing, **values}

    def delete_meeting(self, user_id: str, meeting_id: str) -> None:
        """
        Raises:
            NotFoundError: If the meeting doesn't exist or belongs to another user
        """
        self.get_meeting(user_id, meeting_id)
        try:
            self.gateway.delete(
                MEETINGS_TABLE,
                filters=[Filter.eq("id", meeting_id), Filter.eq("user_id", user_id)],
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to delete meeting {meeting_id}: {e}")
            raise InternalError("Failed to delete meeting")
        logger.info(f"Deleted meeting {meeting_id} for user {user_id}")

    def upcoming(
        self,
        user_id: str,
        query: UpcomingMeetingsQuery,
        now: dt.datetime,
    ) -> dict[str, Any]:
        """
        Meetings starting in [now, now + hours), soonest first.

        The window start is truncated to the minute, matching the HH:MM
        resolution of meeting times.
        """
        local_now = now.astimezone(self.tz)
        window_start = local_now.replace(second=0, microsecond=0)
        window_end = local_now + dt.timedelta(hours=query.hours)

        try:
            result = self.gateway.select(
                MEETINGS_TABLE,
                filters=[
                    Filter.eq("user_id", user_id),
                    Filter.gte("date", window_start.date().isoformat()),
                    Filter.lte("date", window_end.date().isoformat()),
                ],
                order=("date", "time"),
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to get upcoming meetings for user {user_id}: {e}")
            raise InternalError("Failed to retrieve upcoming meetings")

        in_window = [
            m for m in result.data
            if window_start <= meeting_datetime(m, self.tz) < window_end
        ]
        in_window.sort(key=lambda m: meeting_datetime(m, self.tz))
        meetings = [annotate_upcoming(m, local_now, self.tz) for m in in_window[:query.limit]]

        return {
            "meetings": meetings,
            "total": len(meetings),
            "queryInfo": {
                "timeWindow": f"{query.hours} hours",
                "from": local_now.isoformat(),
                "to": window_end.isoformat(),
            },
        }
