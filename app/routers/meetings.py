# =============================================================================
# app/routers/meetings.py - Meeting Endpoints
# =============================================================================
# Meeting scheduling for the authenticated user.
# All endpoints require authentication.
#
# Endpoints:
#   GET    /meetings               - List (filter by date range, type, priority)
#   POST   /meetings               - Create (409 if the slot is taken)
#   GET    /meetings/upcoming      - Meetings in the next N hours with countdowns
#   GET    /meetings/{meeting_id}  - One meeting
#   PUT    /meetings/{meeting_id}  - Partial update
#   DELETE /meetings/{meeting_id}  - Delete
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Path, Request

from app.auth.dependencies import CurrentUser
from app.dependencies import MeetingServiceDep, NowDep
from app.exceptions import read_json_body, validate_or_raise
from app.responses import success_response
from core.models.meeting import MeetingCreate, MeetingQuery, MeetingUpdate, UpcomingMeetingsQuery

router = APIRouter()

MeetingId = Annotated[str, Path(..., description="Meeting ID")]


@router.get("")
async def list_meetings(request: Request, user: CurrentUser, meetings: MeetingServiceDep):
    """List the caller's meetings ordered by date, then time."""
    query = validate_or_raise(MeetingQuery, dict(request.query_params))
    return success_response(meetings.list_meetings(user.id, query))


@router.post("")
async def create_meeting(
    request: Request,
    user: CurrentUser,
    meetings: MeetingServiceDep,
    now: NowDep,
):
    """
    Raises:
        409: Another meeting already occupies the date/time
    """
    data = validate_or_raise(MeetingCreate, await read_json_body(request))
    meeting = meetings.create_meeting(user.id, data, now)
    return success_response(meeting, "Meeting created successfully", status_code=201)


@router.get("/upcoming")
async def upcoming_meetings(
    request: Request,
    user: CurrentUser,
    meetings: MeetingServiceDep,
    now: NowDep,
):
    """
    Meetings starting within the next `hours` (default 24), soonest first.

    Query Parameters:
        hours: 1-168
        limit: 1-50
    """
    query = validate_or_raise(UpcomingMeetingsQuery, dict(request.query_params))
    return success_response(meetings.upcoming(user.id, query, now))


@router.get("/{meeting_id}")
async def get_meeting(meeting_id: MeetingId, user: CurrentUser, meetings: MeetingServiceDep):
    return success_response(meetings.get_meeting(user.id, meeting_id))


@router.put("/{meeting_id}")
async def update_meeting(
    request: Request,
    meeting_id: MeetingId,
    user: CurrentUser,
    meetings: MeetingServiceDep,
    now: NowDep,
):
    """
    Raises:
        404: Meeting not found or owned by another user
        409: The new date/time is taken by another meeting
    """
    updates = validate_or_raise(MeetingUpdate, await read_json_body(request))
    meeting = meetings.update_meeting(user.id, meeting_id, updates, now)
    return success_response(meeting, "Meeting updated successfully")


@router.delete("/{meeting_id}")
async def delete_meeting(meeting_id: MeetingId, user: CurrentUser, meetings: MeetingServiceDep):
    meetings.delete_meeting(user.id, meeting_id)
    return success_response(None, "Meeting deleted successfully")
