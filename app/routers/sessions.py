# =============================================================================
# app/routers/sessions.py - Pomodoro Session Endpoints
# =============================================================================
# Handles timer sessions for the authenticated user.
# All endpoints require authentication.
#
# Endpoints:
#   GET    /sessions                 - Paginated history
#   POST   /sessions                 - Start or schedule a session
#   GET    /sessions/active          - Running session (auto-completes when due)
#   POST   /sessions/active/complete - Finish the running session
#   POST   /sessions/active/stop     - Abandon the running session
#   GET    /sessions/{session_id}    - One session
#   PUT    /sessions/{session_id}    - Partial update (completing counts in stats)
#   DELETE /sessions/{session_id}    - Delete and take out of stats
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Path, Request

from app.auth.dependencies import CurrentUser
from app.dependencies import NowDep, SessionServiceDep
from app.exceptions import read_json_body, validate_or_raise
from app.responses import Pagination, success_response
from core.models.session import SessionCreate, SessionQuery, SessionUpdate

router = APIRouter()

SessionId = Annotated[str, Path(..., description="Session ID")]


@router.get("")
async def list_sessions(request: Request, user: CurrentUser, sessions: SessionServiceDep):
    """
    List the caller's sessions, newest first.

    Query Parameters:
        page, limit, status, startDate, endDate, tags
    """
    query = validate_or_raise(SessionQuery, dict(request.query_params))
    rows, total = sessions.list_sessions(user.id, query)
    return success_response(
        rows,
        "Sessions retrieved successfully",
        pagination=Pagination.build(query.page, query.limit, total),
    )


@router.post("")
async def create_session(
    request: Request,
    user: CurrentUser,
    sessions: SessionServiceDep,
    now: NowDep,
):
    """
    Start a session now, or schedule it when scheduledTime is in the future.

    Raises:
        409: The caller already has an active session
    """
    data = validate_or_raise(SessionCreate, await read_json_body(request))
    session = sessions.create_session(user.id, data, now)
    return success_response(session, "Session created successfully", status_code=201)


@router.get("/active")
async def get_active_session(user: CurrentUser, sessions: SessionServiceDep, now: NowDep):
    """Current active session or null."""
    session, auto_completed = sessions.get_active_session(user.id, now)
    if session is None:
        return success_response(None, "No active session found")
    if auto_completed:
        return success_response({**session, "autoCompleted": True}, "Session auto-completed")
    return success_response(session)


@router.post("/active/complete")
async def complete_active_session(user: CurrentUser, sessions: SessionServiceDep, now: NowDep):
    """
    Raises:
        404: No active session
    """
    session = sessions.complete_active(user.id, now)
    return success_response(session, "Session completed successfully")


@router.post("/active/stop")
async def stop_active_session(user: CurrentUser, sessions: SessionServiceDep, now: NowDep):
    """
    Raises:
        404: No active session
    """
    session = sessions.stop_active(user.id, now)
    return success_response(session, "Session stopped successfully")


@router.get("/{session_id}")
async def get_session(session_id: SessionId, user: CurrentUser, sessions: SessionServiceDep):
    """
    Raises:
        404: Session not found or owned by another user
    """
    return success_response(sessions.get_session(user.id, session_id))


@router.put("/{session_id}")
async def update_session(
    request: Request,
    session_id: SessionId,
    user: CurrentUser,
    sessions: SessionServiceDep,
    now: NowDep,
):
    """
    Edit title, goal, tags, location or status.

    Raises:
        404: Session not found or owned by another user
    """
    updates = validate_or_raise(SessionUpdate, await read_json_body(request))
    session = sessions.update_session(user.id, session_id, updates, now)
    return success_response(session, "Session updated successfully")


@router.delete("/{session_id}")
async def delete_session(session_id: SessionId, user: CurrentUser, sessions: SessionServiceDep):
    """
    Raises:
        404: Session not found or owned by another user
    """
    sessions.delete_session(user.id, session_id)
    return success_response(None, "Session deleted successfully")
