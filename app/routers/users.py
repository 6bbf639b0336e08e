# =============================================================================
# app/routers/users.py - User Profile, Preferences, Stats & Admin Endpoints
# =============================================================================
# Endpoints:
#   GET    /users/profile      - Profile + preferences + stats
#   PUT    /users/profile      - Update profile fields
#   GET    /users/preferences  - Preferences (default row created on first read)
#   PUT    /users/preferences  - Replace preferences
#   GET    /users/stats        - Overall and per-period statistics
#   GET    /users              - All users (admin)
#   DELETE /users?id=          - Delete a user (admin + admin header)
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request

from app.auth.dependencies import AdminUser, CurrentUser
from app.dependencies import NowDep, SettingsDep, StatsServiceDep, UserServiceDep
from app.exceptions import BadRequestError, ForbiddenError, read_json_body, validate_or_raise
from app.responses import success_response
from core.models.user import ProfileUpdate, StatsQuery, UserPreferencesUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/profile")
async def get_profile(user: CurrentUser, users: UserServiceDep):
    """
    Raises:
        404: No profile row for the caller
    """
    return success_response(users.get_profile(user.id))


@router.put("/profile")
async def update_profile(request: Request, user: CurrentUser, users: UserServiceDep):
    """
    Update displayName, email, bio or avatar.

    Raises:
        400: Validation failed, or the email belongs to another user
        404: No profile row for the caller
    """
    updates = validate_or_raise(ProfileUpdate, await read_json_body(request))
    profile = users.update_profile(user.id, updates)
    return success_response(profile, "Profile updated successfully")


@router.get("/preferences")
async def get_preferences(user: CurrentUser, users: UserServiceDep):
    return success_response(users.get_preferences(user.id))


@router.put("/preferences")
async def update_preferences(request: Request, user: CurrentUser, users: UserServiceDep):
    """Replace the caller's preferences. Omitted fields reset to their defaults."""
    preferences = validate_or_raise(UserPreferencesUpdate, await read_json_body(request))
    result = users.update_preferences(user.id, preferences)
    return success_response(result, "Preferences updated successfully")


@router.get("/stats")
async def get_stats(request: Request, user: CurrentUser, stats: StatsServiceDep, now: NowDep):
    """
    Query Parameters:
        period: day | week | month | year (default week)
        startDate, endDate: explicit range, overrides period
    """
    query = validate_or_raise(StatsQuery, dict(request.query_params))
    return success_response(stats.get_stats(user.id, query, now.date()))


@router.get("")
async def list_users(admin: AdminUser, users: UserServiceDep):
    """All users, newest first. Admin only."""
    return success_response(users.list_users())


@router.delete("")
async def delete_user(
    request: Request,
    admin: AdminUser,
    users: UserServiceDep,
    settings: SettingsDep,
    user_id: Optional[str] = Query(default=None, alias="id"),
):
    """
    Delete a user and, through cascading keys, everything they own.

    Requires the admin header flag in addition to an admin caller.

    Raises:
        400: Missing id
        403: Header flag absent
    """
    if request.headers.get(settings.ADMIN_HEADER_NAME) != "true":
        raise ForbiddenError("Admin privileges required")
    if not user_id:
        raise BadRequestError("User ID is required")

    users.delete_user(user_id)
    logger.info(f"Admin {admin.id} deleted user {user_id}")
    return success_response({"userId": user_id}, "User deleted successfully")
