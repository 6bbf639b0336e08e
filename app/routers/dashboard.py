# =============================================================================
# app/routers/dashboard.py - Dashboard Endpoints
# =============================================================================
# Endpoints:
#   GET /dashboard              - Overview for the authenticated user
#   GET /dashboard/leaderboard  - Completed minutes ranked across users
#                                 (anonymous allowed; a valid token marks
#                                 the caller's own entry)
# =============================================================================

from fastapi import APIRouter, Request

from app.auth.dependencies import CurrentUser, OptionalUser
from app.dependencies import DashboardServiceDep, NowDep
from app.exceptions import validate_or_raise
from app.responses import success_response
from core.models.user import LeaderboardQuery

router = APIRouter()


@router.get("")
async def get_dashboard(user: CurrentUser, dashboard: DashboardServiceDep, now: NowDep):
    """
    Stats overview, today's and this week's progress, the active session,
    the next meetings and the last week's activity.
    """
    return success_response(dashboard.overview(user.id, now))


@router.get("/leaderboard")
async def get_leaderboard(
    request: Request,
    user: OptionalUser,
    dashboard: DashboardServiceDep,
    now: NowDep,
):
    """
    Query Parameters:
        period: week | month | year (default week)
        limit: 1-100 (default 10)
    """
    query = validate_or_raise(LeaderboardQuery, dict(request.query_params))
    data = dashboard.leaderboard(query, now.date(), user.id if user else None)
    return success_response(data)
