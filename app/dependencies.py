# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# The gateway lives on app.state (built in the lifespan handler); tests swap
# it, the clock and the current user through app.dependency_overrides.
# =============================================================================

from datetime import datetime
from typing import Annotated

from fastapi import Depends, Request

from app.config import Settings, get_settings
from app.exceptions import BackendUnavailableError
from core.services import (
    AuthService,
    DashboardService,
    MeetingService,
    SessionService,
    StatsService,
    UserService,
)
from lib.supabase_client import SupabaseGateway
from lib.utils import utc_now


def get_gateway_optional(request: Request) -> SupabaseGateway | None:
    """Gateway built at startup, or None if Supabase is not configured."""
    return getattr(request.app.state, "gateway", None)


def get_gateway(
    gateway: Annotated[SupabaseGateway | None, Depends(get_gateway_optional)],
) -> SupabaseGateway:
    """
    Gateway for handlers that need the database.

    Raises:
        BackendUnavailableError: 503 if Supabase is not configured
    """
    if gateway is None:
        raise BackendUnavailableError()
    return gateway


def get_clock() -> datetime:
    """Current UTC time."""
    return utc_now()


# Type aliases for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
GatewayDep = Annotated[SupabaseGateway, Depends(get_gateway)]
NowDep = Annotated[datetime, Depends(get_clock)]


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------

def get_auth_service(gateway: GatewayDep, settings: SettingsDep) -> AuthService:
    return AuthService(gateway, weekly_goal=settings.DEFAULT_WEEKLY_GOAL)


def get_stats_service(gateway: GatewayDep, settings: SettingsDep) -> StatsService:
    return StatsService(gateway, weekly_goal=settings.DEFAULT_WEEKLY_GOAL)


def get_session_service(
    gateway: GatewayDep,
    stats: Annotated[StatsService, Depends(get_stats_service)],
) -> SessionService:
    return SessionService(gateway, stats)


def get_meeting_service(gateway: GatewayDep, settings: SettingsDep) -> MeetingService:
    return MeetingService(gateway, timezone=settings.MEETING_TIMEZONE)


def get_user_service(gateway: GatewayDep, settings: SettingsDep) -> UserService:
    return UserService(gateway, weekly_goal=settings.DEFAULT_WEEKLY_GOAL)


def get_dashboard_service(
    gateway: GatewayDep,
    settings: SettingsDep,
    sessions: Annotated[SessionService, Depends(get_session_service)],
    stats: Annotated[StatsService, Depends(get_stats_service)],
) -> DashboardService:
    return DashboardService(gateway, sessions, stats, timezone=settings.MEETING_TIMEZONE)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]
MeetingServiceDep = Annotated[MeetingService, Depends(get_meeting_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
