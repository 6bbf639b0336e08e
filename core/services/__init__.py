# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .auth_service import AuthService, check_password_strength
from .dashboard_service import DashboardService
from .meeting_service import MeetingService, format_time_until
from .session_service import SessionService
from .stats_service import StatsService
from .user_service import UserService

__all__ = [
    "AuthService",
    "check_password_strength",
    "DashboardService",
    "MeetingService",
    "format_time_until",
    "SessionService",
    "StatsService",
    "UserService",
]
