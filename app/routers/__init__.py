# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - dashboard.py: Dashboard overview and leaderboard
# - health.py: Health check endpoints
# - sessions.py: Pomodoro timer sessions
# - meetings.py: Meeting scheduling and upcoming reminders
# - users.py: Profile, preferences, statistics and admin endpoints
#
# Authentication routes live in app/auth/routes.py.
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import dashboard
from . import health
from . import meetings
from . import sessions
from . import users

__all__ = [
    "dashboard",
    "health",
    "meetings",
    "sessions",
    "users",
]
