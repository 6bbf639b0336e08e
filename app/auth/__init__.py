# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Bearer-token authentication backed by Supabase Auth.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

from app.auth.dependencies import (
    get_current_user,
    get_optional_user,
    require_admin,
    verify_access_token,
)
from app.auth.models import AuthUser

__all__ = [
    "get_current_user",
    "get_optional_user",
    "require_admin",
    "verify_access_token",
    "AuthUser",
]
