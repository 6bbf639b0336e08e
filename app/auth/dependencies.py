# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# A bearer token is resolved in two steps:
# - Supabase Auth get_user (authoritative, works for every signing scheme)
# - HS256 (legacy Supabase JWT secret) as local fallback when configured
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from app.auth.models import AuthUser, TokenPayload
from app.config import Settings, get_settings
from app.dependencies import UserServiceDep, get_gateway_optional
from app.exceptions import BackendUnavailableError, ForbiddenError, UnauthorizedError
from core.models.user import UserRole
from core.services import AuthService
from lib.supabase_client import SupabaseGateway

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor; a missing header is our 401, not FastAPI's 403
security_optional = HTTPBearer(auto_error=False)

JWT_AUDIENCE = "authenticated"


def _decode_locally(token: str, secret: str) -> AuthUser:
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"], audience=JWT_AUDIENCE)
        claims = TokenPayload.model_validate(payload)
    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise UnauthorizedError("Token has expired")
    except (JWTError, ValidationError) as e:
        logger.warning(f"JWT validation failed: {e}")
        raise UnauthorizedError("Invalid or expired token")

    return AuthUser(id=claims.sub, email=claims.email)


def verify_access_token(
    token: Optional[str],
    gateway: Optional[SupabaseGateway],
    jwt_secret: Optional[str],
) -> AuthUser:
    """
    Resolve a bearer token to the authenticated user.

    Args:
        token: Raw bearer token (None when the header is absent)
        gateway: Supabase gateway, if configured
        jwt_secret: Legacy HS256 secret, if configured

    Returns:
        AuthUser with id and email

    Raises:
        UnauthorizedError: Token missing, invalid or expired
        BackendUnavailableError: No way to verify tokens is configured
    """
    if not token:
        raise UnauthorizedError("Access token required")

    if gateway is None and not jwt_secret:
        raise BackendUnavailableError()

    if gateway is not None:
        account = AuthService(gateway).resolve_token(token)
        if account is not None:
            logger.debug(f"Authenticated user: {account.id}")
            return AuthUser(id=account.id, email=account.email)

    if jwt_secret:
        return _decode_locally(token, jwt_secret)

    logger.warning("Rejected bearer token")
    raise UnauthorizedError("Invalid or expired token")


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_optional)],
    gateway: Annotated[Optional[SupabaseGateway], Depends(get_gateway_optional)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthUser:
    """
    Extract and validate the caller from the Authorization header.

    Raises:
        UnauthorizedError: 401 if the token is missing, invalid or expired
    """
    token = credentials.credentials if credentials else None
    return verify_access_token(token, gateway, settings.SUPABASE_JWT_SECRET)


CurrentUser = Annotated[AuthUser, Depends(get_current_user)]


async def get_optional_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_optional)],
    gateway: Annotated[Optional[SupabaseGateway], Depends(get_gateway_optional)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[AuthUser]:
    """
    Caller for endpoints that also serve anonymous requests.

    No header, or a token that does not verify, reads as anonymous.
    """
    if credentials is None:
        return None
    try:
        return verify_access_token(credentials.credentials, gateway, settings.SUPABASE_JWT_SECRET)
    except UnauthorizedError as e:
        logger.debug(f"Treating request as anonymous: {e.message}")
        return None


OptionalUser = Annotated[Optional[AuthUser], Depends(get_optional_user)]


async def require_admin(user: CurrentUser, users: UserServiceDep) -> AuthUser:
    """
    Require the caller's profile role to be admin.

    Raises:
        ForbiddenError: 403 for non-admin callers
    """
    if users.get_role(user.id) != UserRole.ADMIN.value:
        logger.warning(f"Non-admin user {user.id} denied admin access")
        raise ForbiddenError("Admin access required")
    return user


AdminUser = Annotated[AuthUser, Depends(require_admin)]
