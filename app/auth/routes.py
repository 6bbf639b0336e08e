# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Login, registration and token lifecycle against Supabase Auth, plus
# token introspection for the signed-in client.
#
# Endpoints:
#   POST /auth/login              - Email or username + password
#   POST /auth/register           - New account (seeds profile/preferences/stats)
#   POST /auth/refresh            - Exchange refresh token
#   POST /auth/logout             - Revoke session (always succeeds)
#   GET  /auth/me                 - Current user's profile
#   GET  /auth/verify             - Check a stored token
#   POST /auth/password-strength  - Score a candidate password
# =============================================================================

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials

from app.auth.dependencies import CurrentUser, security_optional
from app.dependencies import AuthServiceDep, UserServiceDep, get_gateway_optional
from app.exceptions import InternalError, read_json_body, validate_or_raise
from app.responses import success_response
from core.models.auth import LoginRequest, PasswordCheckRequest, RefreshRequest, RegisterRequest
from core.services import AuthService, check_password_strength
from lib.supabase_client import SupabaseGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

@router.post("/login")
async def login(request: Request, auth: AuthServiceDep):
    """
    Log in with an email address or a bare username.

    Returns:
        user profile, session tokens and stored preferences

    Raises:
        400: Validation failed or upstream auth error
        401: Invalid credentials or unconfirmed email
    """
    credentials = validate_or_raise(LoginRequest, await read_json_body(request))
    data = auth.login(credentials)
    return success_response(data, "Login successful")


@router.post("/register")
async def register(request: Request, auth: AuthServiceDep):
    """
    Create an account.

    Raises:
        400: Validation failed or upstream auth error
        409: Username or email already taken
    """
    registration = validate_or_raise(RegisterRequest, await read_json_body(request))
    data, message = auth.register(registration)
    return success_response(data, message, status_code=201)


@router.post("/refresh")
async def refresh(request: Request, auth: AuthServiceDep):
    """
    Exchange a refresh token for a new token pair.

    Raises:
        401: Missing, invalid or expired refresh token
    """
    body = validate_or_raise(RefreshRequest, await read_json_body(request))
    data = auth.refresh(body.refresh_token)
    return success_response(data, "Token refreshed successfully")


@router.post("/logout")
async def logout(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_optional)],
    gateway: Annotated[Optional[SupabaseGateway], Depends(get_gateway_optional)],
):
    """
    Revoke the caller's session.

    Always answers 200: clients drop their tokens regardless of whether the
    upstream revocation went through.
    """
    token = credentials.credentials if credentials else None
    if gateway is None:
        message = "Logout successful" if token else "Already logged out"
    else:
        message = AuthService(gateway).logout(token)
    return success_response(None, message)


@router.get("/me")
async def get_current_user_info(user: CurrentUser, users: UserServiceDep):
    """
    Get the current authenticated user's profile.

    Falls back to the token identity when no profile row exists yet.
    """
    try:
        profile = users.find_profile(user.id)
    except InternalError as e:
        logger.warning(f"Could not fetch user profile: {e}")
        profile = None

    return success_response(profile or {"id": user.id, "email": user.email})


@router.get("/verify")
async def verify_token(user: CurrentUser):
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.
    """
    return success_response({"valid": True, "userId": user.id, "email": user.email})


@router.post("/password-strength")
async def password_strength(request: Request):
    """Score a candidate password. Works without a backend."""
    body = validate_or_raise(PasswordCheckRequest, await read_json_body(request))
    result = check_password_strength(body.password)
    return success_response(result.model_dump(by_alias=True))
