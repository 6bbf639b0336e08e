# =============================================================================
# core/services/auth_service.py - Login, Registration & Token Lifecycle
# =============================================================================
# Wraps the Supabase Auth calls of the gateway and maps upstream error
# messages onto API errors:
#   "Invalid login credentials" -> 401
#   "Email not confirmed"       -> 401
#   "already registered"        -> 409
#   invalid refresh token       -> 401
#   anything else upstream      -> 400 with the upstream message
# =============================================================================

import logging
from typing import Any

from app.exceptions import BadRequestError, ConflictError, InternalError, UnauthorizedError
from core.models.auth import LoginRequest, PasswordStrength, RegisterRequest
from core.models.user import DEFAULT_WEEKLY_GOAL, UserRole, default_preferences, initial_stats
from lib.supabase_client import (
    AuthAccount,
    Filter,
    SupabaseClientError,
    SupabaseGateway,
)
from lib.utils import iso_now

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
PREFERENCES_TABLE = "user_preferences"
STATS_TABLE = "user_stats"

LOGIN_PROFILE_COLUMNS = (
    "id, username, display_name, email, avatar_url, bio, role, created_at, last_login_at"
)

INVALID_REFRESH_MARKERS = ("invalid_grant", "invalid refresh token", "refresh token not found")

MIN_PASSWORD_LENGTH = 4


# =============================================================================
# Password Strength
# =============================================================================

def check_password_strength(password: str) -> PasswordStrength:
    """
    Score a password by length: 10 points per character, capped at 100.

    Below 50 is weak, below 80 medium, otherwise strong. Passwords shorter
    than 4 characters are invalid.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not password:
        errors.append("Password is required")
        return PasswordStrength(is_valid=False, errors=errors, score=0, strength="weak")

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    elif len(password) < 8:
        warnings.append("Longer passwords are harder to guess")

    score = min(len(password) * 10, 100)
    if score < 50:
        strength = "weak"
    elif score < 80:
        strength = "medium"
    else:
        strength = "strong"

    return PasswordStrength(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        score=score,
        strength=strength,
    )


# =============================================================================
# Service
# =============================================================================

class AuthService:
    """Authentication flows against Supabase Auth plus the `users` table."""

    def __init__(self, gateway: SupabaseGateway, weekly_goal: int = DEFAULT_WEEKLY_GOAL):
        self.gateway = gateway
        self.weekly_goal = weekly_goal

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    def _email_for_username(self, username: str) -> str:
        try:
            row = self.gateway.select_one(
                USERS_TABLE, columns="email", filters=[Filter.eq("username", username.lower())]
            )
        except SupabaseClientError as e:
            logger.warning(f"Username lookup failed for {username.lower()}: {e}")
            row = None
        if not row or not row.get("email"):
            raise UnauthorizedError("Invalid username or password")
        return row["email"]

    def _best_effort_select(self, table: str, columns: str, column: str, value: str) -> dict[str, Any] | None:
        try:
            return self.gateway.select_one(table, columns=columns, filters=[Filter.eq(column, value)])
        except SupabaseClientError as e:
            logger.warning(f"Failed to load {table} row for {value}: {e}")
            return None

    def login(self, request: LoginRequest) -> dict[str, Any]:
        """
        Password login with an email address or username.

        Returns:
            {"user": {...}, "session": {...tokens}, "preferences": {...} | None}

        Raises:
            UnauthorizedError: Unknown username, bad credentials, unconfirmed email
            BadRequestError: Any other upstream auth error
        """
        email = request.username if request.is_email else self._email_for_username(request.username)

        try:
            result = self.gateway.sign_in(email, request.password)
        except SupabaseClientError as e:
            if "Invalid login credentials" in e.message:
                logger.warning(f"Rejected login for {request.username}")
                raise UnauthorizedError("Invalid username or password")
            if "Email not confirmed" in e.message:
                raise UnauthorizedError("Please verify your email address before logging in")
            raise BadRequestError(e.message)

        account, tokens = result.account, result.tokens
        if account is None or tokens is None:
            raise UnauthorizedError("Authentication failed")

        try:
            now = iso_now()
            self.gateway.update(
                USERS_TABLE,
                {"last_login_at": now, "updated_at": now},
                filters=[Filter.eq("id", account.id)],
            )
        except SupabaseClientError as e:
            logger.warning(f"Failed to stamp last login for user {account.id}: {e}")

        profile = self._best_effort_select(USERS_TABLE, LOGIN_PROFILE_COLUMNS, "id", account.id) or {}
        preferences = self._best_effort_select(PREFERENCES_TABLE, "*", "user_id", account.id)

        logger.info(f"User {account.id} logged in")
        return {
            "user": {
                "id": account.id,
                "email": account.email,
                "username": profile.get("username") or request.username.lower(),
                "displayName": (
                    profile.get("display_name")
                    or account.metadata.get("display_name")
                    or request.username
                ),
                "avatarUrl": profile.get("avatar_url") or account.metadata.get("avatar_url"),
                "bio": profile.get("bio"),
                "role": profile.get("role") or UserRole.USER.value,
                "emailConfirmed": account.email_confirmed,
                "createdAt": account.created_at,
                "lastLoginAt": profile.get("last_login_at"),
            },
            "session": tokens.to_client(),
            "preferences": preferences,
        }

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def _seed(self, table: str, row: dict[str, Any], user_id: str) -> None:
        try:
            self.gateway.insert(table, row)
        except SupabaseClientError as e:
            logger.warning(f"Failed to seed {table} for new user {user_id}: {e}")

    def register(self, request: RegisterRequest) -> tuple[dict[str, Any], str]:
        """
        Create the auth account, then seed the profile, preferences and stats rows.

        Seeding is best-effort: the account exists once sign-up succeeds.

        Returns:
            (response data, message)

        Raises:
            ConflictError: Username taken (checked before sign-up) or email registered
            BadRequestError: Any other upstream sign-up error
        """
        username = request.username.lower()
        try:
            existing = self.gateway.select_one(
                USERS_TABLE, columns="id", filters=[Filter.eq("username", username)]
            )
        except SupabaseClientError as e:
            logger.error(f"Username availability check failed for {username}: {e}")
            raise InternalError("Registration failed")
        if existing is not None:
            raise ConflictError("Username already exists")

        display_name = request.display_name or request.username
        try:
            result = self.gateway.sign_up(
                request.email,
                request.password,
                {"username": username, "display_name": display_name},
            )
        except SupabaseClientError as e:
            if "already registered" in e.message:
                raise ConflictError("Email already registered")
            raise BadRequestError(e.message)

        account = result.account
        if account is None:
            raise InternalError("User registration failed")

        now = iso_now()
        self._seed(USERS_TABLE, {
            "id": account.id,
            "username": username,
            "email": request.email,
            "display_name": display_name,
            "created_at": now,
            "updated_at": now,
        }, account.id)
        self._seed(PREFERENCES_TABLE, {
            "user_id": account.id,
            **default_preferences(self.weekly_goal),
            "created_at": now,
            "updated_at": now,
        }, account.id)
        self._seed(STATS_TABLE, {
            "user_id": account.id,
            **initial_stats(self.weekly_goal),
            "created_at": now,
            "updated_at": now,
        }, account.id)

        logger.info(f"Registered user {account.id} ({username})")
        message = (
            "Registration successful"
            if account.email_confirmed
            else "Registration successful. Please check your email to verify your account."
        )
        data = {
            "user": {
                "id": account.id,
                "email": account.email,
                "username": username,
                "displayName": display_name,
                "emailConfirmed": account.email_confirmed,
                "createdAt": account.created_at,
            },
            "session": result.tokens.to_client() if result.tokens else None,
        }
        return data, message

    # -------------------------------------------------------------------------
    # Token Lifecycle
    # -------------------------------------------------------------------------

    def refresh(self, refresh_token: str | None) -> dict[str, Any]:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            UnauthorizedError: Missing, invalid or expired refresh token
            BadRequestError: Any other upstream error
        """
        if not refresh_token:
            raise UnauthorizedError("Refresh token required")

        try:
            result = self.gateway.refresh_session(refresh_token)
        except SupabaseClientError as e:
            lowered = e.message.lower()
            if any(marker in lowered for marker in INVALID_REFRESH_MARKERS):
                raise UnauthorizedError("Invalid or expired refresh token")
            raise BadRequestError(e.message)

        account, tokens = result.account, result.tokens
        if account is None or tokens is None:
            raise UnauthorizedError("Failed to refresh session")

        return {
            "session": tokens.to_client(),
            "user": {
                "id": account.id,
                "email": account.email,
                "emailConfirmed": account.email_confirmed,
            },
        }

    def logout(self, access_token: str | None) -> str:
        """
        Revoke the caller's session. Never fails.

        Returns:
            Message for the response envelope
        """
        if not access_token:
            return "Already logged out"
        try:
            self.gateway.sign_out(access_token)
        except SupabaseClientError as e:
            logger.warning(f"Sign-out failed upstream, treating as logged out: {e}")
        return "Logout successful"

    def resolve_token(self, access_token: str) -> AuthAccount | None:
        """Ask Supabase Auth who owns a token; None if it can't say."""
        try:
            return self.gateway.get_user(access_token)
        except SupabaseClientError as e:
            logger.warning(f"Token lookup failed upstream: {e}")
            return None

