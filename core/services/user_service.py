# =============================================================================
# core/services/user_service.py - Profiles, Preferences & Admin User Ops
# =============================================================================

import logging
from typing import Any

from app.exceptions import InternalError, NotFoundError, ValidationFailedError
from core.models.user import (
    DEFAULT_WEEKLY_GOAL,
    ProfileUpdate,
    UserPreferencesUpdate,
    UserRole,
    default_preferences,
)
from core.validation import FieldError
from lib.supabase_client import Filter, SupabaseClientError, SupabaseGateway
from lib.utils import iso_now

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
PREFERENCES_TABLE = "user_preferences"
STATS_TABLE = "user_stats"

PROFILE_COLUMNS = (
    "id, username, display_name, email, avatar_url, bio, role, "
    "created_at, updated_at, last_login_at"
)
USER_LIST_COLUMNS = "id, username, email, display_name, role, created_at, last_login_at"


class UserService:
    """
    Service for user-owned records: the `users` profile row, the
    `user_preferences` row and the admin listing/deletion paths.
    """

    def __init__(self, gateway: SupabaseGateway, weekly_goal: int = DEFAULT_WEEKLY_GOAL):
        self.gateway = gateway
        self.weekly_goal = weekly_goal

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    def find_profile(self, user_id: str) -> dict[str, Any] | None:
        try:
            return self.gateway.select_one(
                USERS_TABLE, columns=PROFILE_COLUMNS, filters=[Filter.eq("id", user_id)]
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to load profile for user {user_id}: {e}")
            raise InternalError("Failed to retrieve profile")

    def _optional_row(self, table: str, user_id: str) -> dict[str, Any] | None:
        try:
            return self.gateway.select_one(table, filters=[Filter.eq("user_id", user_id)])
        except SupabaseClientError as e:
            logger.warning(f"Failed to load {table} for user {user_id}: {e}")
            return None

    def get_profile(self, user_id: str) -> dict[str, Any]:
        """
        Profile with preferences and stats attached.

        Preferences and stats are null when missing or unreadable.

        Raises:
            NotFoundError: If the user has no profile row
        """
        profile = self.find_profile(user_id)
        if profile is None:
            raise NotFoundError("User profile not found")
        return {
            "profile": profile,
            "preferences": self._optional_row(PREFERENCES_TABLE, user_id),
            "stats": self._optional_row(STATS_TABLE, user_id),
        }

    def update_profile(self, user_id: str, updates: ProfileUpdate) -> dict[str, Any]:
        """
        Write the fields the client sent.

        Raises:
            NotFoundError: If the user has no profile row
            ValidationFailedError: If the new email belongs to another user
        """
        existing = self.find_profile(user_id)
        if existing is None:
            raise NotFoundError("User not found")

        values = updates.to_record(partial=True)

        new_email = values.get("email")
        if new_email and new_email != existing.get("email"):
            try:
                taken = self.gateway.select_one(
                    USERS_TABLE,
                    columns="id",
                    filters=[Filter.eq("email", new_email), Filter.neq("id", user_id)],
                )
            except SupabaseClientError as e:
                logger.error(f"Email uniqueness check failed for user {user_id}: {e}")
                raise InternalError("Failed to update profile")
            if taken is not None:
                raise ValidationFailedError(
                    [FieldError(field="email", message="Email already in use", code="email_taken")]
                )

        values["updated_at"] = iso_now()
        try:
            rows = self.gateway.update(USERS_TABLE, values, filters=[Filter.eq("id", user_id)])
        except SupabaseClientError as e:
            logger.error(f"Profile update failed for user {user_id}: {e}")
            raise InternalError("Failed to update profile")

        logger.info(f"Updated profile for user {user_id}")
        return rows[0] if rows else {**existing, **values}

    def get_role(self, user_id: str) -> str:
        """Role from the profile row; users without one count as regular users."""
        try:
            row = self.gateway.select_one(
                USERS_TABLE, columns="role", filters=[Filter.eq("id", user_id)]
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to load role for user {user_id}: {e}")
            raise InternalError("Failed to verify permissions")
        return (row or {}).get("role") or UserRole.USER.value

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    def get_preferences(self, user_id: str) -> dict[str, Any]:
        """
        Stored preferences, creating the default row on first read.
        """
        try:
            preferences = self.gateway.select_one(
                PREFERENCES_TABLE, filters=[Filter.eq("user_id", user_id)]
            )
            if preferences is not None:
                return preferences

            preferences = self.gateway.insert(
                PREFERENCES_TABLE,
                {"user_id": user_id, **default_preferences(self.weekly_goal)},
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to load preferences for user {user_id}: {e}")
            raise InternalError("Failed to retrieve preferences")

        logger.info(f"Created default preferences for user {user_id}")
        return preferences

    def update_preferences(self, user_id: str, preferences: UserPreferencesUpdate) -> dict[str, Any]:
        """Replace the preferences row, inserting it if missing."""
        values = preferences.to_record()
        try:
            existing = self.gateway.select_one(
                PREFERENCES_TABLE, columns="id", filters=[Filter.eq("user_id", user_id)]
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to check preferences for user {user_id}: {e}")
            raise InternalError("Failed to check existing preferences")

        if existing is None:
            try:
                return self.gateway.insert(PREFERENCES_TABLE, {"user_id": user_id, **values})
            except SupabaseClientError as e:
                logger.error(f"Failed to create preferences for user {user_id}: {e}")
                raise InternalError("Failed to create preferences")

        values["updated_at"] = iso_now()
        try:
            rows = self.gateway.update(
                PREFERENCES_TABLE, values, filters=[Filter.eq("user_id", user_id)]
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to update preferences for user {user_id}: {e}")
            raise InternalError("Failed to update preferences")
        return rows[0] if rows else {"user_id": user_id, **values}

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    def list_users(self) -> list[dict[str, Any]]:
        """All users, newest first."""
        try:
            result = self.gateway.select(
                USERS_TABLE, columns=USER_LIST_COLUMNS, order=("created_at",), desc=True
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to fetch users: {e}")
            raise InternalError("Failed to fetch users")
        return result.data

    def delete_user(self, user_id: str) -> None:
        """Delete a user row; owned rows go with it through cascading keys."""
        try:
            self.gateway.delete(USERS_TABLE, filters=[Filter.eq("id", user_id)])
        except SupabaseClientError as e:
            logger.error(f"Failed to delete user {user_id}: {e}")
            raise InternalError(f"Failed to delete user: {e.message}")
        logger.info(f"Deleted user {user_id}")
