# =============================================================================
# core/models/auth.py - Authentication Schemas
# =============================================================================
# Request bodies for the /auth endpoints and the password-strength report.
# =============================================================================

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .base import ApiSchema, normalize_email


class LoginRequest(ApiSchema):
    """
    Login with an email address or a bare username.

    Example:
        {"username": "alice", "password": "secret", "rememberMe": true}
    """

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)
    remember_me: bool = Field(default=False, alias="rememberMe")

    @property
    def is_email(self) -> bool:
        return "@" in self.username


class RegisterRequest(ApiSchema):
    """
    New account registration.

    Example:
        {"username": "alice", "email": "alice@example.com", "password": "secret"}
    """

    username: str = Field(..., min_length=1, max_length=50)
    email: str
    password: str = Field(..., min_length=4)
    display_name: str | None = Field(default=None, max_length=100, alias="displayName")

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        return normalize_email(value)


class RefreshRequest(ApiSchema):
    """Refresh-token exchange. A missing token is an auth failure, not a field error."""

    refresh_token: str | None = Field(default=None, alias="refreshToken")


class PasswordCheckRequest(ApiSchema):
    password: str = ""


class PasswordStrength(BaseModel):
    """Password score shown while the user types a new password."""

    is_valid: bool = Field(..., serialization_alias="isValid")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    score: int = Field(..., ge=0, le=100)
    strength: Literal["weak", "medium", "strong"]
