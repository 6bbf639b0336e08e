# =============================================================================
# app/exceptions.py - Custom Exceptions & Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every failure leaves the API in the standard envelope:
#   {"success": false, "message": ..., "code": ..., "errors"?: [...]}
# Following the principle: "Errors should tell HOW to fix, not just WHAT failed."
# =============================================================================

import json
import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.validation import FieldError, ModelT, field_errors_from_pydantic, validate_schema
from lib.supabase_client import SupabaseClientError

logger = logging.getLogger(__name__)


class PomodoroAPIException(Exception):
    """
    Base exception for the Pomodoro API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "POMODORO_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
        errors: list[FieldError] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}
        self.errors = errors

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the error envelope."""
        result: dict[str, Any] = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.errors is not None:
            result["errors"] = [e.to_dict() for e in self.errors]
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Request Exceptions
# =============================================================================

class ValidationFailedError(PomodoroAPIException):
    """Raised when a payload does not satisfy its schema."""

    def __init__(self, errors: list[FieldError], message: str = "Validation failed"):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            suggestion="Fix the listed fields and resend the request",
            errors=errors,
        )


class BadRequestError(PomodoroAPIException):
    """Raised for malformed requests that are not field-level validation failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="BAD_REQUEST",
            status_code=400,
            details=details,
        )


# =============================================================================
# Auth Exceptions
# =============================================================================

class UnauthorizedError(PomodoroAPIException):
    """Raised when a credential is missing, invalid or expired."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=401,
            suggestion="Log in again or refresh your access token",
        )


class ForbiddenError(PomodoroAPIException):
    """Raised when an authenticated caller lacks the required role or flag."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


# =============================================================================
# Resource Exceptions
# =============================================================================

class NotFoundError(PomodoroAPIException):
    """Raised when a resource doesn't exist or belongs to another user."""

    def __init__(self, message: str = "Resource not found", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details=details,
        )


class ConflictError(PomodoroAPIException):
    """Raised when a write collides with existing state (taken name, occupied slot)."""

    def __init__(self, message: str = "Resource conflict", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            details=details,
        )


# =============================================================================
# Backend Exceptions
# =============================================================================

class InternalError(PomodoroAPIException):
    """Raised when a backend call fails unexpectedly."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(
            message=message,
            code="INTERNAL_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
        )


class BackendUnavailableError(PomodoroAPIException):
    """Raised when the Supabase backend is not configured or not reachable."""

    def __init__(self, message: str = "Database access not available"):
        super().__init__(
            message=message,
            code="BACKEND_UNAVAILABLE",
            status_code=503,
            suggestion="Set SUPABASE_URL, SUPABASE_ANON_KEY and SUPABASE_SERVICE_KEY",
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def pomodoro_exception_handler(
    request: Request,
    exc: PomodoroAPIException
) -> JSONResponse:
    """Convert PomodoroAPIException to the JSON error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle FastAPI request-parsing errors (malformed JSON, wrong body type).

    Reshaped into the same 400 field-error envelope the schema validator uses.
    """
    error = ValidationFailedError(field_errors_from_pydantic(exc.errors()))
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict()
    )


async def supabase_exception_handler(
    request: Request,
    exc: SupabaseClientError
) -> JSONResponse:
    """Backstop for gateway errors a service did not translate."""
    logger.error(f"Unhandled backend error on {request.url.path}: {exc}")
    error = InternalError("Backend request failed")
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict()
    )


# =============================================================================
# Validation Helper
# =============================================================================

def validate_or_raise(schema: type[ModelT], payload: Any) -> ModelT:
    """
    Run the schema validator and short-circuit the request on failure.

    Raises:
        ValidationFailedError: 400 with the validator's field errors verbatim
    """
    result = validate_schema(schema, payload)
    if not result.success:
        raise ValidationFailedError(result.errors)
    return result.data


async def read_json_body(request: Request) -> Any:
    """
    Decode the request body as JSON; an empty body reads as None.

    Handlers call this themselves instead of declaring a Body parameter,
    so auth dependencies have already run and an anonymous request with a
    broken body still gets 401.

    Raises:
        ValidationFailedError: 400 if the body is not valid JSON
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationFailedError([FieldError("body", "Invalid JSON", "json_invalid")])
