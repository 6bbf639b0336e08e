# =============================================================================
# core/validation.py - Schema Validator
# =============================================================================
# Validates raw request payloads against the pydantic schemas in core/models.
#
# validate_schema() never raises: the outcome is a ValidationResult holding
# either the normalized model or a list of field errors. Route handlers
# decide what to do with a failure (see app.exceptions.validate_or_raise).
#
# Usage:
#   result = validate_schema(LoginRequest, payload)
#   if not result.success:
#       return result.errors
#   login = result.data
# =============================================================================

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# pydantic prefixes messages raised from validators with this
_VALUE_ERROR_PREFIX = "Value error, "

# Leading loc segments FastAPI adds to request-parsing errors
_REQUEST_LOCATIONS = {"body", "query", "path", "header"}


@dataclass(frozen=True)
class FieldError:
    """One failed field: where, why, and the machine-readable error type."""

    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


@dataclass
class ValidationResult(Generic[ModelT]):
    """Outcome of validate_schema: ``data`` on success, ``errors`` otherwise."""

    success: bool
    data: ModelT | None = None
    errors: list[FieldError] = field(default_factory=list)


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in _REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts) or "unknown"


def field_errors_from_pydantic(errors: Iterable[Mapping[str, Any]]) -> list[FieldError]:
    """Convert pydantic / FastAPI error dicts into FieldErrors."""
    result = []
    for err in errors:
        message = str(err.get("msg", "Invalid value"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        result.append(FieldError(
            field=_field_name(err.get("loc", ())),
            message=message,
            code=str(err.get("type", "invalid")),
        ))
    return result


def validate_schema(schema: type[ModelT], payload: Any) -> ValidationResult[ModelT]:
    """
    Validate a candidate record against a schema.

    Unknown keys are dropped and defaults applied by the schema itself.
    A missing payload is treated as an empty object, so schemas whose
    fields are all optional accept an empty request.

    Args:
        schema: Pydantic model class
        payload: Raw decoded JSON body or query-parameter mapping

    Returns:
        ValidationResult with the parsed model or the field errors
    """
    if payload is None:
        payload = {}

    if not isinstance(payload, Mapping):
        return ValidationResult(
            success=False,
            errors=[FieldError("body", "Request body must be a JSON object", "model_type")],
        )

    try:
        return ValidationResult(success=True, data=schema.model_validate(dict(payload)))
    except ValidationError as e:
        return ValidationResult(success=False, errors=field_errors_from_pydantic(e.errors()))
