# =============================================================================
# app/responses.py - Response Envelope
# =============================================================================
# Every successful response uses the same envelope:
#   {"success": true, "data": ..., "message"?: ..., "pagination"?: {...}}
# Errors are produced by the handlers in app/exceptions.py.
# =============================================================================

import math
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class Pagination(BaseModel):
    """Pagination metadata attached to list responses."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0, serialization_alias="totalPages")

    @classmethod
    def build(cls, page: int, limit: int, total: int | None) -> "Pagination":
        total = total or 0
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))


def envelope(
    data: Any = None,
    message: str | None = None,
    pagination: Pagination | None = None,
) -> dict[str, Any]:
    """Build the success envelope body."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination.model_dump(by_alias=True)
    return body


def success_response(
    data: Any = None,
    message: str | None = None,
    status_code: int = 200,
    pagination: Pagination | None = None,
) -> JSONResponse:
    """
    Wrap a result in the success envelope.

    Args:
        data: Payload (rows, dicts, pydantic models)
        message: Optional human-readable message
        status_code: 200 by default, 201 for creations
        pagination: Metadata for list endpoints

    Returns:
        JSONResponse ready to return from a route
    """
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope(data, message, pagination), by_alias=True),
    )
