# =============================================================================
# core/models/base.py - Shared Schema Base
# =============================================================================
# Request schemas accept camelCase wire names (rememberMe, scheduledTime) as
# aliases of snake_case attributes, drop unknown keys, and dump back to the
# snake_case column names used by the Supabase tables.
# =============================================================================

import re
from typing import Any

from pydantic import BaseModel, ConfigDict

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ApiSchema(BaseModel):
    """Base class for every request schema."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    def to_record(self, partial: bool = False) -> dict[str, Any]:
        """
        Dump to a JSON-ready dict keyed by column name.

        Args:
            partial: Only include fields the client actually sent
                     (used by update schemas so absent fields stay untouched)
        """
        return self.model_dump(mode="json", exclude_unset=partial)


def normalize_email(value: str | None) -> str | None:
    """Lower-case and check an email address; None passes through."""
    if value is None:
        return None
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


def reject_null(value: Any) -> Any:
    """Before-validator for optional fields that may be omitted but not sent as null."""
    if value is None:
        raise ValueError("Expected value, received null")
    return value
