# =============================================================================
# lib/supabase_client.py - Supabase Data Gateway
# =============================================================================
# This module provides a typed wrapper for the hosted Supabase backend:
# - PostgREST table queries (filter, sort, paginate, insert, update, delete)
# - Supabase Auth (sign-up, sign-in, refresh, sign-out, token lookup)
#
# The gateway is constructed once at application startup and injected into
# services; nothing in this module holds a global client.
#
# Every failure is raised as SupabaseClientError so callers can map it to an
# API error without knowing supabase-py's exception types.
#
# Usage:
#   gateway = create_gateway(settings)
#   rows = gateway.select("meetings", filters=[Filter.eq("user_id", user_id)]).data
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, NamedTuple, Sequence
from uuid import UUID

from supabase import Client, ClientOptions, create_client

from lib.utils import ApplicationError, normalize_uuid

# Set up logging for this module
logger = logging.getLogger(__name__)

FILTER_OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "ilike", "in_")


class SupabaseClientError(ApplicationError):
    """
    Error during Supabase operations.

    Provides actionable error messages following the principle:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)


# =============================================================================
# Query Types
# =============================================================================

class Filter(NamedTuple):
    """A single PostgREST filter: ``column <op> value``."""

    column: str
    op: str
    value: Any

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "eq", value)

    @classmethod
    def neq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "neq", value)

    @classmethod
    def gte(cls, column: str, value: Any) -> "Filter":
        return cls(column, "gte", value)

    @classmethod
    def lte(cls, column: str, value: Any) -> "Filter":
        return cls(column, "lte", value)

    @classmethod
    def ilike(cls, column: str, value: Any) -> "Filter":
        return cls(column, "ilike", value)

    @classmethod
    def in_(cls, column: str, values: Sequence[Any]) -> "Filter":
        return cls(column, "in_", list(values))


@dataclass
class QueryResult:
    """Rows returned by a select, plus the exact total when it was requested."""

    data: list[dict[str, Any]] = field(default_factory=list)
    count: int | None = None


# =============================================================================
# Auth Types
# =============================================================================

@dataclass(frozen=True)
class AuthAccount:
    """Account record as known to Supabase Auth."""

    id: str
    email: str | None = None
    email_confirmed: bool = False
    created_at: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthTokens:
    """Access/refresh token pair issued by Supabase Auth."""

    access_token: str
    refresh_token: str
    expires_in: int | None = None
    expires_at: int | None = None
    token_type: str = "bearer"

    def to_client(self) -> dict[str, Any]:
        """Shape the tokens the way the web client stores them."""
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
            "expiresAt": self.expires_at,
            "tokenType": self.token_type,
        }


@dataclass(frozen=True)
class AuthResult:
    """Outcome of sign-up / sign-in / refresh."""

    account: AuthAccount | None
    tokens: AuthTokens | None


def _to_iso(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _account_from_user(user: Any) -> AuthAccount | None:
    if user is None:
        return None
    return AuthAccount(
        id=str(user.id),
        email=user.email,
        email_confirmed=bool(getattr(user, "email_confirmed_at", None)),
        created_at=_to_iso(getattr(user, "created_at", None)),
        metadata=dict(getattr(user, "user_metadata", None) or {}),
    )


def _tokens_from_session(session: Any) -> AuthTokens | None:
    if session is None:
        return None
    return AuthTokens(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        expires_at=session.expires_at,
        token_type=session.token_type or "bearer",
    )


# =============================================================================
# Gateway
# =============================================================================

class SupabaseGateway:
    """
    Typed wrapper for Supabase database and auth operations.

    Holds two clients:
    - auth_client: anon key, used for end-user auth flows
    - admin_client: service_role key, bypasses Row Level Security for
      server-side table access and auth admin calls

    Example:
        gateway = SupabaseGateway(auth_client, admin_client)
        result = gateway.select(
            "pomodoro_sessions",
            filters=[Filter.eq("user_id", user_id)],
            order=["start_time"],
            desc=True,
            offset=0,
            limit=20,
            count=True,
        )
        print(result.count, len(result.data))
    """

    def __init__(self, auth_client: Client, admin_client: Client):
        self.auth_client = auth_client
        self.admin_client = admin_client

    @staticmethod
    def _normalize(value: Any) -> Any:
        if isinstance(value, list):
            return [normalize_uuid(v) if isinstance(v, UUID) else v for v in value]
        return normalize_uuid(value) if isinstance(value, UUID) else value

    def _apply_filters(self, query: Any, filters: Sequence[Filter] | None) -> Any:
        for f in filters or ():
            if f.op not in FILTER_OPERATORS:
                raise SupabaseClientError(
                    message=f"Unsupported filter operator: {f.op}",
                    code="INVALID_FILTER",
                    suggestion=f"Use one of: {', '.join(FILTER_OPERATORS)}",
                    details={"column": f.column},
                )
            query = getattr(query, f.op)(f.column, self._normalize(f.value))
        return query

    # -------------------------------------------------------------------------
    # Table Operations
    # -------------------------------------------------------------------------

    def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] | None = None,
        order: Sequence[str] = (),
        desc: bool = False,
        offset: int | None = None,
        limit: int | None = None,
        count: bool = False,
    ) -> QueryResult:
        """
        Run a filtered, ordered, optionally paginated select.

        Args:
            table: Table name
            columns: PostgREST column list
            filters: Filters combined with AND
            order: Columns to order by, in priority order
            desc: Sort direction applied to every order column
            offset: Row offset (used with limit as a range)
            limit: Maximum rows to return
            count: Request the exact total row count

        Returns:
            QueryResult with rows and (if requested) the total count

        Raises:
            SupabaseClientError: If the query fails
        """
        try:
            if count:
                query = self.admin_client.table(table).select(columns, count="exact")
            else:
                query = self.admin_client.table(table).select(columns)
            query = self._apply_filters(query, filters)

            for column in order:
                query = query.order(column, desc=desc)

            if offset is not None and limit is not None:
                query = query.range(offset, offset + limit - 1)
            elif limit is not None:
                query = query.limit(limit)

            response = query.execute()
            rows = response.data or []
            logger.debug(f"Selected {len(rows)} rows from {table}")
            return QueryResult(data=rows, count=response.count if count else None)

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to query {table}: {e}",
                code="SELECT_FAILED",
                suggestion=f"Check that the {table} table exists and is accessible",
                details={"table": table},
            )

    def select_one(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] | None = None,
    ) -> dict[str, Any] | None:
        """
        Fetch the first row matching the filters.

        Returns:
            Row dict, or None if nothing matches

        Raises:
            SupabaseClientError: If the query fails
        """
        # limit(1) instead of .single(): no-match is an empty list, not a PGRST116 error
        result = self.select(table, columns=columns, filters=filters, limit=1)
        return result.data[0] if result.data else None

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one row and return it as stored.

        Raises:
            SupabaseClientError: If insert fails or returns nothing
        """
        data = {k: self._normalize(v) for k, v in row.items()}

        try:
            response = self.admin_client.table(table).insert(data).execute()

            if response.data:
                logger.debug(f"Inserted row into {table}")
                return response.data[0]
            raise SupabaseClientError(
                message=f"Insert into {table} returned no data",
                code="INSERT_NO_DATA",
            )

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert into {table}: {e}",
                code="INSERT_FAILED",
                details={"table": table},
            )

    def update(
        self,
        table: str,
        values: dict[str, Any],
        *,
        filters: Sequence[Filter],
    ) -> list[dict[str, Any]]:
        """
        Update every row matching the filters.

        Filters are mandatory so an unscoped update cannot be issued by mistake.

        Returns:
            Updated rows

        Raises:
            SupabaseClientError: If the update fails
        """
        if not filters:
            raise SupabaseClientError(
                message=f"Refusing to update {table} without filters",
                code="UNSCOPED_UPDATE",
            )

        data = {k: self._normalize(v) for k, v in values.items()}

        try:
            query = self._apply_filters(self.admin_client.table(table).update(data), filters)
            response = query.execute()
            return response.data or []

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update {table}: {e}",
                code="UPDATE_FAILED",
                details={"table": table},
            )

    def delete(self, table: str, *, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        """
        Delete every row matching the filters.

        Returns:
            Deleted rows

        Raises:
            SupabaseClientError: If the delete fails
        """
        if not filters:
            raise SupabaseClientError(
                message=f"Refusing to delete from {table} without filters",
                code="UNSCOPED_DELETE",
            )

        try:
            query = self._apply_filters(self.admin_client.table(table).delete(), filters)
            response = query.execute()
            return response.data or []

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete from {table}: {e}",
                code="DELETE_FAILED",
                details={"table": table},
            )

    # -------------------------------------------------------------------------
    # Auth Operations
    # -------------------------------------------------------------------------

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> AuthResult:
        """Create an auth account; the session is None until email is confirmed."""
        try:
            response = self.auth_client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": metadata or {}},
            })
        except Exception as e:
            raise SupabaseClientError(
                message=str(e),
                code="SIGN_UP_FAILED",
                details={"email": email},
            )
        return AuthResult(
            account=_account_from_user(response.user),
            tokens=_tokens_from_session(response.session),
        )

    def sign_in(self, email: str, password: str) -> AuthResult:
        """Password sign-in."""
        try:
            response = self.auth_client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as e:
            raise SupabaseClientError(
                message=str(e),
                code="SIGN_IN_FAILED",
            )
        return AuthResult(
            account=_account_from_user(response.user),
            tokens=_tokens_from_session(response.session),
        )

    def refresh_session(self, refresh_token: str) -> AuthResult:
        """Exchange a refresh token for a new token pair."""
        try:
            response = self.auth_client.auth.refresh_session(refresh_token)
        except Exception as e:
            raise SupabaseClientError(
                message=str(e),
                code="REFRESH_FAILED",
            )
        return AuthResult(
            account=_account_from_user(response.user),
            tokens=_tokens_from_session(response.session),
        )

    def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""
        try:
            self.admin_client.auth.admin.sign_out(access_token)
        except Exception as e:
            raise SupabaseClientError(
                message=str(e),
                code="SIGN_OUT_FAILED",
            )

    def get_user(self, access_token: str) -> AuthAccount | None:
        """
        Resolve an access token to its account.

        Returns:
            AuthAccount, or None if the token is not recognised

        Raises:
            SupabaseClientError: If the auth service cannot be reached
        """
        try:
            response = self.auth_client.auth.get_user(access_token)
        except Exception as e:
            raise SupabaseClientError(
                message=str(e),
                code="GET_USER_FAILED",
            )
        if response is None:
            return None
        return _account_from_user(response.user)


# =============================================================================
# Factory
# =============================================================================

def create_gateway(settings: Any) -> SupabaseGateway | None:
    """
    Build the gateway from application settings.

    Returns None when the Supabase URL or keys are not configured; request
    handlers then answer 503 instead of failing at import time.

    Raises:
        SupabaseClientError: If client creation fails with settings present
    """
    if not settings.supabase_configured:
        logger.warning("Supabase is not configured; data endpoints will return 503")
        return None

    try:
        # Tokens belong to the caller, never to the shared client.
        # Each client gets its own options: create_client writes auth headers into them.
        auth_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            ClientOptions(auto_refresh_token=False, persist_session=False),
        )
        admin_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY,
            ClientOptions(auto_refresh_token=False, persist_session=False),
        )
        logger.info("Supabase clients initialized successfully")
    except Exception as e:
        raise SupabaseClientError(
            message=f"Failed to create Supabase client: {e}",
            code="CLIENT_INIT_FAILED",
            suggestion="Check SUPABASE_URL, SUPABASE_ANON_KEY and SUPABASE_SERVICE_KEY in your .env file",
        )

    return SupabaseGateway(auth_client, admin_client)
