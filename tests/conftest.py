# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up environment variables before any imports
# - InMemoryGateway: a fake SupabaseGateway with the same query/auth surface
# - TestClient fixtures with the gateway, clock and caller overridden
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import copy
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest
from fastapi.testclient import TestClient

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser
from app.dependencies import get_clock, get_gateway_optional
from app.main import app
from lib.supabase_client import (
    AuthAccount,
    AuthResult,
    AuthTokens,
    Filter,
    QueryResult,
    SupabaseClientError,
)

USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"
USER_EMAIL = "alice@example.com"

# Monday 2024-03-04 10:00:00 UTC
FIXED_NOW = datetime(2024, 3, 4, 10, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# In-Memory Gateway
# =============================================================================

def _like(pattern: str, value: Any) -> bool:
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return value is not None and re.match(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


def _matches(row: dict[str, Any], f: Filter) -> bool:
    value = row.get(f.column)
    target = str(f.value) if isinstance(f.value, uuid.UUID) else f.value
    if f.op == "eq":
        return value == target
    if f.op == "neq":
        return value != target
    if f.op == "ilike":
        return _like(target, value)
    if f.op == "in_":
        return value in [str(v) if isinstance(v, uuid.UUID) else v for v in target]
    if value is None:
        return False
    if f.op == "gt":
        return value > target
    if f.op == "gte":
        return value >= target
    if f.op == "lt":
        return value < target
    if f.op == "lte":
        return value <= target
    raise AssertionError(f"unsupported op {f.op}")


class InMemoryGateway:
    """
    Dict-backed stand-in for SupabaseGateway.

    Tables are lists of row dicts. Names in `failing_tables` raise
    SupabaseClientError on every operation, to exercise error paths.
    """

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.failing_tables: set[str] = set()
        self.accounts: dict[str, dict[str, Any]] = {}
        self.access_tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.signed_out: list[str] = []
        self.sign_up_calls: list[str] = []
        self.sign_in_error: str | None = None
        self.sign_out_error: str | None = None
        self.refresh_error: str | None = None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def seed(self, table: str, **row: Any) -> dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        self.rows(table).append(row)
        return row

    def _check(self, table: str) -> None:
        if table in self.failing_tables:
            raise SupabaseClientError(message=f"Failed to query {table}: boom", code="SELECT_FAILED")

    def _filtered(self, table: str, filters: Sequence[Filter] | None) -> list[dict[str, Any]]:
        return [r for r in self.rows(table) if all(_matches(r, f) for f in filters or ())]

    # -------------------------------------------------------------------------
    # Table Operations
    # -------------------------------------------------------------------------

    def select(self, table, *, columns="*", filters=None, order=(), desc=False,
               offset=None, limit=None, count=False):
        self._check(table)
        rows = self._filtered(table, filters)
        for column in reversed(list(order)):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(rows)
        if offset is not None and limit is not None:
            rows = rows[offset:offset + limit]
        elif limit is not None:
            rows = rows[:limit]
        return QueryResult(data=copy.deepcopy(rows), count=total if count else None)

    def select_one(self, table, *, columns="*", filters=None):
        result = self.select(table, columns=columns, filters=filters, limit=1)
        return result.data[0] if result.data else None

    def insert(self, table, row):
        self._check(table)
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        self.rows(table).append(stored)
        return copy.deepcopy(stored)

    def update(self, table, values, *, filters):
        self._check(table)
        assert filters, "unscoped update"
        updated = []
        for row in self._filtered(table, filters):
            row.update(copy.deepcopy(values))
            updated.append(copy.deepcopy(row))
        return updated

    def delete(self, table, *, filters):
        self._check(table)
        assert filters, "unscoped delete"
        doomed = self._filtered(table, filters)
        self.tables[table] = [r for r in self.rows(table) if r not in doomed]
        return copy.deepcopy(doomed)

    # -------------------------------------------------------------------------
    # Auth Operations
    # -------------------------------------------------------------------------

    def add_account(self, email: str, password: str, user_id: str | None = None,
                    confirmed: bool = True) -> AuthAccount:
        account = AuthAccount(
            id=user_id or str(uuid.uuid4()),
            email=email,
            email_confirmed=confirmed,
            created_at="2024-01-01T00:00:00+00:00",
        )
        self.accounts[email] = {"password": password, "account": account}
        return account

    def _issue(self, account: AuthAccount) -> AuthTokens:
        access = f"access-{uuid.uuid4().hex}"
        refresh = f"refresh-{uuid.uuid4().hex}"
        self.access_tokens[access] = account.email
        self.refresh_tokens[refresh] = account.email
        return AuthTokens(access_token=access, refresh_token=refresh, expires_in=3600,
                          expires_at=1709550000)

    def sign_up(self, email, password, metadata=None):
        self.sign_up_calls.append(email)
        if email in self.accounts:
            raise SupabaseClientError(message="User already registered", code="SIGN_UP_FAILED")
        account = self.add_account(email, password, confirmed=False)
        return AuthResult(account=account, tokens=None)

    def sign_in(self, email, password):
        if self.sign_in_error:
            raise SupabaseClientError(message=self.sign_in_error, code="SIGN_IN_FAILED")
        entry = self.accounts.get(email)
        if entry is None or entry["password"] != password:
            raise SupabaseClientError(message="Invalid login credentials", code="SIGN_IN_FAILED")
        return AuthResult(account=entry["account"], tokens=self._issue(entry["account"]))

    def refresh_session(self, refresh_token):
        if self.refresh_error:
            raise SupabaseClientError(message=self.refresh_error, code="REFRESH_FAILED")
        email = self.refresh_tokens.pop(refresh_token, None)
        if email is None:
            raise SupabaseClientError(
                message="Invalid Refresh Token: Refresh Token Not Found", code="REFRESH_FAILED"
            )
        account = self.accounts[email]["account"]
        return AuthResult(account=account, tokens=self._issue(account))

    def sign_out(self, access_token):
        if self.sign_out_error:
            raise SupabaseClientError(message=self.sign_out_error, code="SIGN_OUT_FAILED")
        self.signed_out.append(access_token)
        self.access_tokens.pop(access_token, None)

    def get_user(self, access_token):
        email = self.access_tokens.get(access_token)
        return self.accounts[email]["account"] if email else None


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def gateway():
    """Empty in-memory gateway."""
    return InMemoryGateway()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def current_user():
    return AuthUser(id=USER_ID, email=USER_EMAIL)


@pytest.fixture
def anon_client(gateway, now):
    """
    TestClient with the gateway and clock overridden but real bearer-token auth.

    Lifespan is not entered, so no Supabase client is ever built.
    """
    app.dependency_overrides[get_gateway_optional] = lambda: gateway
    app.dependency_overrides[get_clock] = lambda: now
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client, current_user):
    """TestClient authenticated as USER_ID."""
    app.dependency_overrides[get_current_user] = lambda: current_user
    return anon_client


@pytest.fixture
def offline_client():
    """TestClient with no Supabase backend configured."""
    app.dependency_overrides[get_gateway_optional] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()
