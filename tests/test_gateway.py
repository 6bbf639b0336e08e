# =============================================================================
# tests/test_gateway.py - SupabaseGateway Tests
# =============================================================================
# The supabase-py clients are replaced by mocks whose query builder returns
# itself from every chained call, so the calls can be asserted directly.
# =============================================================================

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import UUID

import pytest

from app.config import Settings
from lib.supabase_client import Filter, SupabaseClientError, SupabaseGateway, create_gateway

BUILDER_METHODS = (
    "select", "insert", "update", "delete",
    "eq", "neq", "gte", "lte", "ilike", "in_", "order", "range", "limit",
)


def _builder(data=None, count=None):
    query = MagicMock()
    for name in BUILDER_METHODS:
        getattr(query, name).return_value = query
    query.execute.return_value = SimpleNamespace(data=data, count=count)
    return query


@pytest.fixture
def query():
    return _builder(data=[{"id": "row-1"}], count=7)


@pytest.fixture
def auth_client():
    return MagicMock()


@pytest.fixture
def gateway(query, auth_client):
    admin_client = MagicMock()
    admin_client.table.return_value = query
    return SupabaseGateway(auth_client, admin_client)


# =============================================================================
# Table Operations
# =============================================================================

class TestSelect:
    """Tests for select() and select_one()."""

    def test_paginated_select(self, gateway, query):
        result = gateway.select(
            "pomodoro_sessions",
            filters=[Filter.eq("user_id", "u1"), Filter.ilike("tags", "%work%")],
            order=("start_time",),
            desc=True,
            offset=20,
            limit=10,
            count=True,
        )

        query.select.assert_called_once_with("*", count="exact")
        query.eq.assert_called_once_with("user_id", "u1")
        query.ilike.assert_called_once_with("tags", "%work%")
        query.order.assert_called_once_with("start_time", desc=True)
        query.range.assert_called_once_with(20, 29)
        query.limit.assert_not_called()
        assert result.data == [{"id": "row-1"}]
        assert result.count == 7

    def test_limit_without_offset(self, gateway, query):
        result = gateway.select("meetings", limit=5)

        query.select.assert_called_once_with("*")
        query.limit.assert_called_once_with(5)
        query.range.assert_not_called()
        assert result.count is None

    def test_uuid_values_are_normalized(self, gateway, query):
        gateway.select("users", filters=[Filter.eq("id", UUID(int=1))])

        query.eq.assert_called_once_with("id", "00000000-0000-0000-0000-000000000001")

    def test_in_filter_normalizes_each_value(self, gateway, query):
        gateway.select("users", filters=[Filter.in_("id", [UUID(int=1), "u2"])])

        query.in_.assert_called_once_with("id", ["00000000-0000-0000-0000-000000000001", "u2"])

    def test_unknown_operator(self, gateway):
        with pytest.raises(SupabaseClientError) as exc_info:
            gateway.select("users", filters=[Filter("id", "like", "x")])

        assert exc_info.value.code == "INVALID_FILTER"

    def test_query_failure_is_wrapped(self, gateway, query):
        query.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(SupabaseClientError) as exc_info:
            gateway.select("users")

        assert exc_info.value.code == "SELECT_FAILED"
        assert "connection reset" in exc_info.value.message

    def test_select_one_empty(self, gateway, query):
        query.execute.return_value = SimpleNamespace(data=[], count=None)

        assert gateway.select_one("users", filters=[Filter.eq("id", "x")]) is None
        query.limit.assert_called_once_with(1)


class TestWrites:
    """Tests for insert(), update() and delete()."""

    def test_insert_returns_stored_row(self, gateway, query):
        assert gateway.insert("meetings", {"title": "x"}) == {"id": "row-1"}
        query.insert.assert_called_once_with({"title": "x"})

    def test_insert_without_data(self, gateway, query):
        query.execute.return_value = SimpleNamespace(data=[], count=None)

        with pytest.raises(SupabaseClientError) as exc_info:
            gateway.insert("meetings", {"title": "x"})

        assert exc_info.value.code == "INSERT_NO_DATA"

    def test_update_is_scoped(self, gateway, query):
        rows = gateway.update("meetings", {"title": "y"}, filters=[Filter.eq("id", "m1")])

        query.update.assert_called_once_with({"title": "y"})
        query.eq.assert_called_once_with("id", "m1")
        assert rows == [{"id": "row-1"}]

    def test_update_requires_filters(self, gateway, query):
        with pytest.raises(SupabaseClientError) as exc_info:
            gateway.update("meetings", {"title": "y"}, filters=[])

        assert exc_info.value.code == "UNSCOPED_UPDATE"
        query.update.assert_not_called()

    def test_delete_requires_filters(self, gateway, query):
        with pytest.raises(SupabaseClientError) as exc_info:
            gateway.delete("users", filters=[])

        assert exc_info.value.code == "UNSCOPED_DELETE"
        query.delete.assert_not_called()


# =============================================================================
# Auth Operations
# =============================================================================

class TestAuth:
    """Tests for the Supabase Auth wrappers."""

    def test_sign_in(self, gateway, auth_client):
        auth_client.auth.sign_in_with_password.return_value = SimpleNamespace(
            user=SimpleNamespace(
                id="u1",
                email="a@example.com",
                email_confirmed_at="2024-01-01T00:00:00Z",
                created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                user_metadata={"username": "alice"},
            ),
            session=SimpleNamespace(
                access_token="at", refresh_token="rt", expires_in=3600,
                expires_at=1700000000, token_type="bearer",
            ),
        )

        result = gateway.sign_in("a@example.com", "pw")

        assert result.account.id == "u1"
        assert result.account.email_confirmed is True
        assert result.account.created_at == "2024-01-01T00:00:00+00:00"
        assert result.account.metadata == {"username": "alice"}
        assert result.tokens.to_client()["accessToken"] == "at"

    def test_sign_in_error_keeps_upstream_message(self, gateway, auth_client):
        auth_client.auth.sign_in_with_password.side_effect = Exception("Invalid login credentials")

        with pytest.raises(SupabaseClientError) as exc_info:
            gateway.sign_in("a@example.com", "bad")

        assert exc_info.value.message == "Invalid login credentials"
        assert exc_info.value.code == "SIGN_IN_FAILED"

    def test_sign_up_without_session(self, gateway, auth_client):
        auth_client.auth.sign_up.return_value = SimpleNamespace(
            user=SimpleNamespace(id="u2", email="b@example.com"),
            session=None,
        )

        result = gateway.sign_up("b@example.com", "pw", {"username": "bob"})

        assert result.tokens is None
        assert result.account.email_confirmed is False
        payload = auth_client.auth.sign_up.call_args.args[0]
        assert payload["options"] == {"data": {"username": "bob"}}

    def test_get_user_unknown_token(self, gateway, auth_client):
        auth_client.auth.get_user.return_value = None

        assert gateway.get_user("token") is None


class TestCreateGateway:
    """Tests for create_gateway()."""

    def test_unconfigured(self):
        settings = Settings(SUPABASE_URL=None, SUPABASE_ANON_KEY=None, SUPABASE_SERVICE_KEY=None)

        assert settings.supabase_configured is False
        assert create_gateway(settings) is None
