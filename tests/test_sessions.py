# =============================================================================
# tests/test_sessions.py - /sessions Endpoint Tests
# =============================================================================
# The clock is pinned to 2024-03-04 10:00 UTC (see conftest.FIXED_NOW).
#
# Run with: pytest tests/test_sessions.py -v
# =============================================================================

from tests.conftest import OTHER_USER_ID, USER_ID

SESSIONS = "/api/v1/sessions"


def _seed_session(gateway, user_id=USER_ID, **fields):
    row = {
        "user_id": user_id,
        "title": "Focus",
        "duration": 25,
        "status": "completed",
        "start_time": "2024-03-04T08:00:00+00:00",
        "end_time": "2024-03-04T08:25:00+00:00",
        "tags": None,
        "location": None,
    }
    row.update(fields)
    return gateway.seed("pomodoro_sessions", **row)


# =============================================================================
# Create
# =============================================================================

class TestCreateSession:
    """Tests for POST /sessions."""

    def test_starts_now(self, client, gateway):
        # Act
        response = client.post(SESSIONS, json={"title": "Write report", "duration": 25})

        # Assert: active, timed from the pinned clock
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Session created successfully"
        session = body["data"]
        assert session["status"] == "active"
        assert session["user_id"] == USER_ID
        assert session["start_time"] == "2024-03-04T10:00:00+00:00"
        assert session["end_time"] == "2024-03-04T10:25:00+00:00"

    def test_updates_stats(self, client, gateway):
        client.post(SESSIONS, json={"title": "Write report", "duration": 30})

        [stats] = gateway.rows("user_stats")
        assert stats["total_sessions"] == 1
        assert stats["total_minutes"] == 30

    def test_future_time_is_scheduled(self, client):
        response = client.post(
            SESSIONS, json={"title": "Later", "scheduledTime": "2024-03-04T12:00:00Z"}
        )

        session = response.json()["data"]
        assert session["status"] == "scheduled"
        assert session["start_time"] == "2024-03-04T12:00:00+00:00"

    def test_past_time_starts_now(self, client):
        response = client.post(
            SESSIONS, json={"title": "Late", "scheduledTime": "2024-03-04T08:00:00Z"}
        )

        session = response.json()["data"]
        assert session["status"] == "active"
        assert session["start_time"] == "2024-03-04T10:00:00+00:00"

    def test_conflict_with_active_session(self, client, gateway):
        _seed_session(gateway, status="active", end_time="2024-03-04T10:20:00+00:00")

        response = client.post(SESSIONS, json={"title": "Second"})

        assert response.status_code == 409
        assert len(gateway.rows("pomodoro_sessions")) == 1
        assert gateway.rows("user_stats") == []

    def test_stats_failure_does_not_fail_create(self, client, gateway):
        gateway.failing_tables.add("user_stats")

        response = client.post(SESSIONS, json={"title": "Focus"})

        assert response.status_code == 201

    def test_validation(self, client):
        response = client.post(SESSIONS, json={"title": "", "duration": 500})

        assert response.status_code == 400
        assert {e["field"] for e in response.json()["errors"]} == {"title", "duration"}

    def test_requires_auth(self, anon_client):
        response = anon_client.post(SESSIONS, json={"title": "Focus"})

        assert response.status_code == 401

    def test_auth_checked_before_body_is_parsed(self, anon_client):
        response = anon_client.post(
            SESSIONS, content="{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_malformed_json(self, client, gateway):
        response = client.post(
            SESSIONS, content="{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "body", "message": "Invalid JSON", "code": "json_invalid"}
        ]
        assert gateway.rows("pomodoro_sessions") == []


# =============================================================================
# List / Get
# =============================================================================

class TestListSessions:
    """Tests for GET /sessions."""

    def test_paginates_newest_first(self, client, gateway):
        _seed_session(gateway, title="oldest", start_time="2024-03-01T09:00:00+00:00")
        _seed_session(gateway, title="middle", start_time="2024-03-02T09:00:00+00:00")
        _seed_session(gateway, title="newest", start_time="2024-03-03T09:00:00+00:00")
        _seed_session(gateway, user_id=OTHER_USER_ID, title="not mine")

        response = client.get(SESSIONS, params={"page": 1, "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert [s["title"] for s in body["data"]] == ["newest", "middle"]
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}

    def test_second_page(self, client, gateway):
        for day in range(1, 4):
            _seed_session(gateway, start_time=f"2024-03-0{day}T09:00:00+00:00")

        response = client.get(SESSIONS, params={"page": 2, "limit": 2})

        assert len(response.json()["data"]) == 1

    def test_filters(self, client, gateway):
        _seed_session(gateway, title="a", tags="Writing, book", status="completed")
        _seed_session(gateway, title="b", tags="exercise", status="completed")
        _seed_session(gateway, title="c", tags="writing", status="stopped")

        response = client.get(SESSIONS, params={"status": "completed", "tags": "writing"})

        assert [s["title"] for s in response.json()["data"]] == ["a"]

    def test_date_range(self, client, gateway):
        _seed_session(gateway, title="feb", start_time="2024-02-28T09:00:00+00:00")
        _seed_session(gateway, title="mar", start_time="2024-03-02T09:00:00+00:00")

        response = client.get(
            SESSIONS, params={"startDate": "2024-03-01", "endDate": "2024-03-31"}
        )

        assert [s["title"] for s in response.json()["data"]] == ["mar"]

    def test_bad_query(self, client):
        response = client.get(SESSIONS, params={"limit": 0})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "limit"

    def test_get_own_session(self, client, gateway):
        row = _seed_session(gateway)

        response = client.get(f"{SESSIONS}/{row['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == row["id"]

    def test_other_users_session_is_not_found(self, client, gateway):
        row = _seed_session(gateway, user_id=OTHER_USER_ID)

        response = client.get(f"{SESSIONS}/{row['id']}")

        assert response.status_code == 404


# =============================================================================
# Active Session Lifecycle
# =============================================================================

class TestActiveSession:
    """Tests for /sessions/active and its complete/stop actions."""

    def test_no_active_session(self, client):
        response = client.get(f"{SESSIONS}/active")

        assert response.status_code == 200
        assert response.json()["data"] is None
        assert response.json()["message"] == "No active session found"

    def test_running_session(self, client, gateway):
        _seed_session(gateway, status="active", end_time="2024-03-04T10:20:00+00:00")

        data = client.get(f"{SESSIONS}/active").json()["data"]

        assert data["status"] == "active"
        assert "autoCompleted" not in data

    def test_overdue_session_auto_completes(self, client, gateway):
        _seed_session(
            gateway,
            status="active",
            start_time="2024-03-04T09:25:00+00:00",
            end_time="2024-03-04T09:50:00+00:00",
        )

        response = client.get(f"{SESSIONS}/active")

        data = response.json()["data"]
        assert response.json()["message"] == "Session auto-completed"
        assert data["autoCompleted"] is True
        assert data["status"] == "completed"
        assert data["completed_at"] == "2024-03-04T09:50:00+00:00"
        [stats] = gateway.rows("user_stats")
        assert stats["completed_sessions"] == 1
        assert stats["streak_days"] == 1

    def test_complete(self, client, gateway):
        _seed_session(gateway, status="active", end_time="2024-03-04T10:20:00+00:00")
        gateway.seed("user_stats", user_id=USER_ID, total_sessions=1, completed_sessions=0,
                     completed_minutes=0, streak_days=2, longest_streak=2,
                     last_session_date="2024-03-03")

        response = client.post(f"{SESSIONS}/active/complete")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"
        [stats] = gateway.rows("user_stats")
        assert stats["completed_sessions"] == 1
        assert stats["completion_rate"] == 100
        assert stats["streak_days"] == 3
        assert stats["longest_streak"] == 3

    def test_complete_without_active(self, client):
        response = client.post(f"{SESSIONS}/active/complete")

        assert response.status_code == 404

    def test_stop(self, client, gateway):
        _seed_session(gateway, status="active", end_time="2024-03-04T10:20:00+00:00")

        response = client.post(f"{SESSIONS}/active/stop")

        data = response.json()["data"]
        assert data["status"] == "stopped"
        assert data["stopped_at"] == "2024-03-04T10:00:00+00:00"
        assert gateway.rows("user_stats") == []

    def test_stop_without_active(self, client):
        assert client.post(f"{SESSIONS}/active/stop").status_code == 404

    def test_backend_error_is_500(self, client, gateway):
        gateway.failing_tables.add("pomodoro_sessions")

        response = client.get(f"{SESSIONS}/active")

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to retrieve active session"


# =============================================================================
# Update / Delete
# =============================================================================

class TestUpdateSession:
    """Tests for PUT /sessions/{id}."""

    def test_partial_update(self, client, gateway):
        session = _seed_session(gateway, status="active", goal="Outline")

        response = client.put(f"{SESSIONS}/{session['id']}", json={"title": "Renamed"})

        assert response.status_code == 200
        assert response.json()["message"] == "Session updated successfully"
        data = response.json()["data"]
        assert data["title"] == "Renamed"
        assert data["goal"] == "Outline"
        assert data["updated_at"] == "2024-03-04T10:00:00+00:00"

    def test_completing_counts_in_stats(self, client, gateway):
        session = _seed_session(gateway, status="active", duration=30)
        gateway.seed("user_stats", user_id=USER_ID, total_sessions=1, completed_sessions=0,
                     completed_minutes=0, streak_days=0, longest_streak=0,
                     last_session_date=None)

        response = client.put(f"{SESSIONS}/{session['id']}", json={"status": "completed"})

        data = response.json()["data"]
        assert data["status"] == "completed"
        assert data["completed_at"] == "2024-03-04T10:00:00+00:00"
        [stats] = gateway.rows("user_stats")
        assert stats["completed_sessions"] == 1
        assert stats["completed_minutes"] == 30
        assert stats["streak_days"] == 1

    def test_already_completed_is_not_counted_twice(self, client, gateway):
        session = _seed_session(gateway, status="completed")

        response = client.put(f"{SESSIONS}/{session['id']}", json={"status": "completed"})

        assert response.status_code == 200
        assert gateway.rows("user_stats") == []

    def test_null_field_rejected(self, client, gateway):
        session = _seed_session(gateway)

        response = client.put(f"{SESSIONS}/{session['id']}", json={"title": None})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "title"
        assert gateway.rows("pomodoro_sessions")[0]["title"] == "Focus"

    def test_bad_status(self, client, gateway):
        session = _seed_session(gateway)

        response = client.put(f"{SESSIONS}/{session['id']}", json={"status": "paused"})

        assert response.status_code == 400

    def test_other_users_session_is_not_found(self, client, gateway):
        session = _seed_session(gateway, user_id=OTHER_USER_ID)

        response = client.put(f"{SESSIONS}/{session['id']}", json={"title": "Mine now"})

        assert response.status_code == 404
        assert response.json()["message"] == "Session not found"
        assert gateway.rows("pomodoro_sessions")[0]["title"] == "Focus"


class TestDeleteSession:
    """Tests for DELETE /sessions/{id}."""

    def test_delete_completed_session(self, client, gateway):
        session = _seed_session(gateway, status="completed", duration=25)
        _seed_session(gateway, status="stopped", duration=50)
        gateway.seed("user_stats", user_id=USER_ID, total_sessions=2, total_minutes=75,
                     completed_sessions=1, completed_minutes=25, completion_rate=50,
                     average_session_length=25)

        response = client.delete(f"{SESSIONS}/{session['id']}")

        assert response.status_code == 200
        assert response.json()["message"] == "Session deleted successfully"
        assert response.json()["data"] is None
        assert len(gateway.rows("pomodoro_sessions")) == 1
        [stats] = gateway.rows("user_stats")
        assert stats["total_sessions"] == 1
        assert stats["total_minutes"] == 50
        assert stats["completed_sessions"] == 0
        assert stats["completed_minutes"] == 0
        assert stats["completion_rate"] == 0
        assert stats["average_session_length"] == 0

    def test_stats_failure_does_not_fail_delete(self, client, gateway):
        session = _seed_session(gateway)
        gateway.failing_tables.add("user_stats")

        response = client.delete(f"{SESSIONS}/{session['id']}")

        assert response.status_code == 200
        assert gateway.rows("pomodoro_sessions") == []

    def test_other_users_session_is_not_found(self, client, gateway):
        session = _seed_session(gateway, user_id=OTHER_USER_ID)

        response = client.delete(f"{SESSIONS}/{session['id']}")

        assert response.status_code == 404
        assert len(gateway.rows("pomodoro_sessions")) == 1
