# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Pomodoro API:
# - test_validation.py / test_models.py: schema validation and field errors
# - test_stats.py, test_meeting_helpers.py, test_password.py: pure logic
# - test_gateway.py: Supabase gateway against mocked clients
# - test_auth_routes.py, test_sessions.py, test_meetings.py, test_users.py,
#   test_dashboard.py: endpoints through TestClient with the in-memory
#   gateway from conftest.py
#
# Run tests with: pytest
# =============================================================================
