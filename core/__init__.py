# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the Pomodoro business logic:
# - validation.py: schema validation into field-level errors
# - models/: Pydantic schemas for request validation
# - services/: auth, sessions, stats, meetings, users
#
# Services receive the Supabase gateway in their constructor and never
# reach for a global client. This keeps the logic testable with a fake.
# =============================================================================
