# =============================================================================
# app/ - FastAPI Application Package
# =============================================================================
# This package contains the FastAPI web application:
# - main.py: App entry point, middleware setup, error handlers
# - config.py: Environment variable loading and settings
# - dependencies.py: Gateway, clock and service injection
# - exceptions.py: Error hierarchy and the error envelope
# - responses.py: Success envelope and pagination metadata
# - auth/: Bearer-token authentication and /auth endpoints
# - routers/: API endpoint definitions organized by feature
#
# The app layer is thin - it handles HTTP concerns and delegates
# business logic to the core/ package.
# =============================================================================
