# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Pomodoro API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.exceptions import (
    InternalError,
    PomodoroAPIException,
    pomodoro_exception_handler,
    supabase_exception_handler,
    validation_exception_handler,
)
from app.routers import dashboard, health, meetings, sessions, users
from app.auth import routes as auth_routes
from lib.supabase_client import SupabaseClientError, create_gateway

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: build the Supabase gateway from settings and attach it to app.state
    - Shutdown: drop the gateway
    """
    logger.info(f"Starting Pomodoro API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    try:
        app.state.gateway = create_gateway(settings)
    except SupabaseClientError as e:
        logger.error(f"Supabase unavailable, data endpoints will return 503: {e}")
        app.state.gateway = None

    yield

    logger.info("Shutting down Pomodoro API")
    app.state.gateway = None


# Create FastAPI application
app = FastAPI(
    title="Pomodoro API",
    description="""
## Pomodoro Timer API

Focus sessions, meetings and personal statistics on top of Supabase.

### Response Envelope

Every endpoint under `/api/v1` (except health checks) answers with

```json
{"success": true, "data": ..., "message": "...", "pagination": {...}}
```

or, on failure,

```json
{"success": false, "message": "...", "code": "...", "errors": [{"field": "...", "message": "..."}]}
```

### Quick Start

```bash
# 1. Log in
curl -X POST http://localhost:8000/api/v1/auth/login \\
  -H "Content-Type: application/json" \\
  -d '{"username": "alice", "password": "secret"}'

# 2. Start a 25 minute session
curl -X POST http://localhost:8000/api/v1/sessions \\
  -H "Authorization: Bearer <accessToken>" \\
  -H "Content-Type: application/json" \\
  -d '{"title": "Write report", "duration": 25}'
```
""",
    version=health.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Login, registration and token lifecycle",
        },
        {
            "name": "Sessions",
            "description": "Pomodoro timer sessions",
        },
        {
            "name": "Meetings",
            "description": "Meeting scheduling and upcoming reminders",
        },
        {
            "name": "Users",
            "description": "Profile, preferences, statistics and admin user management",
        },
        {
            "name": "Dashboard",
            "description": "Dashboard overview and leaderboard",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(PomodoroAPIException, pomodoro_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SupabaseClientError, supabase_exception_handler)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    """Unknown routes and wrong methods, in the error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": str(exc.detail),
            "code": "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR",
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    error = InternalError("An unexpected error occurred")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints (router carries the /auth prefix)
app.include_router(
    auth_routes.router,
    prefix=API_PREFIX,
)

# Health check endpoints
app.include_router(
    health.router,
    prefix=API_PREFIX,
    tags=["Health"]
)

# Pomodoro session endpoints
app.include_router(
    sessions.router,
    prefix=f"{API_PREFIX}/sessions",
    tags=["Sessions"]
)

# Meeting endpoints
app.include_router(
    meetings.router,
    prefix=f"{API_PREFIX}/meetings",
    tags=["Meetings"]
)

# Profile, preference, stats and admin endpoints
app.include_router(
    users.router,
    prefix=f"{API_PREFIX}/users",
    tags=["Users"]
)

# Dashboard overview and leaderboard
app.include_router(
    dashboard.router,
    prefix=f"{API_PREFIX}/dashboard",
    tags=["Dashboard"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Pomodoro API",
        "version": health.API_VERSION,
        "docs": "/docs",
        "health": f"{API_PREFIX}/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
