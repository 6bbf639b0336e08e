# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Supabase data/auth gateway (injected, not global)
# - utils.py: Shared utilities (error base class, UUID/time helpers)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import (
    AuthAccount,
    AuthResult,
    AuthTokens,
    Filter,
    QueryResult,
    SupabaseClientError,
    SupabaseGateway,
    create_gateway,
)
from lib.utils import ApplicationError, iso_now, normalize_uuid, round_half_up, utc_now

__all__ = [
    # Supabase
    "AuthAccount",
    "AuthResult",
    "AuthTokens",
    "Filter",
    "QueryResult",
    "SupabaseClientError",
    "SupabaseGateway",
    "create_gateway",
    # Utils
    "ApplicationError",
    "iso_now",
    "normalize_uuid",
    "round_half_up",
    "utc_now",
]
