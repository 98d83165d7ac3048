"""Supabase client factories for database and auth operations."""

import asyncio
import logging
from functools import lru_cache
from typing import Any

from supabase import Client, create_client
from supabase.lib.client_options import SyncClientOptions
from supabase_auth import SyncMemoryStorage

from src.api.middleware.error_handler import BackendError
from src.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton for database operations.

    Uses the secret key, which bypasses RLS at the PostgREST level. Every
    query made with it must be scoped to the authenticated identity by the
    caller.

    IMPORTANT: Do NOT use this client for auth operations that call
    set_session() - use create_auth_client() instead to avoid polluting
    the singleton's Authorization header.

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


def create_auth_client() -> Client:
    """Create a fresh Supabase client for auth operations.

    Each SessionProvider owns one of these so that sign-in, sign-out and
    token refresh never leak between users.

    Returns:
        Client: Fresh Supabase client instance with isolated session storage.
    """
    settings = get_settings()
    options = SyncClientOptions(
        storage=SyncMemoryStorage(),
        auto_refresh_token=False,
        persist_session=False,
    )
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
        options=options,
    )


async def execute(request: Any, action: str) -> Any:
    """Execute a PostgREST request off the event loop, wrapping any failure in BackendError.

    The Supabase client is synchronous, so the HTTP call runs in a worker
    thread and other requests keep being served while it is in flight.

    Args:
        request: A query or RPC builder with an execute() method.
        action: Short description used in the error message and log.

    Returns:
        The APIResponse (or None for maybe_single() misses).

    Raises:
        BackendError: If the request fails for any reason.
    """
    try:
        return await asyncio.to_thread(request.execute)
    except Exception as e:
        logger.error("Supabase request failed (%s): %s", action, e)
        raise BackendError(f"Failed to {action}") from e


def first_row(data: Any) -> dict[str, Any] | None:
    """Normalize RPC/insert payloads to a single row."""
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        await asyncio.to_thread(client.table("profiles").select("id").limit(1).execute)
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
