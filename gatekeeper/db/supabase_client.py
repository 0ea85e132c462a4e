"""Supabase client initialization."""

from functools import lru_cache

from supabase import Client, create_client

from gatekeeper.core.config import get_settings
from gatekeeper.core.errors import SnapshotStoreError


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get Supabase client instance (cached singleton).

    Returns:
        Supabase client configured with service role key

    Raises:
        SnapshotStoreError: If credentials are missing or the client fails to initialize
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise SnapshotStoreError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise SnapshotStoreError(f"Failed to initialize Supabase client: {e}") from e
