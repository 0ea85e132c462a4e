"""Shared FastAPI dependencies.

Stateful helpers (rate-limit buckets, repair-session histories) are built once
from settings here and handed to routes through ``Depends`` so tests can
override them with ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends, Header, HTTPException, Request, status

from gatekeeper.core.config import Settings, get_settings
from gatekeeper.core.rate_limiter import RateLimiter
from gatekeeper.core.repair_session import AttemptHistoryStore
from gatekeeper.core.snapshot_store import SnapshotStore, get_snapshot_store
from gatekeeper.core.ttl_store import TTLStore

GUARD_WINDOW_SECONDS = 60.0


@lru_cache(maxsize=1)
def get_guard_rate_limiter() -> RateLimiter:
    settings = get_settings()
    # Two windows of TTL so the bucket survives until its window has closed
    store = TTLStore(ttl_seconds=GUARD_WINDOW_SECONDS * 2, max_keys=settings.RATE_LIMIT_MAX_KEYS)
    return RateLimiter(
        store,
        limit_per_window=settings.GUARD_RATE_LIMIT_PER_MINUTE,
        window_seconds=GUARD_WINDOW_SECONDS,
    )


@lru_cache(maxsize=1)
def get_attempt_history() -> AttemptHistoryStore:
    settings = get_settings()
    return AttemptHistoryStore(
        TTLStore(
            ttl_seconds=settings.ATTEMPT_HISTORY_TTL_SECONDS,
            max_keys=settings.ATTEMPT_HISTORY_MAX_KEYS,
        ),
        max_len=settings.ATTEMPT_HISTORY_MAX_LEN,
    )


def get_store() -> SnapshotStore:
    return get_snapshot_store()


def client_key(request: Request, x_api_key: str | None = Header(default=None)) -> str:
    """Identify the caller for rate limiting: API key first, then client address."""
    if x_api_key:
        return f"key:{x_api_key}"
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip and request.client:
        ip = request.client.host
    return f"ip:{ip or 'unknown'}"


def enforce_guard_rate_limit(
    key: str = Depends(client_key),
    limiter: RateLimiter = Depends(get_guard_rate_limiter),
) -> str:
    limiter.check_limit(f"guard:{key}")
    return key


def require_admin_key(
    x_admin_key: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Admin routes are open unless ADMIN_API_KEY is configured."""
    if settings.ADMIN_API_KEY and x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )
