"""Fixed-window rate limiter for API endpoints."""

import math
import time
from collections.abc import Callable
from typing import Any

from fastapi import HTTPException

from gatekeeper.core.logging import get_logger
from gatekeeper.core.ttl_store import TTLStore

logger = get_logger(__name__)


class RateLimiter:
    """
    Counts requests per ``(client_key, window_index)`` bucket.

    Buckets live in an injected TTLStore whose TTL is one window, so stale
    windows are evicted and the number of live buckets stays bounded.
    """

    def __init__(
        self,
        store: TTLStore,
        limit_per_window: int = 120,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize rate limiter.

        Args:
            store: Bucket storage (TTL should be at least one window)
            limit_per_window: Requests allowed per key per window
            window_seconds: Window length
            clock: Wall clock used to compute window indexes
        """
        self.store = store
        self.limit_per_window = limit_per_window
        self.window_seconds = window_seconds
        self._clock = clock

    def _window(self) -> tuple[int, float]:
        now = self._clock()
        index = int(now // self.window_seconds)
        resets_in = (index + 1) * self.window_seconds - now
        return index, resets_in

    def check_limit(self, key: str, cost: int = 1) -> bool:
        """
        Record a request and enforce the limit.

        Args:
            key: Client key (API key, IP, session)
            cost: Units this request consumes

        Returns:
            True if allowed

        Raises:
            HTTPException: 429 with Retry-After if the window is exhausted
        """
        index, resets_in = self._window()
        bucket = (key, index)
        count = self.store.update(bucket, lambda current: (current or 0) + cost, default=0)

        if count <= self.limit_per_window:
            return True

        retry_after = max(1, math.ceil(resets_in))
        logger.warning(
            f"Rate limit exceeded for key: {key}, "
            f"count: {count}/{self.limit_per_window}, retry after: {retry_after}s"
        )
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    def get_stats(self, key: str) -> dict[str, Any]:
        """
        Get rate limit stats for a key in the current window.

        Args:
            key: Client key

        Returns:
            Dictionary with stats
        """
        index, resets_in = self._window()
        used = self.store.get((key, index), 0)
        return {
            "used": used,
            "remaining": max(0, self.limit_per_window - used),
            "limit_per_window": self.limit_per_window,
            "resets_in_seconds": round(resets_in, 1),
        }

    def reset(self, key: str) -> None:
        """Reset the current window for a key."""
        index, _ = self._window()
        self.store.delete((key, index))
        logger.info(f"Rate limit reset for key: {key}")
