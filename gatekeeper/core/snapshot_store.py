"""Where the current routing snapshot lives.

One writer (the nightly job) publishes; many readers (the router) read the
latest. Snapshots are immutable, so a reader holding an older one keeps a
consistent view while a newer one is published.
"""

import threading
from functools import lru_cache
from typing import Protocol

from gatekeeper.core.config import get_settings
from gatekeeper.core.errors import SnapshotStoreError
from gatekeeper.core.schemas_routing import RlPolicySnapshot


class SnapshotStore(Protocol):
    def latest(self) -> RlPolicySnapshot | None: ...

    def publish(self, snapshot: RlPolicySnapshot) -> None: ...


class InMemorySnapshotStore:
    """Holds the current snapshot; publishing is a reference swap.

    Callers get their own copy, so editing ``priors`` on a returned snapshot
    never reaches other readers.
    """

    def __init__(self, initial: RlPolicySnapshot | None = None):
        self._current = initial.model_copy(deep=True) if initial is not None else None
        # Serialises writers only; readers never take it
        self._write_lock = threading.Lock()

    def latest(self) -> RlPolicySnapshot | None:
        current = self._current
        return current.model_copy(deep=True) if current is not None else None

    def publish(self, snapshot: RlPolicySnapshot) -> None:
        with self._write_lock:
            current = self._current
            if current is not None and snapshot.version <= current.version:
                raise SnapshotStoreError(
                    f"Snapshot version {snapshot.version} does not supersede {current.version}"
                )
            self._current = snapshot.model_copy(deep=True)


class SupabaseSnapshotStore:
    """Persists every snapshot as a new row; reads the highest version."""

    def latest(self) -> RlPolicySnapshot | None:
        from gatekeeper.db.policy_snapshots import get_latest_snapshot

        row = get_latest_snapshot()
        return RlPolicySnapshot.model_validate(row) if row else None

    def publish(self, snapshot: RlPolicySnapshot) -> None:
        from gatekeeper.db.policy_snapshots import insert_snapshot

        insert_snapshot(snapshot.model_dump(mode="json"))


@lru_cache(maxsize=1)
def get_snapshot_store() -> SnapshotStore:
    """Store selected by ``SNAPSHOT_BACKEND`` (memory or supabase)."""
    backend = get_settings().SNAPSHOT_BACKEND.strip().lower()
    if backend == "supabase":
        return SupabaseSnapshotStore()
    if backend == "memory":
        return InMemorySnapshotStore()
    raise SnapshotStoreError(f"Unknown SNAPSHOT_BACKEND: {backend}")
