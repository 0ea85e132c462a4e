"""Routing policy snapshot database operations.

Rows in ``rl_policy_snapshots`` are insert-only: one row per job run, the
latest version wins.
"""

from typing import Any

from gatekeeper.core.errors import SnapshotStoreError
from gatekeeper.core.logging import get_logger
from gatekeeper.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "rl_policy_snapshots"


def insert_snapshot(snapshot_row: dict[str, Any]) -> dict[str, Any]:
    """
    Insert a new snapshot row.

    Args:
        snapshot_row: {"version", "updated_at_ts", "priors", "last_summary"}

    Returns:
        Inserted row

    Raises:
        SnapshotStoreError: If the insert fails or returns no data
    """
    supabase = get_supabase()

    try:
        response = supabase.table(TABLE).insert(snapshot_row).execute()
    except Exception as e:
        logger.error(
            f"Failed to insert policy snapshot: {e}",
            extra={"version": snapshot_row.get("version")},
        )
        raise SnapshotStoreError(f"Failed to insert policy snapshot: {e}") from e

    if not response.data:
        raise SnapshotStoreError("No data returned from insert_snapshot")

    logger.info(
        f"Stored policy snapshot v{snapshot_row.get('version')}",
        extra={"version": snapshot_row.get("version")},
    )
    return response.data[0]


def get_latest_snapshot() -> dict[str, Any] | None:
    """
    Fetch the highest-version snapshot row.

    Returns:
        Row dict, or None when no snapshot has been stored yet

    Raises:
        SnapshotStoreError: If the query fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table(TABLE)
            .select("version, updated_at_ts, priors, last_summary")
            .order("version", desc=True)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to load latest policy snapshot: {e}")
        raise SnapshotStoreError(f"Failed to load latest policy snapshot: {e}") from e

    return response.data[0] if response.data else None
