"""Admin and observability endpoints: guard outcome metrics, cost rollups and
routing prior updates."""

import time

from fastapi import APIRouter, Depends, HTTPException

from gatekeeper.api.deps import get_store, require_admin_key
from gatekeeper.core.config import Settings, get_settings
from gatekeeper.core.costs import CostPricing, estimate_cost, rollup_costs
from gatekeeper.core.errors import SnapshotStoreError
from gatekeeper.core.logging import get_logger
from gatekeeper.core.metrics import timer
from gatekeeper.core.schemas_routing import RlPolicySnapshot, RunJobRequest
from gatekeeper.core.schemas_sup import (
    AuditRowsRequest,
    CostEstimate,
    CostRollupEntry,
    CostRollupRequest,
    SupAuditSummary,
    SupEvent,
    SupMetricsSummary,
)
from gatekeeper.core.shadow_rl import run_shadow_rl_job
from gatekeeper.core.snapshot_store import SnapshotStore
from gatekeeper.core.sup_metrics import aggregate_sup_events, summarize_sup_audit

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


# =============================================================================
# Guard outcome metrics
# =============================================================================


@router.post("/sup-metrics", response_model=SupMetricsSummary)
async def sup_metrics(events: list[SupEvent]) -> SupMetricsSummary:
    """Confusion matrix, p95 latency and cost per URL for a labeled batch."""
    with timer("SUP metrics aggregation", log_level="debug"):
        return aggregate_sup_events(events)


@router.post("/sup-audit", response_model=SupAuditSummary)
async def sup_audit(request: AuditRowsRequest) -> SupAuditSummary:
    """Summarize guard audit rows by mode, latency and flags."""
    return summarize_sup_audit(request.rows)


# =============================================================================
# Costs
# =============================================================================


@router.post("/costs/estimate", response_model=CostEstimate)
async def costs_estimate(
    spec_like: dict,
    settings: Settings = Depends(get_settings),
) -> CostEstimate:
    """Estimate generation cost for a prepared spec."""
    return estimate_cost(spec_like, CostPricing.from_settings(settings))


@router.post("/costs/rollup", response_model=list[CostRollupEntry])
async def costs_rollup(request: CostRollupRequest) -> list[CostRollupEntry]:
    """Per-resource cost and latency rollup."""
    return rollup_costs(request.records, key=request.key)


# =============================================================================
# Routing priors
# =============================================================================


@router.post("/routing/run-job", response_model=RlPolicySnapshot)
async def routing_run_job(
    request: RunJobRequest,
    settings: Settings = Depends(get_settings),
    store: SnapshotStore = Depends(get_store),
) -> RlPolicySnapshot:
    """Consume shadow events, publish and return the next routing snapshot."""
    learning_rate = (
        request.learning_rate if request.learning_rate is not None else settings.RL_LEARNING_RATE
    )

    try:
        prev = store.latest()
        with timer("Shadow RL job"):
            snapshot = run_shadow_rl_job(
                request.events,
                prev,
                learning_rate=learning_rate,
                now=int(time.time() * 1000),
            )
        store.publish(snapshot)
    except SnapshotStoreError as e:
        logger.error(f"Routing job failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e

    return snapshot


@router.get("/routing/snapshot", response_model=RlPolicySnapshot)
async def routing_snapshot(store: SnapshotStore = Depends(get_store)) -> RlPolicySnapshot:
    """Latest published routing snapshot."""
    try:
        snapshot = store.latest()
    except SnapshotStoreError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    if snapshot is None:
        raise HTTPException(status_code=404, detail="No routing snapshot published yet")
    return snapshot
