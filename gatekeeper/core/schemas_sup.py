"""Pydantic schemas for guard outcome metrics and cost telemetry."""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class SupDecision(str, Enum):
    ALLOW = "allow"
    BLOCK = "block"


class SupLabel(str, Enum):
    """Ground truth: ``good`` was safe to ship, ``bad`` should have been blocked."""

    GOOD = "good"
    BAD = "bad"


class SupEvent(BaseModel):
    """One labeled observation of a past guard decision."""

    decision: SupDecision
    label: SupLabel
    latency_ms: float | None = Field(None, validation_alias=AliasChoices("latency_ms", "latencyMs"))
    cost_cents: float | None = Field(None, validation_alias=AliasChoices("cost_cents", "costCents"))
    url: str | None = None


class SupMetricsSummary(BaseModel):
    total: int = 0
    true_positives: int = 0  # block + bad
    false_positives: int = 0  # block + good
    true_negatives: int = 0  # allow + good
    false_negatives: int = 0  # allow + bad
    false_negative_rate: float = Field(0.0, ge=0, le=1)
    false_positive_rate: float = Field(0.0, ge=0, le=1)
    p95_latency_ms: float | None = None
    cost_per_url_cents: dict[str, float] = Field(default_factory=dict)


# =============================================================================
# Audit rows
# =============================================================================


class SupModeCounts(BaseModel):
    allow: int = 0
    strict: int = 0
    block: int = 0
    other: int = 0


class SupAuditSummary(BaseModel):
    total: int = 0
    modes: SupModeCounts = Field(default_factory=SupModeCounts)
    avg_ms: float | None = None
    p95_ms: float | None = None
    pii_present: int = 0
    abuse_with_reasons: int = 0


# =============================================================================
# Costs
# =============================================================================


class CostEstimate(BaseModel):
    latency_ms: int
    tokens: int
    cents: float
    pending: bool


class CostRecord(BaseModel):
    provider_id: str | None = Field(None, validation_alias=AliasChoices("provider_id", "providerId"))
    route: str | None = None
    url: str | None = None
    cost_cents: float | None = Field(None, validation_alias=AliasChoices("cost_cents", "costCents"))
    latency_ms: float | None = Field(None, validation_alias=AliasChoices("latency_ms", "latencyMs"))


class CostRollupEntry(BaseModel):
    key: str
    count: int = 0
    total_cents: float = 0.0
    avg_cents: float | None = None
    p95_latency_ms: float | None = None


class CostRollupRequest(BaseModel):
    records: list[CostRecord] = Field(default_factory=list)
    key: str = Field("provider_id", pattern="^(provider_id|route|url)$")


class AuditRowsRequest(BaseModel):
    rows: list[Any] = Field(default_factory=list)
