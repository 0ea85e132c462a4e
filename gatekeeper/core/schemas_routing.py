"""Pydantic schemas for shadow outcome events and routing policy snapshots."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PriorConfig = dict[str, float]


class ShadowEvent(BaseModel):
    """One outcome observation tied to the provider that generated the page."""

    provider_id: str = Field("", validation_alias=AliasChoices("provider_id", "providerId"))
    route: str = ""
    converted: bool | None = None
    edits: float | None = None  # 0 = shipped as generated
    sup_violations: float | None = Field(
        None, validation_alias=AliasChoices("sup_violations", "supViolations")
    )
    latency_ms: float | None = Field(None, validation_alias=AliasChoices("latency_ms", "latencyMs"))
    cost_cents: float | None = Field(None, validation_alias=AliasChoices("cost_cents", "costCents"))


class ProviderStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider_id: str
    count: int
    avg_reward: float


class RlSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    providers: tuple[ProviderStats, ...] = ()


class RlPolicySnapshot(BaseModel):
    """
    Versioned routing priors.

    Each job run produces a new snapshot with ``version = prev.version + 1``;
    older snapshots are superseded, never modified.
    """

    model_config = ConfigDict(frozen=True)

    version: int = Field(..., ge=1)
    updated_at_ts: int = Field(..., description="Epoch milliseconds")
    priors: PriorConfig = Field(default_factory=dict)
    last_summary: RlSummary = Field(default_factory=RlSummary)


class RunJobRequest(BaseModel):
    events: list[ShadowEvent] = Field(default_factory=list)
    learning_rate: float | None = Field(
        None, ge=0, le=1, validation_alias=AliasChoices("learning_rate", "learningRate")
    )
