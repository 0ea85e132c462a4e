"""Shadow RL: turn outcome telemetry into routing priors.

Nightly job core:
  1. ``compute_reward`` per shadow event (+1 conversion, capped penalties for
     edits and guard violations)
  2. ``summarize_rl_rewards`` averages rewards per provider
  3. ``update_provider_priors`` nudges each observed provider's prior by
     ``avg_reward * learning_rate``
  4. ``run_shadow_rl_job`` wraps it all in a new versioned snapshot

Rewards are bounded in [-1.5, 1], so priors move by at most that times the
learning rate per run and need no normalisation.
"""

import math
import time
from collections.abc import Iterable, Mapping

from gatekeeper.core.logging import get_logger
from gatekeeper.core.schemas_routing import (
    PriorConfig,
    ProviderStats,
    RlPolicySnapshot,
    RlSummary,
    ShadowEvent,
)

logger = get_logger(__name__)

EDIT_PENALTY = 0.1
EDIT_PENALTY_CAP = 0.5
VIOLATION_PENALTY = 0.5
VIOLATION_PENALTY_CAP = 1.0
UNKNOWN_PROVIDER = "unknown"


def _positive_count(value: float | None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value) or value <= 0:
        return 0.0
    return float(value)


def compute_reward(event: ShadowEvent) -> float:
    """Scalar reward for one event, in [-1.5, 1]."""
    reward = 1.0 if event.converted else 0.0
    reward -= min(EDIT_PENALTY_CAP, _positive_count(event.edits) * EDIT_PENALTY)
    reward -= min(VIOLATION_PENALTY_CAP, _positive_count(event.sup_violations) * VIOLATION_PENALTY)
    return reward


def summarize_rl_rewards(events: Iterable[ShadowEvent]) -> RlSummary:
    """Average reward per provider, sorted by provider id."""
    sums: dict[str, float] = {}
    counts: dict[str, int] = {}
    total = 0

    for event in events:
        total += 1
        provider_id = event.provider_id or UNKNOWN_PROVIDER
        sums[provider_id] = sums.get(provider_id, 0.0) + compute_reward(event)
        counts[provider_id] = counts.get(provider_id, 0) + 1

    providers = tuple(
        ProviderStats(
            provider_id=pid,
            count=counts[pid],
            avg_reward=sums[pid] / counts[pid] if counts[pid] else 0.0,
        )
        for pid in sorted(sums)
    )
    return RlSummary(total=total, providers=providers)


def update_provider_priors(
    prior: Mapping[str, float],
    summary: RlSummary,
    learning_rate: float = 0.1,
) -> PriorConfig:
    """
    Return a new prior table nudged toward better-performing providers.

    Providers missing from the summary keep their prior unchanged.
    """
    updated: PriorConfig = dict(prior)
    for stats in summary.providers:
        current = prior.get(stats.provider_id)
        if not isinstance(current, (int, float)) or not math.isfinite(current):
            current = 0.0
        updated[stats.provider_id] = current + stats.avg_reward * learning_rate
    return updated


def run_shadow_rl_job(
    events: Iterable[ShadowEvent],
    prev_snapshot: RlPolicySnapshot | None,
    learning_rate: float = 0.1,
    now: int | None = None,
) -> RlPolicySnapshot:
    """
    Run one prior-update pass and return the next snapshot.

    Args:
        events: Shadow events collected since the last run
        prev_snapshot: Current snapshot, or None on cold start
        learning_rate: Step size for the prior nudge
        now: Epoch ms for ``updated_at_ts`` (defaults to the current time)

    Returns:
        A new RlPolicySnapshot; ``prev_snapshot`` is left untouched
    """
    if not math.isfinite(learning_rate) or learning_rate < 0:
        raise ValueError(f"learning_rate must be a finite non-negative number, got {learning_rate}")

    summary = summarize_rl_rewards(events)
    prev_priors = prev_snapshot.priors if prev_snapshot else {}
    priors = update_provider_priors(prev_priors, summary, learning_rate)
    version = (prev_snapshot.version if prev_snapshot else 0) + 1

    snapshot = RlPolicySnapshot(
        version=version,
        updated_at_ts=now if now is not None else int(time.time() * 1000),
        priors=priors,
        last_summary=summary,
    )

    logger.info(
        f"Shadow RL job produced snapshot v{version}",
        extra={
            "version": version,
            "events": summary.total,
            "providers": len(summary.providers),
            "learning_rate": learning_rate,
        },
    )
    return snapshot
