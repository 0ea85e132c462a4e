"""Cost telemetry: rough per-request estimates and per-resource rollups.

Until pricing is finalized (``PRICING_UNSET``), estimates report 0 cents with
``pending=True``.
"""

import json
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from gatekeeper.core.logging import get_logger
from gatekeeper.core.schemas_sup import CostEstimate, CostRecord, CostRollupEntry
from gatekeeper.core.stats import finite_values, p95

logger = get_logger(__name__)

USD_TO_CENTS = 100

_warned_pricing_unset = False


@dataclass(frozen=True)
class CostPricing:
    pricing_unset: bool = True
    cpm_usd: float = 3.0  # $ per 1k tokens
    tokens_per_1k_chars: int = 250
    latency_ms: int = 400

    @classmethod
    def from_settings(cls, settings: Any) -> "CostPricing":
        return cls(
            pricing_unset=settings.PRICING_UNSET,
            cpm_usd=max(0.0, settings.COST_CPM_USD),
            tokens_per_1k_chars=max(1, settings.COST_TOKENS_PER_1K_CHARS),
            latency_ms=max(1, settings.COST_LAT_MS),
        )


def _count_tokens_like(obj: Any, tokens_per_1k_chars: int) -> int:
    chars = len(json.dumps(obj, default=str, separators=(",", ":")))
    return max(1, math.ceil((chars / 1000) * tokens_per_1k_chars))


def estimate_cost(spec_like: dict[str, Any] | None, pricing: CostPricing = CostPricing()) -> CostEstimate:
    """
    Estimate cost of generating a page from its prepared spec.

    Only ``sections``, ``copy`` and ``brand`` are counted.
    """
    global _warned_pricing_unset

    spec_like = spec_like or {}
    tokens = _count_tokens_like(
        {
            "sections": spec_like.get("sections"),
            "copy": spec_like.get("copy"),
            "brand": spec_like.get("brand"),
        },
        pricing.tokens_per_1k_chars,
    )

    if pricing.pricing_unset:
        if not _warned_pricing_unset:
            _warned_pricing_unset = True
            logger.warning(
                "Pricing is UNSET. Returning cents=0 with pending=true. "
                "Set PRICING_UNSET=false and COST_CPM_USD to enable estimates."
            )
        return CostEstimate(latency_ms=pricing.latency_ms, tokens=tokens, cents=0, pending=True)

    cents = (tokens / 1000) * pricing.cpm_usd * USD_TO_CENTS
    return CostEstimate(
        latency_ms=pricing.latency_ms,
        tokens=tokens,
        cents=round(cents, 2),
        pending=False,
    )


def rollup_costs(records: Iterable[CostRecord], key: str = "provider_id") -> list[CostRollupEntry]:
    """
    Roll cost records up per resource.

    Args:
        records: Cost observations
        key: Grouping field: provider_id, route or url

    Returns:
        One entry per resource, sorted by key. Records without the key are
        grouped under "unknown"; non-finite or negative costs and latencies are
        left out of the sums.
    """
    if key not in ("provider_id", "route", "url"):
        raise ValueError(f"Unsupported rollup key: {key}")

    groups: dict[str, tuple[list[float], list[float], int]] = {}
    for record in records:
        group_key = getattr(record, key) or "unknown"
        costs, latencies, count = groups.get(group_key, ([], [], 0))

        cost = finite_values([record.cost_cents])
        if cost and cost[0] >= 0:
            costs.append(cost[0])
        latency = finite_values([record.latency_ms])
        if latency and latency[0] >= 0:
            latencies.append(latency[0])

        groups[group_key] = (costs, latencies, count + 1)

    rollup: list[CostRollupEntry] = []
    for group_key in sorted(groups):
        costs, latencies, count = groups[group_key]
        total = sum(costs)
        rollup.append(
            CostRollupEntry(
                key=group_key,
                count=count,
                total_cents=total,
                avg_cents=total / len(costs) if costs else None,
                p95_latency_ms=p95(latencies),
            )
        )
    return rollup
