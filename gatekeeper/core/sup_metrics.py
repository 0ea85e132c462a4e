"""Outcome metrics for the grounding guard.

Aggregates labeled guard decisions into confusion-matrix counts and rates,
p95 latency and cost per URL. Every call recomputes from the full batch;
there is no incremental state. Callers decide cadence (cron, admin endpoint).
"""

import math
from collections.abc import Iterable, Mapping
from typing import Any

from gatekeeper.core.schemas_sup import (
    SupAuditSummary,
    SupDecision,
    SupEvent,
    SupLabel,
    SupMetricsSummary,
    SupModeCounts,
)
from gatekeeper.core.stats import mean, p95, safe_rate


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def aggregate_sup_events(events: Iterable[SupEvent]) -> SupMetricsSummary:
    """
    Aggregate a batch of labeled guard events.

    Args:
        events: Labeled decisions

    Returns:
        SupMetricsSummary; rates are 0 when their denominator is 0 and
        p95 latency is None without latency data
    """
    tp = fp = tn = fn = 0
    latencies: list[float] = []
    cost_per_url: dict[str, float] = {}

    for ev in events:
        if ev.decision == SupDecision.BLOCK and ev.label == SupLabel.BAD:
            tp += 1
        elif ev.decision == SupDecision.BLOCK and ev.label == SupLabel.GOOD:
            fp += 1
        elif ev.decision == SupDecision.ALLOW and ev.label == SupLabel.GOOD:
            tn += 1
        elif ev.decision == SupDecision.ALLOW and ev.label == SupLabel.BAD:
            fn += 1

        if _is_number(ev.latency_ms) and ev.latency_ms >= 0:
            latencies.append(float(ev.latency_ms))

        if _is_number(ev.cost_cents) and ev.cost_cents > 0 and ev.url:
            cost_per_url[ev.url] = cost_per_url.get(ev.url, 0.0) + ev.cost_cents

    return SupMetricsSummary(
        total=tp + fp + tn + fn,
        true_positives=tp,
        false_positives=fp,
        true_negatives=tn,
        false_negatives=fn,
        false_negative_rate=safe_rate(fn, tp + fn),
        false_positive_rate=safe_rate(fp, tn + fp),
        p95_latency_ms=p95(latencies),
        cost_per_url_cents=cost_per_url,
    )


def summarize_sup_audit(rows: Iterable[Any]) -> SupAuditSummary:
    """
    Summarize guard audit rows ({mode, ms, pii_present, abuse_reasons}).

    Rows that are not mappings are skipped.
    """
    counts = SupModeCounts()
    durations: list[float] = []
    total = pii = abuse = 0

    for row in rows or []:
        if not isinstance(row, Mapping):
            continue
        total += 1

        mode = str(row.get("mode") or "").lower()
        if mode in ("allow", "strict", "block"):
            setattr(counts, mode, getattr(counts, mode) + 1)
        else:
            counts.other += 1

        ms = row.get("ms")
        if _is_number(ms) and ms >= 0:
            durations.append(float(ms))

        if row.get("pii_present"):
            pii += 1

        reasons = row.get("abuse_reasons")
        if isinstance(reasons, list) and reasons:
            abuse += 1

    return SupAuditSummary(
        total=total,
        modes=counts,
        avg_ms=mean(durations),
        p95_ms=p95(durations),
        pii_present=pii,
        abuse_with_reasons=abuse,
    )
