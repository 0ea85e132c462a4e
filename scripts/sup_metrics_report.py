#!/usr/bin/env python3
"""
Guard outcome report.

Reads labeled guard events (JSONL) and prints the confusion matrix, error
rates, p95 latency and the most expensive URLs.

Usage:
    python scripts/sup_metrics_report.py labeled_events.jsonl [--json] [--top 10]
"""

import argparse
import json
import sys
from pathlib import Path

# Ensure gatekeeper is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def main() -> int:
    parser = argparse.ArgumentParser(description="Summarize labeled guard decisions.")
    parser.add_argument("events", help="JSONL file of labeled events")
    parser.add_argument("--json", action="store_true", help="Print the raw summary as JSON")
    parser.add_argument("--top", type=int, default=10, help="How many URLs to list by cost")
    args = parser.parse_args()

    from gatekeeper.core.schemas_sup import SupEvent
    from gatekeeper.core.sup_metrics import aggregate_sup_events

    events = []
    skipped = 0
    with Path(args.events).open() as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(SupEvent.model_validate_json(line))
            except ValueError:
                skipped += 1

    summary = aggregate_sup_events(events)

    if args.json:
        print(json.dumps(summary.model_dump(), indent=2))
        return 0

    print(f"{'=' * 60}")
    print(f"Guard outcomes: {summary.total} events ({skipped} skipped)")
    print(f"{'=' * 60}")
    print(f"  TP={summary.true_positives}  FP={summary.false_positives}  "
          f"TN={summary.true_negatives}  FN={summary.false_negatives}")
    print(f"  False negative rate: {summary.false_negative_rate:.3f}")
    print(f"  False positive rate: {summary.false_positive_rate:.3f}")
    p95 = summary.p95_latency_ms
    print(f"  p95 latency: {f'{p95:.1f}ms' if p95 is not None else 'n/a'}")

    if summary.cost_per_url_cents:
        print("\n  Cost per URL (cents):")
        ranked = sorted(summary.cost_per_url_cents.items(), key=lambda kv: kv[1], reverse=True)
        for url, cents in ranked[: args.top]:
            print(f"    {cents:10.2f}  {url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
