#!/usr/bin/env python3
"""
Nightly shadow RL job.

Reads shadow outcome events (JSONL, one event per line) and the previous
routing snapshot (JSON, optional), writes the next snapshot.

Usage:
    python scripts/run_shadow_rl_job.py events.jsonl --prev snapshot.json --out next.json
    python scripts/run_shadow_rl_job.py events.jsonl --publish   # use SNAPSHOT_BACKEND
"""

import argparse
import sys
import uuid
from pathlib import Path

# Ensure gatekeeper is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def load_events(path: Path) -> list:
    from gatekeeper.core.schemas_routing import ShadowEvent

    events = []
    with path.open() as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(ShadowEvent.model_validate_json(line))
            except ValueError as e:
                print(f"  ✗ Skipping line {line_no}: {e}", file=sys.stderr)
    return events


def main() -> int:
    parser = argparse.ArgumentParser(description="Update routing priors from shadow outcome events.")
    parser.add_argument("events", help="JSONL file of shadow events")
    parser.add_argument("--prev", metavar="PATH", help="Previous snapshot JSON (omit on cold start)")
    parser.add_argument("--out", metavar="PATH", help="Write the new snapshot JSON here")
    parser.add_argument("--learning-rate", type=float, help="Override RL_LEARNING_RATE")
    parser.add_argument(
        "--publish",
        action="store_true",
        help="Read the previous snapshot from and publish to the configured store",
    )
    args = parser.parse_args()

    from gatekeeper.core.config import get_settings
    from gatekeeper.core.metrics import timer
    from gatekeeper.core.schemas_routing import RlPolicySnapshot
    from gatekeeper.core.shadow_rl import run_shadow_rl_job
    from gatekeeper.core.snapshot_store import get_snapshot_store

    settings = get_settings()
    learning_rate = args.learning_rate if args.learning_rate is not None else settings.RL_LEARNING_RATE
    run_id = str(uuid.uuid4())

    events = load_events(Path(args.events))
    print(f"Loaded {len(events)} shadow events")

    store = get_snapshot_store() if args.publish else None
    if args.prev:
        prev = RlPolicySnapshot.model_validate_json(Path(args.prev).read_text())
    elif store is not None:
        prev = store.latest()
    else:
        prev = None

    with timer("Shadow RL job", run_id) as timing:
        snapshot = run_shadow_rl_job(events, prev, learning_rate=learning_rate)
    print(f"Computed snapshot v{snapshot.version} in {timing.duration_ms:.1f}ms")

    if store is not None:
        store.publish(snapshot)
        print(f"✓ Published snapshot v{snapshot.version}")

    payload = snapshot.model_dump_json(indent=2)
    if args.out:
        Path(args.out).write_text(payload)
        print(f"✓ Wrote snapshot v{snapshot.version} to {args.out}")
    else:
        print(payload)

    for stats in snapshot.last_summary.providers:
        print(
            f"  {stats.provider_id}: n={stats.count} avg_reward={stats.avg_reward:+.3f} "
            f"prior={snapshot.priors[stats.provider_id]:+.3f}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
