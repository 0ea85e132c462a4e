"""Repair sessions: drive failure-aware fix selection to a bounded outcome."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from gatekeeper.core.edit_search import failure_aware_search
from gatekeeper.core.failure_playbook import FailureFallback, FailureKind, pick_failure_fallback
from gatekeeper.core.logging import get_logger
from gatekeeper.core.schemas_search import EditAttempt, EditCandidate
from gatekeeper.core.ttl_store import TTLStore

logger = get_logger(__name__)

# try_fix(candidate) -> (success, failure_reason)
TryFix = Callable[[EditCandidate], tuple[bool, str | None]]


class AttemptHistoryStore:
    """Per-session attempt histories, evicted after the store's TTL.

    Each history keeps at most ``max_len`` attempts, newest last.
    """

    def __init__(self, store: TTLStore, max_len: int | None = None):
        self.store = store
        self.max_len = max_len

    def get(self, session_id: str) -> list[EditAttempt]:
        return list(self.store.get(("attempts", session_id), ()))

    def append(self, session_id: str, attempt: EditAttempt) -> list[EditAttempt]:
        def add(current):
            history = (*(current or ()), attempt)
            if self.max_len is not None and len(history) > self.max_len:
                history = history[-self.max_len :]
            return history

        history = self.store.update(("attempts", session_id), add, default=())
        return list(history)

    def clear(self, session_id: str) -> None:
        self.store.delete(("attempts", session_id))


@dataclass
class RepairOutcome:
    success: bool
    fix: EditCandidate | None = None
    attempts: list[EditAttempt] = field(default_factory=list)
    fallback: FailureFallback | None = None


def run_repair_session(
    candidates: Sequence[EditCandidate],
    try_fix: TryFix,
    max_attempts: int = 3,
    failure_kind: str | FailureKind = FailureKind.CONTRACTS_FAILED,
    route: str | None = None,
) -> RepairOutcome:
    """
    Try fixes until one succeeds or the search says stop.

    Terminates in at most ``len(candidates)`` iterations since a fix id is
    never retried.

    Args:
        candidates: Fix catalog
        try_fix: Applies a fix and re-runs the failing check
        max_attempts: Failure ceiling before escalating
        failure_kind: Kind passed to the failure playbook on escalation
        route: Route for the fallback's retry link

    Returns:
        RepairOutcome with either the successful fix or a fallback payload
    """
    attempts: list[EditAttempt] = []

    while True:
        decision = failure_aware_search(attempts, candidates, max_attempts)
        if decision.stop or decision.next is None:
            break

        fix = decision.next
        success, reason = try_fix(fix)
        attempts.append(EditAttempt(fix_id=fix.id, success=success, reason=None if success else reason))

        if success:
            logger.info(
                f"Repair succeeded with fix {fix.id}",
                extra={"fix_id": fix.id, "attempt_count": len(attempts)},
            )
            return RepairOutcome(success=True, fix=fix, attempts=attempts)

    last_reason = next((a.reason for a in reversed(attempts) if a.reason), None)
    logger.warning(
        f"Repair exhausted after {len(attempts)} attempts; falling back",
        extra={"attempt_count": len(attempts), "last_reason": last_reason},
    )
    return RepairOutcome(
        success=False,
        attempts=attempts,
        fallback=pick_failure_fallback(failure_kind, route=route, reason=last_reason),
    )
