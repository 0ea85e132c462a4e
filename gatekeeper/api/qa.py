"""Quality repair API endpoints: edit search and failure-aware fix selection."""

from fastapi import APIRouter, Depends

from gatekeeper.api.deps import get_attempt_history
from gatekeeper.core.config import Settings, get_settings
from gatekeeper.core.edit_search import edit_search, failure_aware_search
from gatekeeper.core.failure_playbook import FailureKind, pick_failure_fallback
from gatekeeper.core.logging import get_logger
from gatekeeper.core.repair_session import AttemptHistoryStore
from gatekeeper.core.schemas_search import (
    EditSearchRequest,
    EditSearchResult,
    NextFixRequest,
    NextFixResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/qa", tags=["qa"])


@router.post("/edit-search", response_model=EditSearchResult)
async def run_edit_search(
    request: EditSearchRequest,
    settings: Settings = Depends(get_settings),
) -> EditSearchResult:
    """Search for a better (spec, copy) variant of a rejected page."""
    return edit_search(
        request.spec,
        request.copy_slots,
        depth=settings.EDIT_SEARCH_DEPTH,
        beam_width=settings.EDIT_SEARCH_BEAM_WIDTH,
        min_gain=settings.EDIT_SEARCH_MIN_GAIN,
    )


@router.post("/next-fix", response_model=NextFixResponse)
async def next_fix(
    request: NextFixRequest,
    settings: Settings = Depends(get_settings),
    history: AttemptHistoryStore = Depends(get_attempt_history),
) -> NextFixResponse:
    """
    Record the previous attempt (if any) and pick the next fix for a session.

    When the search stops, a fallback payload is included for the caller to
    ship instead of the rejected page.
    """
    max_attempts = request.max_attempts or settings.EDIT_SEARCH_MAX_ATTEMPTS
    attempts = history.get(request.session_id)
    decision = failure_aware_search(attempts, request.candidates, max_attempts)

    # A stopped session records nothing further
    if request.attempt is not None and not decision.stop:
        attempts = history.append(request.session_id, request.attempt)
        decision = failure_aware_search(attempts, request.candidates, max_attempts)

    fallback = None
    if decision.stop:
        last_reason = next((a.reason for a in reversed(attempts) if a.reason), None)
        fallback = pick_failure_fallback(FailureKind.CONTRACTS_FAILED, reason=last_reason).model_dump()
        logger.info(
            f"Repair session {request.session_id} stopped after {len(attempts)} attempts",
            extra={"session_id": request.session_id, "attempt_count": len(attempts)},
        )

    return NextFixResponse(
        session_id=request.session_id,
        decision=decision,
        attempts=attempts,
        fallback=fallback,
    )
