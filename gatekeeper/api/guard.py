"""Grounding guard API endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from gatekeeper.api.deps import enforce_guard_rate_limit
from gatekeeper.core.config import Settings, get_settings
from gatekeeper.core.guard_patch import BLOCK_ERROR_CODE, apply_guard, safe_evaluate, verdict_or_allow
from gatekeeper.core.metrics import timer
from gatekeeper.core.schemas_guard import GuardMode, GuardRequest, GuardVerdict

router = APIRouter(prefix="/guard", tags=["guard"])

# Guard runs inline on the response path
SLOW_EVALUATION_MS = 50


@router.post("/evaluate", response_model=GuardVerdict)
async def evaluate_text(
    request: GuardRequest,
    settings: Settings = Depends(get_settings),
    _client: str = Depends(enforce_guard_rate_limit),
) -> GuardVerdict:
    """Score text against its citations and return allow / soften / block."""
    mode = request.mode or settings.GUARD_MODE_DEFAULT
    with timer("Guard evaluation", log_level="debug", warn_over_ms=SLOW_EVALUATION_MS):
        result = safe_evaluate(request.text, request.domain_hint, request.citations, mode)
    return verdict_or_allow(result)


@router.post("/apply")
async def apply_to_payload(
    payload: Any = Body(...),
    mode: GuardMode | None = Query(None),
    domain: str | None = Query(None, description="Domain hint when the payload has none"),
    settings: Settings = Depends(get_settings),
    _client: str = Depends(enforce_guard_rate_limit),
) -> JSONResponse:
    """
    Guard an AI response payload.

    Returns the payload (softened if needed) with a ``citeLock`` summary, or a
    422 error envelope when the text is blocked.
    """
    guarded = apply_guard(payload, mode=mode or settings.GUARD_MODE_DEFAULT, domain_hint=domain)

    if isinstance(guarded, dict) and guarded.get("error") == BLOCK_ERROR_CODE:
        return JSONResponse(content=guarded, status_code=422)
    return JSONResponse(content=guarded, status_code=200)
