"""Apply the grounding guard to outgoing AI response payloads.

Payloads come in several shapes (``text``, ``output``, ``answer``, ...).
``from_payload`` probes them in a fixed order and returns a typed
``TextBearingResponse`` variant; everything downstream works on that variant.

Fail-open: ``safe_evaluate`` turns any unexpected guard failure into a
``GuardResult`` carrying a ``GuardError``, and ``verdict_or_allow`` is the one
place that maps an error to an Allow verdict. The guard must never be the
reason a response fails.
"""

import copy
from dataclasses import dataclass
from typing import Any

from gatekeeper.core.citation_guard import evaluate
from gatekeeper.core.errors import GuardError
from gatekeeper.core.logging import get_logger
from gatekeeper.core.schemas_guard import (
    AnswerResponse,
    Citation,
    ContentResponse,
    DataTextResponse,
    GuardAction,
    GuardMode,
    GuardVerdict,
    HtmlResponse,
    MarkdownResponse,
    OutputResponse,
    TextBearingResponse,
    TextResponse,
)

logger = get_logger(__name__)

BLOCK_ERROR_CODE = "citelock_block"
VERDICT_KEY = "citeLock"

# Probe order matters: the first matching field wins
_TOP_LEVEL_VARIANTS: list[tuple[str, type]] = [
    ("text", TextResponse),
    ("output", OutputResponse),
    ("answer", AnswerResponse),
    ("content", ContentResponse),
    ("html", HtmlResponse),
    ("markdown", MarkdownResponse),
]


@dataclass(frozen=True)
class GuardResult:
    """Either a verdict or the error that prevented one."""

    verdict: GuardVerdict | None = None
    error: GuardError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.verdict is not None


def safe_evaluate(
    text: str,
    domain_hint: str | None = None,
    citations: list[Citation] | None = None,
    mode: GuardMode | str | None = GuardMode.BALANCED,
) -> GuardResult:
    """Run the guard, capturing any failure as a GuardError."""
    try:
        return GuardResult(verdict=evaluate(text, domain_hint, citations, mode))
    except Exception as e:
        return GuardResult(error=GuardError(f"Guard evaluation failed: {e}", cause=e))


def verdict_or_allow(result: GuardResult) -> GuardVerdict:
    """Unwrap a GuardResult; errors are treated as Allow."""
    if result.ok:
        return result.verdict

    logger.warning(
        f"Guard failed open: {result.error}",
        extra={"error_type": type(result.error.cause).__name__ if result.error else None},
    )
    return GuardVerdict(allowed=True, action=GuardAction.ALLOW, score=0, reasons=("guard_error",))


def _payload_citations(payload: dict[str, Any]) -> list[Citation]:
    src = payload.get("citations")
    if not isinstance(src, list):
        src = payload.get("sources")
    if not isinstance(src, list):
        return []

    citations: list[Citation] = []
    for c in src:
        url = c.get("url") if isinstance(c, dict) else c
        if url is None:
            continue
        title = c.get("title") if isinstance(c, dict) and isinstance(c.get("title"), str) else None
        citations.append(Citation(url=str(url).strip(), title=title))
    return citations


def _payload_domain_hint(payload: dict[str, Any]) -> str | None:
    for key in ("domainHint", "domain_hint"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def from_payload(payload: Any) -> TextBearingResponse | None:
    """
    Classify a response body into a text-bearing variant.

    Returns:
        The matching variant, or None when the payload carries no text
    """
    if not isinstance(payload, dict):
        return None

    citations = _payload_citations(payload)
    domain_hint = _payload_domain_hint(payload)

    for field_name, variant in _TOP_LEVEL_VARIANTS:
        if isinstance(payload.get(field_name), str):
            extra = {k: v for k, v in payload.items() if k != field_name}
            return variant(
                **{field_name: payload[field_name]},
                citations=citations,
                domain_hint=domain_hint,
                extra=extra,
            )

    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("text"), str):
        extra = {k: v for k, v in payload.items() if k != "data"}
        return DataTextResponse(data=data, citations=citations, domain_hint=domain_hint, extra=extra)

    return None


def text_of(response: TextBearingResponse) -> str:
    if isinstance(response, DataTextResponse):
        return response.data["text"]
    return getattr(response, response.kind)


def with_text(response: TextBearingResponse, text: str) -> TextBearingResponse:
    """Return a copy of the response with its text field replaced."""
    if isinstance(response, DataTextResponse):
        return response.model_copy(update={"data": {**response.data, "text": text}})
    return response.model_copy(update={response.kind: text})


def to_payload(response: TextBearingResponse) -> dict[str, Any]:
    """Rebuild the original payload shape from a variant."""
    out = copy.deepcopy(response.extra)
    if isinstance(response, DataTextResponse):
        out["data"] = copy.deepcopy(response.data)
    else:
        out[response.kind] = getattr(response, response.kind)
    return out


def verdict_summary(verdict: GuardVerdict) -> dict[str, Any]:
    return {
        "action": verdict.action.value,
        "score": verdict.score,
        "reasons": list(verdict.reasons),
    }


def apply_guard(
    payload: Any,
    mode: GuardMode | str | None = GuardMode.BALANCED,
    domain_hint: str | None = None,
) -> Any:
    """
    Guard an outgoing payload.

    - Block: the whole payload becomes an error envelope
    - Soften: the text field is replaced with the verdict's safe text
    - Allow: the payload passes through with the verdict summary attached
    Payloads without a text-bearing field are returned unchanged.
    """
    response = from_payload(payload)
    if response is None:
        return payload

    result = safe_evaluate(
        text_of(response),
        domain_hint=response.domain_hint or domain_hint,
        citations=response.citations,
        mode=mode,
    )
    verdict = verdict_or_allow(result)
    summary = verdict_summary(verdict)

    if verdict.action == GuardAction.BLOCK:
        logger.info(
            "Guard blocked response",
            extra={"kind": response.kind, "score": verdict.score},
        )
        return {"ok": False, "error": BLOCK_ERROR_CODE, "details": summary}

    if verdict.action == GuardAction.SOFTEN and verdict.safe_text:
        response = with_text(response, verdict.safe_text)

    out = to_payload(response)
    out[VERDICT_KEY] = summary
    return out
