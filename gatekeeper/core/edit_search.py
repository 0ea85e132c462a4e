"""Spec edit search.

Two search policies used when a quality check rejects a generated page:

- ``edit_search``: bounded beam search over a fixed catalog of safe edits to
  the (spec, copy) pair, looking for a strictly better-scoring variant.
- ``failure_aware_search``: given the history of failed fix attempts, pick the
  next untried fix (or decide to stop and escalate to the fallback).

Both are pure: actions deep-clone before editing, so repeated calls on the
same input return the same result.
"""

import copy as copylib
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from gatekeeper.core.logging import get_logger
from gatekeeper.core.readability import check_copy_readability
from gatekeeper.core.schemas_search import (
    EditAttempt,
    EditCandidate,
    EditSearchResult,
    SearchDecision,
)

logger = get_logger(__name__)

Spec = dict[str, Any]
Copy = dict[str, str]

DENSE_SECTION = "features-3col"
DEFAULT_CTA_LABEL = "Get started"
DEFAULT_CTA_HEAD = "Ready when you are"


@dataclass(frozen=True)
class ScoreWeights:
    """Heuristic bonus/penalty constants for ``score_copy``.

    Calibration is unverified against outcome data; override rather than edit.
    """

    cta_bonus: float = 4
    tone_bonus: float = 4
    light_bonus: float = 3
    # Tone/light bonuses only apply below this readability score
    soft_readability_below: float = 60
    headline_max_chars: int = 90
    headline_penalty_step: int = 10
    headline_penalty_cap: float = 8


DEFAULT_WEIGHTS = ScoreWeights()


def _readability_score(copy: Copy, readability: Callable[[Copy], Any]) -> float:
    try:
        result = readability(copy)
    except Exception as e:
        logger.warning(f"Readability check failed, scoring as 100: {e}")
        return 100.0
    score = getattr(result, "score", None)
    return float(score) if score is not None else 100.0


def score_copy(
    copy: Copy,
    spec: Spec,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
    readability: Callable[[Copy], Any] = check_copy_readability,
) -> float:
    """Deterministic quality score for a (spec, copy) pair."""
    base = _readability_score(copy, readability)
    brand = spec.get("brand") or {}

    cta_bonus = weights.cta_bonus if copy.get("CTA_LABEL") and copy.get("CTA_HEAD") else 0

    # Rescue heuristics: only reward a softer look when copy already reads poorly
    need_softer = base < weights.soft_readability_below
    tone_bonus = weights.tone_bonus if need_softer and brand.get("tone") == "minimal" else 0
    light_bonus = weights.light_bonus if need_softer and brand.get("dark") is False else 0

    headline = str(copy.get("HEADLINE") or "")
    length_penalty = 0.0
    if len(headline) > weights.headline_max_chars:
        overflow = len(headline) - weights.headline_max_chars
        length_penalty = min(weights.headline_penalty_cap, overflow // weights.headline_penalty_step)

    return base + cta_bonus + tone_bonus + light_bonus - length_penalty


# =========================
# Action catalog
# =========================


def _more_minimal(spec: Spec, copy: Copy) -> tuple[Spec, Copy]:
    out = copylib.deepcopy(spec)
    out["brand"] = {**(out.get("brand") or {}), "tone": "minimal"}
    return out, dict(copy)


def _switch_to_light(spec: Spec, copy: Copy) -> tuple[Spec, Copy]:
    out = copylib.deepcopy(spec)
    out["brand"] = {**(out.get("brand") or {}), "dark": False}
    return out, dict(copy)


def _email_signup_cta(spec: Spec, copy: Copy) -> tuple[Spec, Copy]:
    out_copy = dict(copy)
    if not out_copy.get("CTA_LABEL"):
        out_copy["CTA_LABEL"] = DEFAULT_CTA_LABEL
    if not out_copy.get("CTA_HEAD"):
        out_copy["CTA_HEAD"] = DEFAULT_CTA_HEAD
    return copylib.deepcopy(spec), out_copy


def _remove_dense_features(spec: Spec, copy: Copy) -> tuple[Spec, Copy]:
    out = copylib.deepcopy(spec)
    layout = out.get("layout") or {}
    sections = [str(s) for s in layout.get("sections") or []]
    out["layout"] = {**layout, "sections": [s for s in dict.fromkeys(sections) if s != DENSE_SECTION]}
    return out, dict(copy)


@dataclass(frozen=True)
class EditAction:
    name: str
    apply: Callable[[Spec, Copy], tuple[Spec, Copy]]


ACTIONS: tuple[EditAction, ...] = (
    EditAction("More minimal", _more_minimal),
    EditAction("Switch to light", _switch_to_light),
    EditAction("Use email signup CTA", _email_signup_cta),
    EditAction("Remove dense features", _remove_dense_features),
)


@dataclass
class _Node:
    spec: Spec
    copy: Copy
    score: float
    actions: list[str] = field(default_factory=list)


def _normalize_start(spec: Spec | None, copy: Copy | None) -> tuple[Spec, Copy]:
    # Malformed brand/layout/sections read as empty rather than failing
    start = copylib.deepcopy(dict(spec)) if isinstance(spec, Mapping) else {}
    brand = start.get("brand")
    start["brand"] = dict(brand) if isinstance(brand, Mapping) else {}
    layout = start.get("layout")
    layout = dict(layout) if isinstance(layout, Mapping) else {}
    sections = layout.get("sections")
    layout["sections"] = list(sections) if isinstance(sections, (list, tuple)) else []
    start["layout"] = layout
    slots = copy if isinstance(copy, Mapping) else {}
    return start, {str(k): str(v) for k, v in slots.items()}


def edit_search(
    spec: Spec | None,
    copy: Copy | None,
    depth: int = 2,
    beam_width: int = 4,
    min_gain: float = 1.0,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
    actions: Sequence[EditAction] = ACTIONS,
    readability: Callable[[Copy], Any] = check_copy_readability,
) -> EditSearchResult:
    """
    Beam search for a better (spec, copy) variant.

    Every frontier node is expanded with every action; the top ``beam_width``
    children (stable on ties, so catalog order wins) become the next frontier.
    The best node across all rounds is kept.

    Args:
        spec: Page spec ({"brand": {...}, "layout": {"sections": [...]}, ...})
        copy: Copy slots (HEADLINE, CTA_LABEL, ...)
        depth: Number of expansion rounds
        beam_width: Nodes kept per round
        min_gain: Required improvement over baseline (dead zone against noise)
        weights: Scoring constants
        readability: Readability check returning an object with ``score``

    Returns:
        EditSearchResult; ``better`` is False and the normalised input is
        returned unchanged unless the best score beats baseline by > min_gain
    """
    start_spec, start_copy = _normalize_start(spec, copy)
    baseline = score_copy(start_copy, start_spec, weights, readability)
    best = _Node(spec=start_spec, copy=start_copy, score=baseline)

    frontier = [best]
    for _ in range(max(0, depth)):
        children: list[_Node] = []
        for node in frontier:
            for action in actions:
                child_spec, child_copy = action.apply(node.spec, node.copy)
                children.append(
                    _Node(
                        spec=child_spec,
                        copy=child_copy,
                        score=score_copy(child_copy, child_spec, weights, readability),
                        actions=[*node.actions, action.name],
                    )
                )

        if not children:
            break
        children.sort(key=lambda n: n.score, reverse=True)
        frontier = children[: max(1, beam_width)]
        if frontier[0].score > best.score:
            best = frontier[0]

    improved = best.score > baseline + min_gain
    logger.debug(
        "Edit search finished",
        extra={"baseline": baseline, "best": best.score, "improved": improved},
    )

    if not improved:
        return EditSearchResult(
            better=False, spec=start_spec, copy=start_copy, applied=[], score=baseline, baseline_score=baseline
        )

    return EditSearchResult(
        better=True,
        spec=best.spec,
        copy=best.copy,
        applied=best.actions,
        score=best.score,
        baseline_score=baseline,
    )


def failure_aware_search(
    attempts: Sequence[EditAttempt],
    candidates: Sequence[EditCandidate],
    max_attempts: int = 3,
) -> SearchDecision:
    """
    Pick the next fix to try after failed attempts.

    - Stop once ``max_attempts`` failures are recorded, whatever remains
    - Never retry a fix id that was already attempted
    - Prefer untried fixes tagged with the last failure's reason
    - Within the pool, lowest risk wins; ties go to catalog order

    Returns:
        SearchDecision(next=candidate, stop=False) or (None, True)
    """
    failures = [a for a in attempts if not a.success]
    if len(failures) >= max_attempts:
        return SearchDecision(next=None, stop=True)

    tried = {a.fix_id for a in attempts if a.fix_id}
    untried = [c for c in candidates if c.id not in tried]
    if not untried:
        return SearchDecision(next=None, stop=True)

    last_reason = (failures[-1].reason or "").strip().lower() if failures else ""
    pool = untried
    if last_reason:
        targeted = [c for c in untried if last_reason in {t.lower() for t in c.tags}]
        if targeted:
            pool = targeted

    # min() keeps the first of equal-risk candidates
    return SearchDecision(next=min(pool, key=lambda c: c.risk), stop=False)
