"""Grounding policy guard.

Scores a piece of generated text against its citations and returns an
allow / soften / block verdict. Runs synchronously on the response path, so
everything here is a pure function over its inputs: no I/O, no shared state.

Scoring overview:
  - needs-citation: claim-signal density per sentence, or a sensitive domain
  - coverage (0..1): inline citation markers, presence of any valid citation,
    and the average trust of the cited domains
  - composite (0..100): coverage minus a claiminess penalty, plus a small
    bonus for having citations at all
"""

import math
import re
from collections.abc import Iterable, Mapping
from urllib.parse import urlparse

from gatekeeper.core.claim_sanitizer import sanitize_claims
from gatekeeper.core.schemas_guard import (
    DEFAULT_THRESHOLDS,
    Citation,
    GuardAction,
    GuardMode,
    GuardThresholds,
    GuardVerdict,
)

# =========================
# Detection constants
# =========================

NEEDS_CITATION_DOMAINS = frozenset(
    {"medical", "health", "legal", "finance", "news", "factual", "science", "history"}
)

URL_RE = re.compile(r"\bhttps?://[^\s)]+", re.IGNORECASE)
BRACKET_CITE_RE = re.compile(r"\[\d+\]")
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
VALID_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

# Numeric signals count every occurrence; the patterns overlap on purpose
# ("2024" is both a year and a bare number).
NUMERIC_CLAIM_SIGNALS = [
    re.compile(r"\b\d{4}\b"),
    re.compile(r"\b\d+(?:\.\d+)?%"),
    re.compile(r"\b\d+(?:\.\d+)?\b"),
]

# Phrase signals count at most once each
PHRASE_CLAIM_SIGNALS = [
    re.compile(r"\baccording to\b", re.IGNORECASE),
    re.compile(r"\breport(?:ed|s)?\b", re.IGNORECASE),
    re.compile(r"\bstud(?:y|ies|ying)\b", re.IGNORECASE),
    re.compile(r"\bsince\b", re.IGNORECASE),
    re.compile(r"\bas of\b", re.IGNORECASE),
    re.compile(r"\bdata\b", re.IGNORECASE),
]

DENSITY_NEEDS = 0.6
DENSITY_NEEDS_LONG = 0.3
LONG_TEXT_SENTENCES = 4
CLAIM_SATURATION = 12

# Coverage weights
WEIGHT_INLINE = 0.5
WEIGHT_HAS_CITATION = 0.25
WEIGHT_TRUST = 0.25
INLINE_SENTENCES_PER_MARK = 3

# Composite weights
CLAIMINESS_PENALTY = 0.3
CITATION_BONUS = 0.1

DISCLAIMER = "This content may include unverified claims. Treat as opinion unless a source is provided."

REASON_EMPTY = "empty_text"
REASON_NEEDS = "claims_detected_or_sensitive_domain"
REASON_NO_CITATIONS = "no_citations_present"
REASON_LOW_COVERAGE = "insufficient_inline_or_trust"
REASON_NEUTRALIZED = "claims_neutralized"


def _split_sentences(text: str) -> list[str]:
    return [s for s in SENTENCE_SPLIT_RE.split(text) if s]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def count_claim_signals(text: str) -> int:
    """Count numeric and phrase claim signals in text."""
    hits = sum(len(p.findall(text)) for p in NUMERIC_CLAIM_SIGNALS)
    hits += sum(1 for p in PHRASE_CLAIM_SIGNALS if p.search(text))
    return hits


def needs_citations(text: str, domain_hint: str | None = None) -> tuple[bool, int]:
    """
    Decide whether text likely needs citations.

    Returns:
        Tuple of (needs, signal_count)
    """
    sentences = _split_sentences(text)
    signals = count_claim_signals(text)

    if domain_hint and domain_hint.strip().lower() in NEEDS_CITATION_DOMAINS:
        return True, signals

    density = signals / max(1, len(sentences))
    needs = density >= DENSITY_NEEDS or (
        density >= DENSITY_NEEDS_LONG and len(sentences) >= LONG_TEXT_SENTENCES
    )
    return needs, signals


def normalize_citations(citations: Iterable[Citation | Mapping | str] | None) -> list[str]:
    """De-duplicate citations down to valid http(s) URLs, keeping first-seen order."""
    urls: list[str] = []
    seen: set[str] = set()

    for c in citations or []:
        if isinstance(c, Citation):
            raw = c.url
        elif isinstance(c, Mapping):
            raw = c.get("url")
        else:
            raw = c
        url = str(raw or "").strip()
        if VALID_URL_RE.match(url) and url not in seen:
            seen.add(url)
            urls.append(url)

    return urls


def count_inline_marks(text: str) -> int:
    return len(BRACKET_CITE_RE.findall(text)) + len(URL_RE.findall(text))


def trust_of(url: str) -> float:
    """Crude domain trust: prefer .gov/.edu, penalise blogs and shorteners."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return 0.5
    if not host:
        return 0.5

    if host.endswith(".gov"):
        return 1.0
    if host.endswith(".edu") or host.endswith(".ac.in"):
        return 0.95
    if re.search(r"\b(?:wikipedia|nih|who|un\.)", host):
        return 0.9
    if re.search(r"\b(?:medium|substack|blogspot|wordpress)\b", host):
        return 0.6
    if re.search(r"\b(?:tinyurl|bit\.ly|t\.co)\b", host):
        return 0.5
    return 0.8


def coverage_score(text: str, cites: list[str]) -> float:
    """Evidence coverage in [0, 1]."""
    sentences = _split_sentences(text)
    if not sentences:
        return 0.0

    inline = min(1.0, count_inline_marks(text) / max(1.0, len(sentences) / INLINE_SENTENCES_PER_MARK))
    has_any = WEIGHT_HAS_CITATION if cites else 0.0
    trust = sum(trust_of(u) for u in cites) / len(cites) if cites else 0.0

    return max(0.0, min(1.0, WEIGHT_INLINE * inline + has_any + WEIGHT_TRUST * trust))


def composite_score(coverage: float, signals: int, has_citations: bool) -> int:
    claiminess = min(1.0, signals / CLAIM_SATURATION)
    raw = coverage - CLAIMINESS_PENALTY * claiminess + (CITATION_BONUS if has_citations else 0.0)
    return _round_half_up(100 * max(0.0, min(1.0, raw)))


def soften_text(text: str, cites: list[str]) -> str:
    """Prepend the disclaimer and append a Sources list when there are citations."""
    tail = ""
    if cites:
        tail = "\n\nSources:\n" + "\n".join(f"- {u}" for u in cites)
    return f"{DISCLAIMER}\n\n{text}{tail}"


def _decide(score: int, needs: bool, thresholds: GuardThresholds) -> GuardAction:
    if not needs:
        return GuardAction.ALLOW
    if score < thresholds.soften_floor:
        return GuardAction.BLOCK
    if score < thresholds.allow_floor:
        return GuardAction.SOFTEN
    return GuardAction.ALLOW


def _coerce_mode(mode: GuardMode | str | None) -> GuardMode:
    if isinstance(mode, GuardMode):
        return mode
    try:
        return GuardMode(str(mode or "").strip().lower())
    except ValueError:
        return GuardMode.BALANCED


def evaluate(
    text: str,
    domain_hint: str | None = None,
    citations: Iterable[Citation | Mapping | str] | None = None,
    mode: GuardMode | str | None = GuardMode.BALANCED,
    thresholds: Mapping[GuardMode, GuardThresholds] | None = None,
) -> GuardVerdict:
    """
    Evaluate generated text for grounding and return a verdict.

    Args:
        text: Generated text to check
        domain_hint: Optional domain ("medical", "news", ...); sensitive
            domains always require citations
        citations: Sources gathered for the text; invalid entries are dropped
        mode: strict | balanced | lenient (unknown values fall back to balanced)
        thresholds: Optional override of the per-mode score floors

    Returns:
        GuardVerdict (Block with reason "empty_text" for blank input)
    """
    text = (text or "").strip()
    if not text:
        return GuardVerdict(
            allowed=False, action=GuardAction.BLOCK, score=0, reasons=(REASON_EMPTY,)
        )

    guard_mode = _coerce_mode(mode)
    table = thresholds or DEFAULT_THRESHOLDS
    mode_thresholds = table.get(guard_mode) or DEFAULT_THRESHOLDS[guard_mode]

    cites = normalize_citations(citations)
    needs, signals = needs_citations(text, domain_hint)
    coverage = coverage_score(text, cites)
    score = composite_score(coverage, signals, bool(cites))

    reasons: list[str] = []
    if needs:
        reasons.append(REASON_NEEDS)
        if not cites:
            reasons.append(REASON_NO_CITATIONS)
        if coverage < 0.5:
            reasons.append(REASON_LOW_COVERAGE)

    action = _decide(score, needs, mode_thresholds)

    if action == GuardAction.BLOCK and mode_thresholds.rescue_by_sanitizing and not _is_sensitive(domain_hint):
        rescued = _rescue_by_sanitizing(text, cites, mode_thresholds)
        if rescued is not None:
            return GuardVerdict(
                allowed=False,
                action=GuardAction.SOFTEN,
                score=score,
                reasons=tuple(reasons + [REASON_NEUTRALIZED]),
                safe_text=rescued,
            )

    return GuardVerdict(
        allowed=action == GuardAction.ALLOW,
        action=action,
        score=score,
        reasons=tuple(reasons),
        safe_text=soften_text(text, cites) if action != GuardAction.ALLOW else None,
    )


def _is_sensitive(domain_hint: str | None) -> bool:
    return bool(domain_hint) and domain_hint.strip().lower() in NEEDS_CITATION_DOMAINS


def _rescue_by_sanitizing(text: str, cites: list[str], thresholds: GuardThresholds) -> str | None:
    """Return softened, claim-neutralised text if that no longer blocks."""
    cleaned = sanitize_claims(text)
    if not cleaned.changed:
        return None

    needs, signals = needs_citations(cleaned.text)
    score = composite_score(coverage_score(cleaned.text, cites), signals, bool(cites))
    if _decide(score, needs, thresholds) == GuardAction.BLOCK:
        return None

    return soften_text(cleaned.text, cites)
