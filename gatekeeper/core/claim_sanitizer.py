"""Marketing-claim sanitizer.

Neutralises unverifiable marketing language (rank claims, superlatives,
percentages, multipliers, tenure claims) in generated copy. Text that already
carries a source marker is left untouched.

100% deterministic. No LLM calls.
"""

import re
from dataclasses import dataclass, field

# (pattern, replacement, flag); applied in order
_CLAIM_RULES: list[tuple[re.Pattern[str], str, str]] = [
    (re.compile(r"\b(?:since|est\.?)\s*20\d{2}\b", re.IGNORECASE), "for years", "tenure_claim"),
    (re.compile(r"(?<!\w)#\s*1\b|\bno\.?\s?1\b", re.IGNORECASE), "trusted", "rank_claim"),
    (re.compile(r"\b(?:top|best|leading|largest)(?:[-_](?:tier|edge|notch))?\b", re.IGNORECASE), "trusted", "superlative"),
    (re.compile(r"\b\d+(?:,\d{3})*(?:\.\d+)?\s?(?:%|percent\b)", re.IGNORECASE), "many", "percent_claim"),
    (re.compile(r"\b\d+(?:\.\d+)?\s*[xX×](?!\w)"), "multi-fold", "multiplier"),
]

_SOURCE_MARKER_RE = re.compile(r"https?://|\bsource:|\bref:|\bfootnote", re.IGNORECASE)


@dataclass(frozen=True)
class SanitizeResult:
    text: str
    flags: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.flags)


def has_source_marker(text: str) -> bool:
    return bool(_SOURCE_MARKER_RE.search(text or ""))


def sanitize_claims(text: str) -> SanitizeResult:
    """
    Replace risky marketing claims with neutral wording.

    Args:
        text: Raw generated text

    Returns:
        SanitizeResult with the cleaned text and the rule flags that fired
    """
    value = (text or "").replace("\u00a0", " ")
    if not value.strip() or has_source_marker(value):
        return SanitizeResult(text=value)

    flags: list[str] = []
    for pattern, replacement, flag in _CLAIM_RULES:
        value, hits = pattern.subn(replacement, value)
        if hits:
            flags.append(flag)

    return SanitizeResult(text=value, flags=flags)


def sanitize_copy(copy: dict[str, str]) -> tuple[dict[str, str], dict[str, list[str]]]:
    """
    Sanitize every string field of a copy dict.

    Returns:
        Tuple of (patch with only the changed fields, flags keyed by field)
    """
    patch: dict[str, str] = {}
    flags_by_key: dict[str, list[str]] = {}

    for key, raw in (copy or {}).items():
        if not isinstance(raw, str):
            continue
        result = sanitize_claims(raw)
        if result.changed:
            patch[key] = result.text
            flags_by_key[key] = result.flags

    return patch, flags_by_key
