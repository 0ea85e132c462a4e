"""Copy readability check for landing-page slots.

Length caps, ALL-CAPS runs and a rough Coleman-Liau reading grade per
surface. Score starts at 100 and loses 5 points per issue.
"""

import re

from pydantic import BaseModel, Field

# Max characters per copy slot
LENGTH_CAPS = {
    "HEADLINE": 90,
    "HERO_SUBHEAD": 160,
    "TAGLINE": 80,
}
GRADED_KEYS = ("HEADLINE", "HERO_SUBHEAD", "TAGLINE")
MAX_GRADE = 9.0
HEADLINE_MAX_CAPS_RUN = 12
PENALTY_PER_ISSUE = 5


class ReadabilityCheck(BaseModel):
    score: int = Field(..., ge=0, le=100)
    issues: list[str] = Field(default_factory=list)


def estimate_grade(text: str) -> float:
    """Coleman-Liau-ish reading grade, rounded to one decimal, never negative."""
    t = re.sub(r"\s+", " ", str(text or "")).strip()
    if not t:
        return 0.0

    letters = len(re.findall(r"[A-Za-z]", t))
    words = max(1, len(re.findall(r"\b[\w'-]+\b", t)))
    sentences = max(1, len(re.findall(r"[.!?]+", t)))

    letters_per_100 = (letters / words) * 100
    sentences_per_100 = (sentences / words) * 100
    grade = 0.0588 * letters_per_100 - 0.296 * sentences_per_100 - 15.8
    return max(0.0, round(grade * 10) / 10)


def check_copy_readability(copy: dict[str, str]) -> ReadabilityCheck:
    """Score a copy dict (slot name -> text)."""
    issues: list[str] = []

    for key, cap in LENGTH_CAPS.items():
        value = copy.get(key)
        if not value:
            continue
        n = len(value.strip())
        if n > cap:
            issues.append(f"{key} too long ({n}/{cap} chars)")
        if key == "HEADLINE" and re.search(rf"[A-Z]{{{HEADLINE_MAX_CAPS_RUN},}}", value):
            issues.append(f"{key} has long ALL-CAPS run")

    for key in GRADED_KEYS:
        value = copy.get(key)
        if not value:
            continue
        grade = estimate_grade(value)
        if grade > MAX_GRADE:
            issues.append(f"{key} reading grade high ({grade} > {MAX_GRADE:g})")

    score = max(0, 100 - len(issues) * PENALTY_PER_ISSUE)
    return ReadabilityCheck(score=score, issues=issues)
