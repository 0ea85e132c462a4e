"""Tests for the grounding policy guard."""

import pytest

from gatekeeper.core.citation_guard import (
    DISCLAIMER,
    REASON_EMPTY,
    REASON_NEEDS,
    REASON_NEUTRALIZED,
    REASON_NO_CITATIONS,
    composite_score,
    count_claim_signals,
    coverage_score,
    evaluate,
    needs_citations,
    normalize_citations,
    soften_text,
    trust_of,
)
from gatekeeper.core.schemas_guard import Citation, GuardAction, GuardMode, GuardThresholds

MARKETING = "We are #1 with 200% growth and 10x ROI."
MEDICAL = "Drink water daily."
NIH = "https://www.nih.gov/x"


class TestClaimSignals:
    def test_numeric_and_phrase_signals(self):
        # 2024 as a year and a number, 45% and 45, "according to", "report"
        assert count_claim_signals("According to the 2024 report, 45% of users") == 6

    def test_phrase_counted_once(self):
        assert count_claim_signals("data data data") == 1

    def test_study_phrase_variants_count_once(self):
        assert count_claim_signals("Studies show it works") == 1
        assert count_claim_signals("A study of studies, still studying") == 1

    def test_plain_text_has_no_signals(self):
        assert count_claim_signals("Build pages fast.") == 0


class TestNeedsCitations:
    def test_sensitive_domain_always_needs(self):
        needs, signals = needs_citations(MEDICAL, "Medical")
        assert needs is True
        assert signals == 0

    def test_dense_claims_need(self):
        needs, _ = needs_citations(MARKETING)
        assert needs is True

    def test_plain_text_does_not_need(self):
        needs, _ = needs_citations("The sky was grey. We stayed in.")
        assert needs is False

    def test_long_text_lower_density_threshold(self):
        text = "It rained in 1999. The sky was grey. We stayed in. Nobody left. Cats slept."
        # 2 signals over 5 sentences = 0.4
        needs, signals = needs_citations(text)
        assert signals == 2
        assert needs is True

    def test_low_density_does_not_need(self):
        # 2 signals over 8 sentences = 0.25
        needs, _ = needs_citations("It rained in 1999. The sky was grey. We stayed in. A. B. C. D. E.")
        assert needs is False


class TestNormalizeCitations:
    def test_dedupes_and_drops_invalid(self):
        urls = normalize_citations(
            ["https://a.com", {"url": "https://a.com"}, "ftp://x", Citation(url="http://b.com"), {"title": "x"}]
        )
        assert urls == ["https://a.com", "http://b.com"]

    def test_none(self):
        assert normalize_citations(None) == []


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://data.cdc.gov/page", 1.0),
        ("https://mit.edu/paper", 0.95),
        ("https://iitb.ac.in/x", 0.95),
        ("https://en.wikipedia.org/wiki/Water", 0.9),
        ("https://someone.medium.com/post", 0.6),
        ("https://bit.ly/abc", 0.5),
        ("https://example.com", 0.8),
        ("not a url", 0.5),
    ],
)
def test_trust_of(url, expected):
    assert trust_of(url) == expected


class TestScoring:
    def test_coverage_without_citations_or_marks(self):
        assert coverage_score(MEDICAL, []) == 0.0

    def test_coverage_with_trusted_citation(self):
        assert coverage_score(MEDICAL, [NIH]) == pytest.approx(0.5)

    def test_coverage_with_inline_mark_is_full(self):
        assert coverage_score(MEDICAL + " [1]", [NIH]) == pytest.approx(1.0)

    def test_composite_clamped(self):
        assert composite_score(1.0, 0, True) == 100
        assert composite_score(0.0, 50, False) == 0

    def test_composite_rounds_half_up(self):
        assert composite_score(0.125, 0, False) == 13

    def test_soften_text_appends_sources(self):
        out = soften_text("Body", ["https://a.com"])
        assert out == f"{DISCLAIMER}\n\nBody\n\nSources:\n- https://a.com"
        assert soften_text("Body", []) == f"{DISCLAIMER}\n\nBody"


class TestEvaluate:
    def test_empty_text_blocks(self):
        verdict = evaluate("   ")
        assert verdict.action == GuardAction.BLOCK
        assert verdict.allowed is False
        assert verdict.score == 0
        assert verdict.reasons == (REASON_EMPTY,)

    def test_plain_text_allowed(self):
        verdict = evaluate("Build pages fast.")
        assert verdict.action == GuardAction.ALLOW
        assert verdict.allowed is True
        assert verdict.reasons == ()
        assert verdict.safe_text is None

    @pytest.mark.parametrize("mode", list(GuardMode))
    def test_plain_text_allowed_in_every_mode(self, mode):
        verdict = evaluate("Build pages fast.", mode=mode)
        assert verdict.action == GuardAction.ALLOW
        assert verdict.allowed is True

    @pytest.mark.parametrize("mode", [GuardMode.STRICT, GuardMode.BALANCED])
    def test_marketing_claims_block(self, mode):
        verdict = evaluate(MARKETING, mode=mode)
        assert verdict.action == GuardAction.BLOCK
        assert verdict.score == 0
        assert REASON_NEEDS in verdict.reasons
        assert REASON_NO_CITATIONS in verdict.reasons

    def test_lenient_neutralises_instead_of_blocking(self):
        verdict = evaluate(MARKETING, mode=GuardMode.LENIENT)
        assert verdict.action == GuardAction.SOFTEN
        assert verdict.allowed is False
        assert REASON_NEUTRALIZED in verdict.reasons
        assert verdict.safe_text == f"{DISCLAIMER}\n\nWe are trusted with many growth and multi-fold ROI."

    def test_lenient_still_blocks_sensitive_domain(self):
        verdict = evaluate(MEDICAL, domain_hint="medical", mode="lenient")
        assert verdict.action == GuardAction.BLOCK

    def test_sensitive_domain_without_citations_blocks(self):
        verdict = evaluate(MEDICAL, domain_hint="medical")
        assert verdict.action == GuardAction.BLOCK
        assert verdict.score == 0

    @pytest.mark.parametrize(
        "mode,expected",
        [
            (GuardMode.STRICT, GuardAction.SOFTEN),
            (GuardMode.BALANCED, GuardAction.SOFTEN),
            (GuardMode.LENIENT, GuardAction.ALLOW),
        ],
    )
    def test_modes_order_strictness(self, mode, expected):
        verdict = evaluate(MEDICAL, domain_hint="medical", citations=[Citation(url=NIH)], mode=mode)
        assert verdict.score == 60
        assert verdict.action == expected

    def test_soften_carries_disclaimer_and_sources(self):
        verdict = evaluate(MEDICAL, domain_hint="medical", citations=[{"url": NIH}])
        assert verdict.safe_text.startswith(DISCLAIMER)
        assert verdict.safe_text.endswith(f"Sources:\n- {NIH}")

    def test_inline_marker_allows(self):
        verdict = evaluate(MEDICAL + " [1]", domain_hint="medical", citations=[NIH], mode="strict")
        assert verdict.score == 100
        assert verdict.action == GuardAction.ALLOW

    def test_unknown_mode_falls_back_to_balanced(self):
        verdict = evaluate(MEDICAL, domain_hint="medical", citations=[NIH], mode="bogus")
        assert verdict.action == GuardAction.SOFTEN

    def test_custom_thresholds(self):
        thresholds = {GuardMode.BALANCED: GuardThresholds(allow_floor=50, soften_floor=10)}
        verdict = evaluate(MEDICAL, domain_hint="medical", citations=[NIH], thresholds=thresholds)
        assert verdict.action == GuardAction.ALLOW

    def test_deterministic(self):
        first = evaluate(MARKETING, citations=[NIH])
        second = evaluate(MARKETING, citations=[NIH])
        assert first == second
