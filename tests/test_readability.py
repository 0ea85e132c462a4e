"""Tests for copy readability checks."""

from gatekeeper.core.readability import check_copy_readability, estimate_grade


def test_estimate_grade_empty():
    assert estimate_grade("") == 0.0
    assert estimate_grade(None) == 0.0


def test_estimate_grade_simple_copy_is_low():
    assert estimate_grade("Build pages fast") < 9


def test_clean_copy_scores_100():
    result = check_copy_readability({"HEADLINE": "Build pages fast", "TAGLINE": "Ship today."})
    assert result.score == 100
    assert result.issues == []


def test_long_shouty_headline_penalised():
    result = check_copy_readability({"HEADLINE": "A" * 95})
    assert "HEADLINE too long (95/90 chars)" in result.issues
    assert "HEADLINE has long ALL-CAPS run" in result.issues
    assert result.score == 100 - 5 * len(result.issues)


def test_ungraded_slots_ignored():
    result = check_copy_readability({"CTA_LABEL": "X" * 500})
    assert result.score == 100
