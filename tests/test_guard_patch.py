"""Tests for applying the guard to response payloads."""

import pytest

from gatekeeper.core.citation_guard import DISCLAIMER
from gatekeeper.core.errors import GuardError
from gatekeeper.core.guard_patch import (
    BLOCK_ERROR_CODE,
    VERDICT_KEY,
    GuardResult,
    apply_guard,
    from_payload,
    safe_evaluate,
    text_of,
    to_payload,
    verdict_or_allow,
    with_text,
)
from gatekeeper.core.schemas_guard import (
    AnswerResponse,
    DataTextResponse,
    GuardAction,
    MarkdownResponse,
    TextResponse,
)

MARKETING = "We are #1 with 200% growth and 10x ROI."
NIH = "https://www.nih.gov/x"


class TestFromPayload:
    def test_probe_order_prefers_text(self):
        response = from_payload({"text": "a.", "output": "b."})
        assert isinstance(response, TextResponse)
        assert response.extra == {"output": "b."}

    def test_answer_with_sources_and_domain_hint(self):
        response = from_payload(
            {"answer": "Drink water.", "sources": [{"url": NIH, "title": "NIH"}], "domainHint": "medical"}
        )
        assert isinstance(response, AnswerResponse)
        assert response.citations[0].url == NIH
        assert response.citations[0].title == "NIH"
        assert response.domain_hint == "medical"

    def test_markdown(self):
        assert isinstance(from_payload({"markdown": "# Hi"}), MarkdownResponse)

    def test_nested_data_text(self):
        response = from_payload({"data": {"text": "Hello.", "n": 1}, "id": 3})
        assert isinstance(response, DataTextResponse)
        assert text_of(response) == "Hello."
        assert response.extra == {"id": 3}

    @pytest.mark.parametrize("payload", [{"foo": 1}, {"text": 5}, ["text"], None, "text"])
    def test_no_text_bearing_field(self, payload):
        assert from_payload(payload) is None

    def test_string_citations(self):
        response = from_payload({"text": "x", "citations": [NIH, None]})
        assert [c.url for c in response.citations] == [NIH]


class TestTextHelpers:
    def test_with_text_does_not_mutate(self):
        response = from_payload({"content": "old", "id": 1})
        updated = with_text(response, "new")
        assert text_of(updated) == "new"
        assert text_of(response) == "old"
        assert to_payload(updated) == {"content": "new", "id": 1}

    def test_with_text_nested(self):
        response = from_payload({"data": {"text": "old", "n": 1}})
        updated = with_text(response, "new")
        assert to_payload(updated) == {"data": {"text": "new", "n": 1}}
        assert response.data["text"] == "old"


class TestApplyGuard:
    def test_block_returns_error_envelope(self):
        out = apply_guard({"text": MARKETING, "id": 7}, mode="balanced")
        assert out["ok"] is False
        assert out["error"] == BLOCK_ERROR_CODE
        assert out["details"]["action"] == "block"
        assert out["details"]["score"] == 0
        assert "id" not in out

    def test_lenient_softens_marketing_copy(self):
        out = apply_guard({"text": MARKETING, "id": 7}, mode="lenient")
        assert out["id"] == 7
        assert out["text"].startswith(DISCLAIMER)
        assert "multi-fold" in out["text"]
        assert out[VERDICT_KEY]["action"] == "soften"

    def test_soften_replaces_text_and_keeps_fields(self):
        payload = {"answer": "Drink water daily.", "domainHint": "medical", "sources": [{"url": NIH}]}
        out = apply_guard(payload, mode="balanced")
        assert out["answer"].startswith(DISCLAIMER)
        assert out["answer"].endswith(f"Sources:\n- {NIH}")
        assert out["sources"] == [{"url": NIH}]
        assert out[VERDICT_KEY] == {
            "action": "soften",
            "score": 60,
            "reasons": ["claims_detected_or_sensitive_domain"],
        }
        # input payload untouched
        assert payload["answer"] == "Drink water daily."

    def test_query_domain_hint_used_when_payload_has_none(self):
        out = apply_guard({"text": "Drink water daily."}, domain_hint="medical")
        assert out["error"] == BLOCK_ERROR_CODE

    def test_allow_passes_through_with_summary(self):
        out = apply_guard({"data": {"text": "Hello there.", "n": 1}})
        assert out["data"] == {"text": "Hello there.", "n": 1}
        assert out[VERDICT_KEY]["action"] == "allow"

    def test_payload_without_text_unchanged(self):
        payload = {"status": "ok"}
        assert apply_guard(payload) is payload

    def test_guard_failure_fails_open(self, monkeypatch: pytest.MonkeyPatch):
        def boom(*args, **kwargs):
            raise RuntimeError("regex exploded")

        monkeypatch.setattr("gatekeeper.core.guard_patch.evaluate", boom)

        out = apply_guard({"text": MARKETING})
        assert out["text"] == MARKETING
        assert out[VERDICT_KEY] == {"action": "allow", "score": 0, "reasons": ["guard_error"]}


class TestSafeEvaluate:
    def test_success(self):
        result = safe_evaluate("Build pages fast.")
        assert result.ok
        assert result.verdict.action == GuardAction.ALLOW

    def test_error_captured(self, monkeypatch: pytest.MonkeyPatch):
        def bad(*args, **kwargs):
            raise ValueError("bad")

        monkeypatch.setattr("gatekeeper.core.guard_patch.evaluate", bad)
        result = safe_evaluate("anything")
        assert not result.ok
        assert isinstance(result.error, GuardError)
        assert isinstance(result.error.cause, ValueError)

    def test_verdict_or_allow_on_error(self):
        verdict = verdict_or_allow(GuardResult(error=GuardError("x")))
        assert verdict.allowed is True
        assert verdict.reasons == ("guard_error",)
