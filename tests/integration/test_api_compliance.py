"""
API tests for /api/compliance, /api/analyze and /api/fetch-url with the provider mocked out
"""
import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from main import app
from mnv_scorecard.api.v1.evaluation import get_llm
from mnv_scorecard.client import bootstrap
from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import LLMConnectionException, UpstreamStatusException
from mnv_scorecard.services.evaluation.prompt_builder import CHARACTERIZATION_PROMPT, get_system_prompt

PLAN = "IPMVP Option B retrofit with 12 months of submetered post-installation data."


@pytest.fixture
def client(mock_llm):
    app.dependency_overrides[get_llm] = lambda: mock_llm
    yield TestClient(app)
    app.dependency_overrides.clear()


def _full_evaluation(rubric_store, criterion_status="met", element_status="present"):
    return {
        "schema_version": "2.0",
        "subject": "Plan",
        "summary": "Summary",
        "principle_adherence": {
            "composite_score": 1,
            "principles": {
                pid: {"score": 1, "criteria": {cid: {"status": criterion_status, "score": 1} for cid in p.criteria}}
                for pid, p in rubric_store.principles.principles.items()
            },
        },
        "plan_completeness": {
            "structural_index": 1,
            "max_possible": 1,
            "percentage": 1,
            "elements": {eid: {"status": element_status} for eid in rubric_store.checklist.elements},
        },
    }


class TestComplianceEndpoint:

    def test_scores_recomputed(self, client, mock_llm, rubric_store, envelope_factory):
        evaluation = _full_evaluation(rubric_store, criterion_status="partial", element_status="present")
        mock_llm.create_message.return_value = envelope_factory("```json\n" + json.dumps(evaluation) + "\n```")

        res = client.post("/api/compliance", json={"content": PLAN})

        assert res.status_code == 200, res.text
        scored = json.loads(res.json()["content"][0]["text"])
        adherence = scored["principle_adherence"]
        assert adherence["composite_score"] == 50
        assert all(p["score"] == 50 for p in adherence["principles"].values())
        completeness = scored["plan_completeness"]
        assert completeness["structural_index"] == 22
        assert completeness["max_possible"] == 22
        assert completeness["percentage"] == 100

    def test_prompt_and_trimmed_content_sent(self, client, mock_llm):
        res = client.post("/api/compliance", json={"content": f"   {PLAN}\n\n"})

        assert res.status_code == 200
        mock_llm.create_message.assert_awaited_once_with(
            system=get_system_prompt(),
            content=PLAN,
            max_tokens=settings.COMPLIANCE_MAX_TOKENS,
            name="compliance",
        )

    def test_unparseable_model_text_returned_raw(self, client, mock_llm, envelope_factory):
        raw = envelope_factory("I'm unable to evaluate this document.")
        mock_llm.create_message.return_value = raw

        res = client.post("/api/compliance", json={"content": PLAN})

        assert res.status_code == 200
        assert res.json()["content"] == [{"type": "text", "text": "I'm unable to evaluate this document."}]

    @pytest.mark.parametrize("text", ['{"subject": ' + "9" * 5000 + "}", "[" * 200000 + "]" * 200000])
    def test_unreadable_model_json_returned_raw(self, client, mock_llm, envelope_factory, text):
        mock_llm.create_message.return_value = envelope_factory(text)

        res = client.post("/api/compliance", json={"content": PLAN})

        assert res.status_code == 200
        assert res.json()["content"] == [{"type": "text", "text": text}]

    def test_oversized_rejected_before_network_call(self, client, mock_llm):
        res = client.post("/api/compliance", json={"content": "x" * 15001})

        assert res.status_code == 400
        assert res.json()["error"] == "Input too long. Please shorten your text."
        mock_llm.create_message.assert_not_called()

    def test_at_ceiling_accepted(self, client, mock_llm):
        res = client.post("/api/compliance", json={"content": "x" * 15000})
        assert res.status_code == 200

    @pytest.mark.parametrize("body", [{}, {"content": ""}, {"content": "   "}, {"content": None}])
    def test_content_required(self, client, mock_llm, body):
        res = client.post("/api/compliance", json=body)

        assert res.status_code == 400
        assert res.json() == {"error": "Content is required", "type": "ValidationException"}
        mock_llm.create_message.assert_not_called()

    @pytest.mark.parametrize("body", [{"content": 42}, {"content": ["a"]}, {"content": {"text": "plan"}}])
    def test_non_string_content(self, client, mock_llm, body):
        res = client.post("/api/compliance", json=body)

        assert res.status_code == 400
        assert res.json() == {"error": "Content is required", "type": "ValidationException"}
        mock_llm.create_message.assert_not_called()

    def test_non_json_body(self, client):
        res = client.post("/api/compliance", content=b"not json", headers={"Content-Type": "application/json"})
        assert res.status_code == 400
        assert res.json()["error"] == "Invalid request body"

    def test_get_not_allowed(self, client):
        res = client.get("/api/compliance")
        assert res.status_code == 405
        assert res.json()["error"] == "Method not allowed"

    def test_upstream_status_passed_through(self, client, mock_llm):
        body = {"type": "error", "error": {"type": "rate_limit_error", "message": "slow down"}}
        mock_llm.create_message.side_effect = UpstreamStatusException(429, body)

        res = client.post("/api/compliance", json={"content": PLAN})

        assert res.status_code == 429
        assert res.json() == body

    def test_transport_failure(self, client, mock_llm):
        mock_llm.create_message.side_effect = LLMConnectionException("connection reset")

        res = client.post("/api/compliance", json={"content": PLAN})

        assert res.status_code == 500
        assert res.json()["error"] == "API request failed"


class TestMissingConfiguration:

    def test_missing_key_is_500(self, monkeypatch):
        monkeypatch.setattr(bootstrap, "_llm_singleton", None)
        monkeypatch.setattr(settings, "LLM_PROVIDER", "anthropic")
        monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "")

        res = TestClient(app).post("/api/compliance", json={"content": PLAN})

        assert res.status_code == 500
        assert res.json() == {"error": "ANTHROPIC_API_KEY not configured", "type": "ConfigurationException"}


class TestAnalyzeEndpoint:

    def test_envelope_passed_through_unscored(self, client, mock_llm, envelope_factory):
        envelope = envelope_factory('{"subject": "x", "dimensions": {}}')
        mock_llm.create_message.return_value = envelope

        res = client.post("/api/analyze", json={"content": PLAN})

        assert res.status_code == 200
        assert res.json() == envelope
        kwargs = mock_llm.create_message.call_args.kwargs
        assert kwargs["system"] == CHARACTERIZATION_PROMPT
        assert kwargs["max_tokens"] == settings.ANALYZE_MAX_TOKENS

    def test_oversized_rejected(self, client, mock_llm):
        res = client.post("/api/analyze", json={"content": "y" * 15001})
        assert res.status_code == 400
        mock_llm.create_message.assert_not_called()


class TestFetchUrlEndpoint:

    def test_url_required(self, client):
        res = client.post("/api/fetch-url", json={})
        assert res.status_code == 400
        assert res.json()["error"] == "URL is required"

    def test_fetches_text(self, client):
        response = Mock(ok=True, status_code=200, text="<p>Plan</p>", headers={"content-type": "text/html"})
        with patch("mnv_scorecard.services.url_fetcher.requests.get", return_value=response):
            res = client.post("/api/fetch-url", json={"url": "https://example.com"})

        assert res.status_code == 200
        assert res.json() == {"text": "Plan", "contentType": "text/html"}

    def test_remote_status_passed_through(self, client):
        response = Mock(ok=False, status_code=403, reason="Forbidden")
        with patch("mnv_scorecard.services.url_fetcher.requests.get", return_value=response):
            res = client.post("/api/fetch-url", json={"url": "https://example.com"})

        assert res.status_code == 403
        assert res.json()["error"] == "Failed to fetch URL: Forbidden"


class TestHealth:

    def test_health_reports_rubric(self, monkeypatch):
        monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "sk-test")
        monkeypatch.setattr(settings, "LLM_PROVIDER", "anthropic")

        res = TestClient(app).get("/health")

        assert res.status_code == 200
        assert res.json()["services"]["rubric"] == "operational"
