"""
MultiAI - API Layer Tests

Drives the FastAPI app with an injected orchestrator:
- Chat endpoint success, failure responses and validation errors
- Provider listing, selection and reset
- Health and metrics endpoints
"""

import pytest
from fastapi.testclient import TestClient

from multiai.api.models import ChatRequest, FinancialContextInput
from multiai.core.errors import RateLimitError
from multiai.core.models import Persona, Role
from multiai.response.normalizer import DISCLAIMER_FOOTER
from multiai.server import create_app


@pytest.fixture
def client_for(make_orchestrator):
    """Build a TestClient around a fresh orchestrator."""

    def _client(env=None):
        orchestrator = make_orchestrator(env=env)
        return TestClient(create_app(orchestrator)), orchestrator

    return _client


# ============================================================
# Request Model Tests
# ============================================================

class TestChatRequestModel:
    """Test conversion from API models to core types."""

    def test_to_history_and_options(self):
        request = ChatRequest(
            message="hi",
            history=[{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}],
            persona="sable",
            temperature=0.2,
            deadline_seconds=10,
        )

        history = request.to_history()
        options = request.to_options()

        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT]
        assert options.persona == "sable"
        assert options.temperature == 0.2
        assert options.deadline_seconds == 10

    def test_context_to_internal(self):
        context = FinancialContextInput(
            balance=100.0,
            recent_expenses=[{"amount": 10.0, "category": "food", "date": "2024-01-01"}],
            goals=[{"title": "Car", "target_amount": 1000.0, "current_amount": 100.0}],
            data_sharing_consent=False,
        ).to_internal()

        assert context.recent_expenses[0].category == "food"
        assert context.goals[0].progress_percent == 10.0
        assert context.data_sharing_consent is False


# ============================================================
# Chat Endpoint Tests
# ============================================================

class TestChatEndpoint:
    """Test POST /v1/chat."""

    def test_chat_success(self, client_for, adapters):
        adapters.script("deepseek", "You could set a goal of saving R200 each month.")
        client, _ = client_for()

        response = client.post("/v1/chat", json={"message": "hello"})

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "DeepSeek"
        assert data["message"].endswith(DISCLAIMER_FOOTER)
        assert data["action_required"]["type"] == "set_goal"
        assert data["suggestions"] == ["set a goal of saving R200 each month"]
        assert data["metadata"]["provider"] == "deepseek"
        assert data["metadata"]["attempted_providers"] == ["deepseek"]

    def test_chat_with_persona_and_context(self, client_for, adapters):
        client, _ = client_for()

        response = client.post("/v1/chat", json={
            "message": "explain a TFSA",
            "persona": "sable",
            "history": [{"role": "user", "content": "hi"}],
            "context": {"balance": 5000, "data_sharing_consent": False},
        })

        assert response.status_code == 200
        assert response.json()["metadata"]["provider"] == "gemini"
        prompt = adapters.adapters["gemini"].calls[0]["prompt"].system_prompt
        assert prompt.startswith("You are Sable")
        assert "R5000.00" in prompt

    def test_offline_is_not_an_error_status(self, client_for):
        client, _ = client_for(env={"MODE": "prod"})

        response = client.post("/v1/chat", json={"message": "hello"})

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "offline"
        assert "confidence" not in data or data["confidence"] is None

    def test_too_long_message(self, client_for, adapters):
        client, _ = client_for()

        response = client.post("/v1/chat", json={"message": "x" * 5001})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_request"
        assert error["param"] == "message"
        assert response.headers["X-Error-Code"] == "invalid_request"
        assert adapters.adapters == {}

    def test_empty_message(self, client_for):
        client, _ = client_for()
        response = client.post("/v1/chat", json={"message": "  "})
        assert response.status_code == 400

    def test_unknown_persona(self, client_for):
        client, _ = client_for()
        response = client.post("/v1/chat", json={"message": "hi", "persona": "wizard"})
        assert response.status_code == 400
        assert response.json()["error"]["param"] == "persona"

    def test_invalid_temperature(self, client_for):
        client, _ = client_for()
        response = client.post("/v1/chat", json={"message": "hi", "temperature": 3})
        assert response.status_code == 400
        assert response.json()["error"]["param"] == "temperature"

    def test_missing_message(self, client_for):
        client, _ = client_for()
        response = client.post("/v1/chat", json={})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_request"

    def test_no_orchestrator(self):
        client = TestClient(create_app())
        response = client.post("/v1/chat", json={"message": "hi"})
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "service_unavailable"
        assert response.headers["Retry-After"] == "5"


# ============================================================
# Provider Endpoint Tests
# ============================================================

class TestProviderEndpoints:
    """Test provider listing, selection and reset."""

    def test_list_providers(self, client_for):
        client, _ = client_for()

        response = client.get("/v1/providers")

        assert response.status_code == 200
        data = response.json()
        assert data["current_provider"] is None
        assert data["current_provider_name"] == "Unknown"
        providers = {p["key"]: p for p in data["providers"]}
        assert providers["deepseek"]["available"] is True
        assert providers["local"]["available"] is False
        assert providers["deepseek"]["window"] is None

    def test_select_provider(self, client_for):
        client, orchestrator = client_for()

        response = client.post("/v1/providers/openai/select")

        assert response.status_code == 200
        assert response.json() == {"current_provider": "openai", "current_provider_name": "OpenAI"}
        assert orchestrator.current_provider == "openai"

    def test_select_unknown_provider(self, client_for):
        client, _ = client_for()

        response = client.post("/v1/providers/nope/select")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "provider_not_found"

    def test_select_unavailable_provider(self, client_for):
        client, _ = client_for()

        response = client.post("/v1/providers/local/select")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "provider_unavailable"

    def test_reset_clears_windows(self, client_for, adapters):
        adapters.script("deepseek", RateLimitError("deepseek"), "back")
        client, orchestrator = client_for()

        client.post("/v1/chat", json={"message": "hello"})
        listed = {p["key"]: p for p in client.get("/v1/providers").json()["providers"]}
        assert listed["deepseek"]["window"]["reason"] == "rate_limited"

        response = client.post("/v1/providers/reset")

        assert response.status_code == 200
        providers = {p["key"]: p for p in response.json()["providers"]}
        assert providers["deepseek"]["available"] is True
        assert providers["deepseek"]["window"] is None
        assert orchestrator.tracker.active_windows() == {}


# ============================================================
# Health and Metrics Tests
# ============================================================

class TestHealthAndMetrics:
    """Test the core endpoints."""

    def test_health_healthy(self, client_for):
        client, _ = client_for()

        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["mode"] == "prod"
        assert "deepseek" in data["available_providers"]

    def test_health_degraded(self, client_for):
        client, _ = client_for(env={"MODE": "prod"})
        assert client.get("/health").json()["status"] == "degraded"

    def test_health_starting(self):
        client = TestClient(create_app())
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["status"] == "starting"

    def test_metrics_endpoint(self, client_for):
        client, _ = client_for()
        client.post("/v1/chat", json={"message": "hello"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "multiai_sends_total" in response.text
        assert 'provider="deepseek"' in response.text

    def test_persona_enum_values_accepted(self, client_for):
        client, _ = client_for()
        for persona in Persona:
            response = client.post("/v1/chat", json={"message": "hi", "persona": persona.value})
            assert response.status_code == 200
