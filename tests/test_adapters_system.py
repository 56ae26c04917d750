"""
MultiAI - Adapter Tests

Each adapter is driven against httpx.MockTransport, so the request
format and the error mapping are checked without a network.
"""

import json

import httpx
import pytest

from multiai.adapters import (
    AdapterConfig,
    AdapterKind,
    AnthropicAdapter,
    GeminiAdapter,
    HuggingFaceAdapter,
    MockAdapter,
    OllamaAdapter,
    OpenAICompatibleAdapter,
    create_adapter,
)
from multiai.adapters.base import EMPTY_REPLY_TEXT
from multiai.core.errors import (
    AuthError,
    FailureKind,
    ProviderRequestError,
    RateLimitError,
    ServerError,
    TransportError,
)
from multiai.core.models import ActionType, ChatMessage, SendOptions
from multiai.prompting.builder import PromptContext


PROMPT = PromptContext(system_prompt="SYSTEM PROMPT", history_window=10)
HISTORY = [ChatMessage.user("hi"), ChatMessage.assistant("hello")]


class Recorder:
    """MockTransport handler that records requests and replies from a queue."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _config(key: str, recorder: Recorder, base_url: str, model: str = "model-x", api_key: str = "secret"):
    return AdapterConfig(
        provider_key=key,
        model=model,
        api_key=api_key,
        base_url=base_url,
        transport=httpx.MockTransport(recorder),
    )


# ============================================================
# OpenAI-compatible Adapter Tests
# ============================================================

class TestOpenAICompatibleAdapter:
    """Test the chat-completions adapter."""

    @pytest.mark.asyncio
    async def test_request_and_reply(self):
        recorder = Recorder((200, {"choices": [{"message": {"content": "  Budget tips  "}}]}))
        adapter = OpenAICompatibleAdapter(_config("openai", recorder, "https://api.openai.com/v1"))

        reply = await adapter.complete("help", HISTORY, PROMPT, SendOptions(temperature=0.3))

        request = recorder.requests[0]
        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer secret"
        body = recorder.body()
        assert body["model"] == "model-x"
        assert body["max_tokens"] == 500
        assert body["temperature"] == 0.3
        assert body["messages"][0] == {"role": "system", "content": "SYSTEM PROMPT"}
        assert body["messages"][-1] == {"role": "user", "content": "help"}
        assert reply.text == "Budget tips"
        assert reply.confidence == 0.95
        await adapter.close()

    @pytest.mark.asyncio
    async def test_default_temperature(self):
        recorder = Recorder((200, {"choices": [{"message": {"content": "ok"}}]}))
        adapter = OpenAICompatibleAdapter(_config("deepseek", recorder, "https://api.deepseek.com/v1"))

        reply = await adapter.complete("help", [], PROMPT, SendOptions())

        assert recorder.body()["temperature"] == 0.7
        assert reply.confidence == 0.9

    @pytest.mark.asyncio
    async def test_empty_choices_use_fallback_text(self):
        recorder = Recorder((200, {"choices": []}))
        adapter = OpenAICompatibleAdapter(_config("openrouter", recorder, "https://openrouter.ai/api/v1"))

        reply = await adapter.complete("help", [], PROMPT, SendOptions())

        assert reply.text == EMPTY_REPLY_TEXT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error_class", [
        (401, AuthError),
        (429, RateLimitError),
        (500, ServerError),
        (400, ProviderRequestError),
    ])
    async def test_status_mapping(self, status, error_class):
        recorder = Recorder((status, {"error": {"message": "nope"}}))
        adapter = OpenAICompatibleAdapter(_config("openai", recorder, "https://api.openai.com/v1"))

        with pytest.raises(error_class):
            await adapter.complete("help", [], PROMPT, SendOptions())

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        recorder = Recorder((200, "<html>oops</html>"))
        adapter = OpenAICompatibleAdapter(_config("openai", recorder, "https://api.openai.com/v1"))

        with pytest.raises(ProviderRequestError):
            await adapter.complete("help", [], PROMPT, SendOptions())


# ============================================================
# Anthropic Adapter Tests
# ============================================================

class TestAnthropicAdapter:
    """Test the Messages API adapter."""

    @pytest.mark.asyncio
    async def test_request_and_reply(self):
        recorder = Recorder((200, {"content": [
            {"type": "text", "text": "Part one. "},
            {"type": "tool_use", "name": "ignored"},
            {"type": "text", "text": "Part two."},
        ]}))
        adapter = AnthropicAdapter(_config("claude", recorder, "https://api.anthropic.com/v1"))

        reply = await adapter.complete("help", HISTORY, PROMPT, SendOptions())

        request = recorder.requests[0]
        assert request.url == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "secret"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = recorder.body()
        assert body["system"] == "SYSTEM PROMPT"
        assert [m["role"] for m in body["messages"]] == ["user", "assistant", "user"]
        assert reply.text == "Part one. Part two."
        assert reply.confidence == 0.92

    @pytest.mark.asyncio
    async def test_history_window_applied(self):
        recorder = Recorder((200, {"content": [{"type": "text", "text": "ok"}]}))
        adapter = AnthropicAdapter(_config("claude", recorder, "https://api.anthropic.com/v1"))
        history = [ChatMessage.user(str(i)) for i in range(5)]

        await adapter.complete("now", history, PromptContext("S", history_window=2), SendOptions())

        assert [m["content"] for m in recorder.body()["messages"]] == ["3", "4", "now"]


# ============================================================
# Gemini Adapter Tests
# ============================================================

class TestGeminiAdapter:
    """Test the generateContent adapter."""

    @pytest.mark.asyncio
    async def test_request_and_reply(self):
        recorder = Recorder((200, {"candidates": [{
            "content": {"parts": [{"text": "Gemini says hi"}]},
            "safetyRatings": [{"category": "HARM_CATEGORY_HARASSMENT", "probability": "NEGLIGIBLE"}],
        }]}))
        adapter = GeminiAdapter(_config(
            "gemini", recorder, "https://generativelanguage.googleapis.com/v1beta", model="gemini-1.5-flash"
        ))

        reply = await adapter.complete("help", HISTORY, PROMPT, SendOptions())

        request = recorder.requests[0]
        assert request.url.path == "/v1beta/models/gemini-1.5-flash:generateContent"
        assert request.url.params["key"] == "secret"
        text = recorder.body()["contents"][0]["parts"][0]["text"]
        assert text.startswith("SYSTEM PROMPT")
        assert "user: hi" in text
        assert text.endswith("User: help\n\nAssistant:")
        assert reply.text == "Gemini says hi"
        assert reply.confidence == 0.9

    @pytest.mark.asyncio
    async def test_confidence_without_safety_ratings(self):
        recorder = Recorder((200, {"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}))
        adapter = GeminiAdapter(_config("gemini", recorder, "https://generativelanguage.googleapis.com/v1beta"))

        reply = await adapter.complete("help", [], PROMPT, SendOptions())

        assert reply.confidence == 0.8

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        recorder = Recorder((200, {}))
        adapter = GeminiAdapter(_config("gemini", recorder, "https://generativelanguage.googleapis.com/v1beta"))

        reply = await adapter.complete("help", [], PROMPT, SendOptions())

        assert reply.text == EMPTY_REPLY_TEXT


# ============================================================
# Hugging Face Adapter Tests
# ============================================================

class TestHuggingFaceAdapter:
    """Test the hosted inference adapter."""

    @pytest.mark.asyncio
    async def test_request_and_reply(self):
        recorder = Recorder((200, [{"generated_text": " Save R500 a month. "}]))
        adapter = HuggingFaceAdapter(_config(
            "huggingface-gpt-oss",
            recorder,
            "https://api-inference.huggingface.co/models",
            model="HuggingFaceH4/zephyr-7b-beta",
        ))

        reply = await adapter.complete("help", HISTORY, PROMPT, SendOptions())

        request = recorder.requests[0]
        assert "zephyr-7b-beta" in str(request.url)
        assert request.headers["authorization"] == "Bearer secret"
        body = recorder.body()
        assert body["inputs"].endswith("User: help\nAssistant:")
        assert body["parameters"]["return_full_text"] is False
        assert reply.text == "Save R500 a month."
        assert reply.confidence == 0.8

    @pytest.mark.asyncio
    async def test_summary_text_accepted(self):
        recorder = Recorder((200, {"summary_text": "Short summary"}))
        adapter = HuggingFaceAdapter(_config("huggingface-llama", recorder, "https://api-inference.huggingface.co/models"))

        reply = await adapter.complete("help", [], PROMPT, SendOptions())

        assert reply.text == "Short summary"

    @pytest.mark.asyncio
    async def test_model_loading_is_server_error(self):
        recorder = Recorder((503, {"error": "Model is currently loading"}))
        adapter = HuggingFaceAdapter(_config("huggingface-llama", recorder, "https://api-inference.huggingface.co/models"))

        with pytest.raises(ServerError) as exc_info:
            await adapter.complete("help", [], PROMPT, SendOptions())

        assert exc_info.value.code == "model_loading"
        assert exc_info.value.kind == FailureKind.SERVER

    @pytest.mark.asyncio
    async def test_auth_failure(self):
        recorder = Recorder((401, {"error": "bad token"}))
        adapter = HuggingFaceAdapter(_config("huggingface-llama", recorder, "https://api-inference.huggingface.co/models"))

        with pytest.raises(AuthError):
            await adapter.complete("help", [], PROMPT, SendOptions())


# ============================================================
# Ollama Adapter Tests
# ============================================================

class TestOllamaAdapter:
    """Test the local server adapter."""

    @pytest.mark.asyncio
    async def test_probe_then_generate(self):
        recorder = Recorder(
            (200, {"models": [{"name": "llama3.2:3b"}]}),
            (200, {"response": " Local answer "}),
        )
        adapter = OllamaAdapter(_config("local", recorder, "http://localhost:11434/api", model="llama3.2:3b"))

        reply = await adapter.complete("help", HISTORY, PROMPT, SendOptions())

        assert [r.url.path for r in recorder.requests] == ["/api/tags", "/api/generate"]
        body = recorder.body()
        assert body["model"] == "llama3.2:3b"
        assert body["stream"] is False
        assert "Human: hi" in body["prompt"]
        assert reply.text == "Local answer"
        assert reply.confidence == 0.85

    @pytest.mark.asyncio
    async def test_unreachable_server_is_transport_error(self):
        recorder = Recorder(httpx.ConnectError("connection refused"))
        adapter = OllamaAdapter(_config("local", recorder, "http://localhost:11434/api"))

        with pytest.raises(TransportError) as exc_info:
            await adapter.complete("help", [], PROMPT, SendOptions())

        assert exc_info.value.kind == FailureKind.NETWORK
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_generate_server_error(self):
        recorder = Recorder((200, {"models": []}), (500, {"error": "out of memory"}))
        adapter = OllamaAdapter(_config("local", recorder, "http://localhost:11434/api"))

        with pytest.raises(ServerError):
            await adapter.complete("help", [], PROMPT, SendOptions())


# ============================================================
# Mock Adapter Tests
# ============================================================

class TestMockAdapter:
    """Test canned replies."""

    def _adapter(self):
        return MockAdapter(AdapterConfig(provider_key="mock", model="mock"))

    @pytest.mark.asyncio
    async def test_budget_reply(self):
        reply = await self._adapter().complete("Help with my Budget", [], PROMPT, SendOptions())

        assert reply.label == "Mock AI"
        assert reply.action.type == ActionType.CREATE_BUDGET
        assert reply.confidence == 0.9
        assert len(reply.suggestions) == 3

    @pytest.mark.asyncio
    async def test_learning_wins_over_budget(self):
        """Keyword groups are checked in order."""
        reply = await self._adapter().complete("teach me to budget", [], PROMPT, SendOptions())

        assert reply.action.type == ActionType.EDUCATE
        assert reply.action.data == {"topic": "general"}

    @pytest.mark.asyncio
    async def test_default_reply(self):
        reply = await self._adapter().complete("hello", [], PROMPT, SendOptions())

        assert reply.action is None
        assert reply.confidence == 0.8
        assert reply.text.startswith("Hi there!")

    def test_pick_investing(self):
        assert MockAdapter.pick("how should I invest?").action == ActionType.LEARN_MORE


# ============================================================
# Factory Tests
# ============================================================

class TestCreateAdapter:
    """Test adapter lookup by kind."""

    def test_every_kind_has_an_adapter(self):
        config = AdapterConfig(provider_key="x", model="m")
        for kind in AdapterKind:
            assert create_adapter(kind, config).kind == kind

    def test_kind_by_value(self):
        adapter = create_adapter("anthropic", AdapterConfig(provider_key="claude", model="m"))
        assert isinstance(adapter, AnthropicAdapter)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            create_adapter("carrier-pigeon", AdapterConfig(provider_key="x", model="m"))
