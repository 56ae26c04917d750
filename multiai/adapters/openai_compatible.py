"""
MultiAI - OpenAI-compatible Adapter

Adapter for chat-completions style APIs: OpenAI, DeepSeek and OpenRouter
all accept the same request body at `/chat/completions`.
"""

from typing import Any, Dict, Sequence

from .base import EMPTY_REPLY_TEXT, AdapterConfig, AdapterKind, AdapterReply, BaseAdapter
from ..core.models import ChatMessage, SendOptions
from ..prompting.builder import PromptContext, build_message_history


class OpenAICompatibleAdapter(BaseAdapter):
    """
    Adapter for OpenAI-compatible chat completion endpoints.

    The system prompt goes first, then the windowed history, then the
    current user message.
    """

    kind = AdapterKind.OPENAI_COMPATIBLE
    MAX_TOKENS = 500

    # Per-provider confidence; unknown providers get default_confidence
    CONFIDENCE = {
        "openai": 0.95,
        "deepseek": 0.9,
        "openrouter": 0.9,
    }

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.default_confidence = self.CONFIDENCE.get(config.provider_key, 0.9)

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            "User-Agent": "MultiAI/1.0",
        }

    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        payload = self._build_payload(message, history, prompt, options)
        data = await self._post_json("/chat/completions", payload)
        return AdapterReply(
            text=self._extract_text(data) or EMPTY_REPLY_TEXT,
            confidence=self.default_confidence,
        )

    def _build_payload(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": build_message_history(
                prompt.system_prompt, history, message, window=prompt.history_window
            ),
            "max_tokens": self.MAX_TOKENS,
            "temperature": options.effective_temperature,
            "top_p": 0.9,
            "stream": False,
        }

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return (message.get("content") or "").strip()
