"""
MultiAI - Anthropic Provider Adapter

Adapter for Anthropic's Messages API.
"""

from typing import Any, Dict, List, Sequence

from .base import EMPTY_REPLY_TEXT, AdapterKind, AdapterReply, BaseAdapter
from ..core.models import ChatMessage, Role, SendOptions
from ..prompting.builder import PromptContext


class AnthropicAdapter(BaseAdapter):
    """
    Adapter for Anthropic Claude.

    Claude takes the system prompt as a top-level field, and history
    roles are limited to user/assistant.
    """

    kind = AdapterKind.ANTHROPIC
    API_VERSION = "2023-06-01"
    MAX_TOKENS = 500
    default_confidence = 0.92

    def _headers(self) -> dict:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        payload = {
            "model": self.config.model,
            "max_tokens": self.MAX_TOKENS,
            "temperature": options.effective_temperature,
            "system": prompt.system_prompt,
            "messages": self._convert_messages(prompt.recent_history(history), message),
        }
        data = await self._post_json("/messages", payload)
        return AdapterReply(
            text=self._extract_text(data) or EMPTY_REPLY_TEXT,
            confidence=self.default_confidence,
        )

    @staticmethod
    def _convert_messages(history: Sequence[ChatMessage], message: str) -> List[Dict[str, str]]:
        messages = [
            {
                "role": "assistant" if msg.role == Role.ASSISTANT else "user",
                "content": msg.content,
            }
            for msg in history
        ]
        messages.append({"role": "user", "content": message})
        return messages

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        content_text = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                content_text += block.get("text", "")
        return content_text.strip()
