"""
MultiAI - Google Gemini Adapter

Adapter for the Gemini generateContent API. The whole conversation is
flattened into one text part.
"""

from typing import Any, Dict, Sequence

from .base import EMPTY_REPLY_TEXT, AdapterKind, AdapterReply, BaseAdapter
from ..core.models import ChatMessage, SendOptions
from ..prompting.builder import PromptContext


class GeminiAdapter(BaseAdapter):
    """Adapter for Google Gemini."""

    kind = AdapterKind.GEMINI
    MAX_OUTPUT_TOKENS = 500

    SAFETY_SETTINGS = [
        {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
        {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    ]

    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        transcript = "\n".join(
            f"{msg.role.value}: {msg.content}" for msg in prompt.recent_history(history)
        )
        full_prompt = (
            f"{prompt.system_prompt}\n\nConversation History:\n{transcript}"
            f"\n\nUser: {message}\n\nAssistant:"
        )
        payload = {
            "contents": [{"parts": [{"text": full_prompt}]}],
            "generationConfig": {
                "temperature": options.effective_temperature,
                "maxOutputTokens": self.MAX_OUTPUT_TOKENS,
                "topP": 0.8,
                "topK": 10,
            },
            "safetySettings": self.SAFETY_SETTINGS,
        }

        data = await self._post_json(
            f"/models/{self.config.model}:generateContent",
            payload,
            params={"key": self.config.api_key},
        )

        candidate = (data.get("candidates") or [{}])[0]
        return AdapterReply(
            text=self._extract_text(candidate) or EMPTY_REPLY_TEXT,
            # Safety ratings mean the response went through full moderation
            confidence=0.9 if candidate.get("safetyRatings") else 0.8,
        )

    @staticmethod
    def _extract_text(candidate: Dict[str, Any]) -> str:
        parts = (candidate.get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts).strip()
