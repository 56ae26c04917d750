"""
MultiAI - Hugging Face Inference Adapter

Text-generation models on the hosted Inference API. The endpoint is the
model id itself under the models base URL.
"""

from typing import Any, Sequence
from urllib.parse import quote

from .base import EMPTY_REPLY_TEXT, AdapterKind, AdapterReply, BaseAdapter
from ..core.errors import ServerError, classify_status
from ..core.models import ChatMessage, SendOptions
from ..prompting.builder import PromptContext, render_transcript


class HuggingFaceAdapter(BaseAdapter):
    """
    Adapter for Hugging Face hosted text generation.

    A 503 means the model is still loading; it is reported as a server
    error with code `model_loading` so the cascade cools the provider off.
    """

    kind = AdapterKind.HUGGINGFACE
    MAX_NEW_TOKENS = 256
    default_confidence = 0.8

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        transcript = render_transcript(prompt.recent_history(history))
        payload = {
            "inputs": f"{prompt.system_prompt}\n\n{transcript}\nUser: {message}\nAssistant:",
            "parameters": {
                "max_new_tokens": self.MAX_NEW_TOKENS,
                "temperature": options.effective_temperature,
                "return_full_text": False,
            },
        }

        response = await self._get_client().post(f"/{quote(self.config.model, safe='')}", json=payload)
        if response.status_code == 503:
            raise ServerError(self.provider_key, 503, code="model_loading")
        if response.status_code >= 400:
            raise classify_status(self.provider_key, response)

        return AdapterReply(
            text=self._extract_text(response.json()) or EMPTY_REPLY_TEXT,
            confidence=self.default_confidence,
        )

    @staticmethod
    def _extract_text(data: Any) -> str:
        # Either [{"generated_text": ...}] or {"generated_text": ...}
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            return ""
        return (data.get("generated_text") or data.get("summary_text") or "").strip()
