"""
MultiAI - Ollama (local model) Adapter

Talks to a locally hosted Ollama server. Every call first probes
`/tags` so a stopped server fails fast instead of waiting out the
generation timeout.
"""

import random
from typing import Sequence

import httpx

from .base import EMPTY_REPLY_TEXT, AdapterKind, AdapterReply, BaseAdapter
from ..core.errors import TransportError, classify_status
from ..core.models import ChatMessage, SendOptions
from ..prompting.builder import PromptContext, render_transcript


class OllamaAdapter(BaseAdapter):
    """Adapter for a local Ollama server."""

    kind = AdapterKind.OLLAMA
    HEALTH_TIMEOUT_SECONDS = 5.0
    default_confidence = 0.85

    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        await self._check_server()

        transcript = render_transcript(
            prompt.recent_history(history), user_label="Human", assistant_label="Assistant"
        )
        payload = {
            "model": self.config.model,
            "prompt": (
                f"{prompt.system_prompt}\n\nConversation:\n{transcript}"
                f"\nHuman: {message}\nAssistant:"
            ),
            "stream": False,
            "options": {
                "temperature": options.effective_temperature,
                "top_p": 0.8,
                "top_k": 40,
                "num_predict": 500,
                "repeat_penalty": 1.1,
                "seed": random.randint(0, 999_999),
            },
        }
        data = await self._post_json("/generate", payload)
        return AdapterReply(
            text=(data.get("response") or "").strip() or EMPTY_REPLY_TEXT,
            confidence=self.default_confidence,
        )

    async def _check_server(self):
        """Raise TransportError unless the server answers the tags probe."""
        try:
            response = await self._get_client().get("/tags", timeout=self.HEALTH_TIMEOUT_SECONDS)
        except httpx.TransportError as e:
            raise TransportError(self.provider_key, f"local server not reachable ({type(e).__name__})")
        if response.status_code >= 400:
            raise classify_status(self.provider_key, response)
