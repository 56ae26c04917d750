"""
MultiAI - Provider Adapter Base

Abstract base class for AI provider adapters.
Every provider is driven through the same async `complete` call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import httpx

from ..core.errors import ProviderRequestError, classify_status
from ..core.models import ActionHint, ChatMessage, SendOptions
from ..prompting.builder import PromptContext


EMPTY_REPLY_TEXT = "Sorry, I couldn't process that request."


class AdapterKind(str, Enum):
    """Wire families an adapter can speak."""
    OPENAI_COMPATIBLE = "openai_compatible"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    HUGGINGFACE = "huggingface"
    OLLAMA = "ollama"
    MOCK = "mock"


@dataclass
class AdapterConfig:
    """Configuration for a provider adapter."""
    provider_key: str
    model: str
    api_key: str = ""
    base_url: Optional[str] = None
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, compare=False, repr=False)


@dataclass
class AdapterReply:
    """Raw provider output before normalization."""
    text: str
    confidence: Optional[float] = None
    label: Optional[str] = None

    # Set only by adapters that produce their own structured hints
    suggestions: Optional[List[str]] = None
    action: Optional[ActionHint] = None


class BaseAdapter(ABC):
    """
    Abstract base class for AI provider adapters.

    The adapter is responsible for:
    1. Converting the chat turn into the provider's request format
    2. Making the API call to the provider
    3. Returning the provider's text as an AdapterReply
    4. Raising taxonomy errors (core.errors) for provider failures

    Retries, timeouts and availability are the cascade's concern.
    """

    kind: AdapterKind
    label: str = ""
    default_confidence: float = 0.9

    def __init__(self, config: AdapterConfig):
        self.config = config
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider_key(self) -> str:
        return self.config.provider_key

    @abstractmethod
    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        """
        Generate a reply for one chat turn.

        Args:
            message: Current user message
            history: Prior turns, oldest first
            prompt: Prebuilt system prompt and history window
            options: Caller options (temperature, persona)

        Returns:
            Raw reply text with adapter confidence
        """

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    # ============================================================
    # Helper methods for subclasses
    # ============================================================

    def _headers(self) -> dict:
        return {"Content-Type": "application/json"}

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url or "",
                headers=self._headers(),
                timeout=self.config.timeout,
                transport=self.config.transport,
            )
        return self._client

    async def _post_json(self, path: str, payload: dict, **kwargs) -> dict:
        """POST and return the decoded body, raising taxonomy errors on failure."""
        response = await self._get_client().post(path, json=payload, **kwargs)
        if response.status_code >= 400:
            raise classify_status(self.provider_key, response)
        try:
            return response.json()
        except ValueError:
            raise ProviderRequestError(
                self.provider_key,
                f"{self.provider_key} returned a non-JSON body",
                upstream_status=response.status_code,
            )
