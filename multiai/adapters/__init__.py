"""
MultiAI Adapters Module

Provider-specific adapters that translate one chat turn into each
provider's native API format.
"""

from .base import AdapterConfig, AdapterKind, AdapterReply, BaseAdapter
from .openai_compatible import OpenAICompatibleAdapter
from .anthropic_adapter import AnthropicAdapter
from .google_adapter import GeminiAdapter
from .huggingface_adapter import HuggingFaceAdapter
from .ollama_adapter import OllamaAdapter
from .mock_adapter import MOCK_LABEL, MockAdapter

__all__ = [
    "AdapterConfig",
    "AdapterKind",
    "AdapterReply",
    "BaseAdapter",
    "OpenAICompatibleAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
    "HuggingFaceAdapter",
    "OllamaAdapter",
    "MockAdapter",
    "MOCK_LABEL",
    "create_adapter",
]


ADAPTERS = {
    AdapterKind.OPENAI_COMPATIBLE: OpenAICompatibleAdapter,
    AdapterKind.ANTHROPIC: AnthropicAdapter,
    AdapterKind.GEMINI: GeminiAdapter,
    AdapterKind.HUGGINGFACE: HuggingFaceAdapter,
    AdapterKind.OLLAMA: OllamaAdapter,
    AdapterKind.MOCK: MockAdapter,
}


def create_adapter(kind: AdapterKind, config: AdapterConfig) -> BaseAdapter:
    """
    Factory function to get the adapter for a wire family.

    Args:
        kind: Adapter kind from the provider table
        config: Adapter configuration with credential and model

    Returns:
        Configured adapter instance

    Raises:
        ValueError: If the kind is not supported
    """
    adapter_class = ADAPTERS.get(AdapterKind(kind))
    if not adapter_class:
        raise ValueError(f"Unsupported adapter kind: {kind}")

    return adapter_class(config)
