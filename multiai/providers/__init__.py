"""Provider table and registry."""

from .registry import (
    DEFAULT_FALLBACK_ORDER,
    DEFAULT_PROVIDERS,
    ProviderRegistry,
    ProviderSpec,
)

__all__ = [
    "DEFAULT_FALLBACK_ORDER",
    "DEFAULT_PROVIDERS",
    "ProviderRegistry",
    "ProviderSpec",
]
