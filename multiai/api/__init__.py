"""
MultiAI - API Layer

REST surface over the cascade orchestrator:
- Chat (send one turn)
- Provider listing, manual selection and reset
"""

from .models import (
    ChatRequest,
    ChatResponse,
    FinancialContextInput,
    HistoryMessage,
    ProviderListResponse,
    ProviderOutput,
    ProviderSelectResponse,
)
from .routes import get_orchestrator, router as chat_router

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "FinancialContextInput",
    "HistoryMessage",
    "ProviderListResponse",
    "ProviderOutput",
    "ProviderSelectResponse",
    "chat_router",
    "get_orchestrator",
]
