"""
MultiAI - Core Module

Data models and the error taxonomy shared across the package.
"""

from .models import (
    ActionHint,
    ActionType,
    ChatMessage,
    Expense,
    FinancialContext,
    Goal,
    NormalizedResponse,
    Persona,
    Provider,
    ResponseMetadata,
    Role,
    SendOptions,
)
from .errors import (
    AuthError,
    ErrorDetails,
    ErrorType,
    ExhaustedCascadeError,
    FailureKind,
    MultiAIException,
    ProviderError,
    ProviderRequestError,
    ProviderTimeoutError,
    RateLimitError,
    ServerError,
    TransportError,
    ValidationError,
    classify_http_error,
)

__all__ = [
    # Models
    "ActionHint",
    "ActionType",
    "ChatMessage",
    "Expense",
    "FinancialContext",
    "Goal",
    "NormalizedResponse",
    "Persona",
    "Provider",
    "ResponseMetadata",
    "Role",
    "SendOptions",
    # Errors
    "AuthError",
    "ErrorDetails",
    "ErrorType",
    "ExhaustedCascadeError",
    "FailureKind",
    "MultiAIException",
    "ProviderError",
    "ProviderRequestError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "ValidationError",
    "classify_http_error",
]
