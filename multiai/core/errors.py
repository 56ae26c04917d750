"""
MultiAI - Error Definitions

Error taxonomy for the provider cascade.

- Semantic errors (ValidationError) are fatal to the call.
- Provider errors are handled inside the cascade: each carries a
  FailureKind that decides retry and availability behaviour.
- ExhaustedCascadeError is turned into a user-facing response and
  never reaches the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx


class ErrorType(str, Enum):
    """Error classification."""
    INFRA = "infra_error"
    SEMANTIC = "semantic_error"


class FailureKind(str, Enum):
    """How a provider failure affects retries and availability."""
    AUTH = "auth"                  # Permanent disable, no retry
    RATE_LIMIT = "rate_limit"      # Temporary disable, no retry
    SERVER = "server"              # Retried, then temporary disable
    NETWORK = "network"            # Retried, never disables
    TIMEOUT = "timeout"            # Retried, never disables
    UNCLASSIFIED = "unclassified"  # Not retried, never disables


@dataclass
class ErrorDetails:
    """Full error information for API responses and logs."""
    code: str
    message: str
    type: ErrorType

    provider: Optional[str] = None
    param: Optional[str] = None
    request_id: str = ""

    retryable: bool = False
    retry_after: Optional[int] = None

    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "request_id": self.request_id,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.param:
            result["param"] = self.param
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.details:
            result["details"] = self.details

        return {"error": result}


class MultiAIException(Exception):
    """Base exception for all MultiAI errors."""

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)


# ============================================================
# Semantic Errors
# ============================================================

class ValidationError(MultiAIException):
    """User input rejected before any provider is contacted."""

    def __init__(self, message: str, param: str = "message", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="invalid_request",
                message=message,
                type=ErrorType.SEMANTIC,
                param=param,
                request_id=request_id,
                retryable=False
            ),
            status_code=400
        )


# ============================================================
# Provider Errors
# ============================================================

class ProviderError(MultiAIException):
    """Base class for failures raised by a provider adapter."""

    kind: FailureKind = FailureKind.UNCLASSIFIED

    @property
    def provider(self) -> Optional[str]:
        return self.error.provider

    @property
    def code(self) -> str:
        return self.error.code


class AuthError(ProviderError):
    """Provider rejected our credentials (401/403)."""

    kind = FailureKind.AUTH

    def __init__(self, provider: str, status_code: int = 401, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="provider_auth_error",
                message=f"{provider} authentication failed ({status_code})",
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                retryable=False,
                details={"upstream_status": status_code}
            ),
            status_code=502
        )


class RateLimitError(ProviderError):
    """Provider rate limit exceeded (429)."""

    kind = FailureKind.RATE_LIMIT

    def __init__(self, provider: str, retry_after: int = 60, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="rate_limited",
                message=f"{provider} rate limit exceeded. Retry after {retry_after} seconds.",
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True,
                retry_after=retry_after
            ),
            status_code=429
        )


class ServerError(ProviderError):
    """Provider returned a 5xx response."""

    kind = FailureKind.SERVER

    def __init__(
        self,
        provider: str,
        upstream_status: int = 500,
        code: str = "",
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code=code or f"upstream_{upstream_status}",
                message=f"{provider} returned error {upstream_status}",
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True,
                retry_after=30,
                details={"upstream_status": upstream_status}
            ),
            status_code=502
        )


class TransportError(ProviderError):
    """Could not reach the provider."""

    kind = FailureKind.NETWORK

    def __init__(self, provider: str, reason: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="network_error",
                message=f"Network error talking to {provider}" + (f": {reason}" if reason else ""),
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True
            ),
            status_code=504
        )


class ProviderTimeoutError(TransportError):
    """Provider did not answer within its per-call timeout."""

    kind = FailureKind.TIMEOUT

    def __init__(self, provider: str, timeout_seconds: Optional[float] = None, request_id: str = ""):
        super().__init__(provider, request_id=request_id)
        self.error.code = "timeout"
        self.error.message = f"{provider} did not respond within timeout"
        if timeout_seconds is not None:
            self.error.details["timeout_seconds"] = timeout_seconds


class ProviderRequestError(ProviderError):
    """Any other provider failure (4xx, malformed payload)."""

    kind = FailureKind.UNCLASSIFIED

    def __init__(
        self,
        provider: str,
        message: str,
        upstream_status: Optional[int] = None,
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="provider_error",
                message=message,
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                retryable=False,
                details={"upstream_status": upstream_status} if upstream_status else {}
            ),
            status_code=502
        )


class ExhaustedCascadeError(MultiAIException):
    """Every candidate provider failed or was unavailable."""

    def __init__(
        self,
        providers: List[str],
        last_error: Optional[ProviderError] = None,
        rate_limited: bool = False,
        request_id: str = ""
    ):
        self.providers = list(providers)
        self.last_error = last_error
        self.rate_limited = rate_limited
        super().__init__(
            ErrorDetails(
                code="all_providers_failed",
                message="All providers in the cascade failed",
                type=ErrorType.INFRA,
                request_id=request_id,
                retryable=False,
                details={
                    "providers_tried": self.providers,
                    "last_error": last_error.code if last_error else None
                }
            ),
            status_code=503
        )

    @property
    def last_kind(self) -> Optional[FailureKind]:
        return self.last_error.kind if self.last_error else None


# ============================================================
# Error Factory
# ============================================================

def _retry_after(response: httpx.Response, default: int = 60) -> int:
    raw = response.headers.get("retry-after")
    if not raw:
        return default
    try:
        return max(1, int(float(raw)))
    except ValueError:
        return default


def classify_status(
    provider: str,
    response: httpx.Response,
    request_id: str = ""
) -> ProviderError:
    """Map a non-2xx provider response onto the taxonomy."""
    status = response.status_code

    if status in (401, 403):
        return AuthError(provider, status, request_id)

    if status == 429:
        return RateLimitError(provider, _retry_after(response), request_id)

    if status >= 500:
        return ServerError(provider, status, request_id=request_id)

    return ProviderRequestError(
        provider,
        f"{provider} rejected the request ({status})",
        upstream_status=status,
        request_id=request_id
    )


def classify_http_error(
    provider: str,
    error: Exception,
    request_id: str = ""
) -> ProviderError:
    """
    Convert an httpx (or adapter) exception to a provider error.

    Already-classified errors pass through unchanged.
    """
    if isinstance(error, ProviderError):
        return error

    if isinstance(error, httpx.TimeoutException):
        return ProviderTimeoutError(provider, request_id=request_id)

    if isinstance(error, httpx.HTTPStatusError):
        return classify_status(provider, error.response, request_id)

    if isinstance(error, httpx.TransportError):
        return TransportError(provider, type(error).__name__, request_id)

    if isinstance(error, (ValueError, KeyError, TypeError)):
        return ProviderRequestError(
            provider,
            f"{provider} returned an unreadable response",
            request_id=request_id
        )

    return ProviderRequestError(provider, f"{provider} call failed: {type(error).__name__}", request_id=request_id)
