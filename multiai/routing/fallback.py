"""
MultiAI - Attempt Planning

Builds the per-call attempt order and keeps the record of what was tried.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..core.errors import ExhaustedCascadeError, FailureKind, ProviderError


def build_attempt_order(
    preferred: Optional[str],
    fallback_order: Sequence[str],
    synthetic_keys: Sequence[str] = (),
) -> List[str]:
    """
    Preferred provider first, then the fallback order without it.

    Synthetic providers always go last and are never preferred.
    """
    synthetic = set(synthetic_keys)
    order: List[str] = []

    if preferred and preferred not in synthetic:
        order.append(preferred)

    for key in fallback_order:
        if key == preferred or key in synthetic:
            continue
        order.append(key)

    order.extend(key for key in fallback_order if key in synthetic)
    return order


@dataclass
class CascadeAttempt:
    """One adapter invocation."""
    provider: str
    attempt: int
    success: bool
    duration_ms: int
    failure: Optional[FailureKind] = None

    def to_dict(self) -> dict:
        result = {
            "provider": self.provider,
            "attempt": self.attempt,
            "success": self.success,
            "duration_ms": self.duration_ms,
        }
        if self.failure is not None:
            result["failure"] = self.failure.value
        return result


@dataclass
class CascadeRecord:
    """
    What one send attempted.

    `attempted` holds each provider key once, in order; retries of the same
    provider appear only as extra entries in `attempts`.
    """
    attempted: List[str] = field(default_factory=list)
    attempts: List[CascadeAttempt] = field(default_factory=list)
    last_error: Optional[ProviderError] = None
    rate_limited: bool = False
    deadline_expired: bool = False

    @property
    def attempted_any(self) -> bool:
        return bool(self.attempted)

    def _mark(self, key: str):
        if key not in self.attempted:
            self.attempted.append(key)

    def record_success(self, key: str, attempt: int, duration_ms: int):
        self._mark(key)
        self.attempts.append(CascadeAttempt(key, attempt, True, duration_ms))

    def record_failure(self, key: str, attempt: int, error: ProviderError, duration_ms: int):
        self._mark(key)
        self.attempts.append(CascadeAttempt(key, attempt, False, duration_ms, error.kind))
        self.last_error = error
        if error.kind == FailureKind.RATE_LIMIT:
            self.rate_limited = True

    def to_exhausted_error(self, request_id: str = "") -> ExhaustedCascadeError:
        return ExhaustedCascadeError(
            self.attempted,
            last_error=self.last_error,
            rate_limited=self.rate_limited,
            request_id=request_id,
        )
