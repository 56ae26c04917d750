"""
MultiAI - Availability Tracker

Per-provider availability windows, modelled on a circuit breaker with
failure-kind driven transitions instead of failure counting.

States:
- AVAILABLE: credentials present, no window
- DISABLED (temporary): rate-limited (60s) or server error (30s)
- DISABLED (permanent): authentication failure, until reset()/reload

Transitions:
- AVAILABLE -> DISABLED: record_failure() with auth/rate-limit/server kind
- DISABLED (temporary) -> AVAILABLE: window elapsed (lazy check or timer)
- any -> AVAILABLE: record_success() or reset()
"""

import asyncio
import itertools
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from ..config import CascadePolicy
from ..core.errors import FailureKind
from ..observability.logging import get_logger
from ..observability.metrics import CascadeMetrics
from ..providers.registry import ProviderRegistry

logger = get_logger(__name__)


class WindowReason(str, Enum):
    """Why a provider is held unavailable."""
    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"


_REASONS = {
    FailureKind.AUTH: WindowReason.AUTH_FAILURE,
    FailureKind.RATE_LIMIT: WindowReason.RATE_LIMITED,
    FailureKind.SERVER: WindowReason.SERVER_ERROR,
}


@dataclass
class AvailabilityWindow:
    """A period during which a provider must not be attempted."""
    provider: str
    reason: WindowReason
    created_at: float

    # Clock reading when the window ends; None is permanent
    disabled_until: Optional[float] = None

    # Ties recovery timers to the window that scheduled them
    generation: int = 0

    @property
    def permanent(self) -> bool:
        return self.disabled_until is None

    def expired(self, now: float) -> bool:
        return self.disabled_until is not None and now >= self.disabled_until

    def remaining(self, now: float) -> Optional[float]:
        if self.disabled_until is None:
            return None
        return max(0.0, self.disabled_until - now)

    def to_dict(self, now: float) -> dict:
        remaining = self.remaining(now)
        return {
            "reason": self.reason.value,
            "permanent": self.permanent,
            "remaining_seconds": round(remaining, 1) if remaining is not None else None,
        }


class AvailabilityTracker:
    """
    Owns every availability window.

    Expiry is checked lazily against the injected clock, so no background
    tick is needed. When a loop is running a call_later timer also flips
    the provider back as soon as its window elapses.

    Usage:
        tracker = AvailabilityTracker(registry, policy, clock=fake_clock)
        tracker.record_failure("gemini", FailureKind.RATE_LIMIT)
        tracker.is_available("gemini")  # False for 60s
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        policy: Optional[CascadePolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[CascadeMetrics] = None,
    ):
        self.registry = registry
        self.policy = policy or CascadePolicy()
        self.clock = clock
        self.metrics = metrics
        self._windows: Dict[str, AvailabilityWindow] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._generations = itertools.count(1)

        registry.set_window_guard(self.has_active_window)

    def _duration_for(self, kind: FailureKind) -> Optional[float]:
        if kind == FailureKind.RATE_LIMIT:
            return self.policy.rate_limit_cooldown_seconds
        if kind == FailureKind.SERVER:
            return self.policy.server_error_cooldown_seconds
        return None

    # ============================================================
    # Recording
    # ============================================================

    def record_failure(self, key: str, kind: FailureKind) -> Optional[AvailabilityWindow]:
        """
        Open a window for a failure kind that warrants one.

        Network, timeout and unclassified failures never open a window.
        """
        reason = _REASONS.get(kind)
        provider = self.registry.get(key)
        if reason is None or provider is None:
            return None

        duration = self._duration_for(kind)
        with provider.lock:
            now = self.clock()
            window = AvailabilityWindow(
                provider=key,
                reason=reason,
                created_at=now,
                disabled_until=None if duration is None else now + duration,
                generation=next(self._generations),
            )
            self._windows[key] = window
            provider.available = False
            self._schedule_recovery(window, duration)

        logger.warning(
            "Provider disabled",
            provider=key,
            reason=reason.value,
            window_seconds=duration,
        )
        if self.metrics:
            self.metrics.record_window(key, reason.value)
            self.metrics.set_available(key, False)
        return window

    def record_success(self, key: str):
        """Clear any window after a successful call."""
        provider = self.registry.get(key)
        if provider is None:
            return
        with provider.lock:
            had_window = self._clear(key)
            provider.available = provider.credential_present
        if had_window:
            logger.info("Provider window cleared by success", provider=key)
        if self.metrics:
            self.metrics.set_available(key, provider.available)

    # ============================================================
    # Queries
    # ============================================================

    def is_available(self, key: str) -> bool:
        provider = self.registry.get(key)
        if provider is None:
            return False
        with provider.lock:
            window = self._windows.get(key)
            if window is not None and window.expired(self.clock()):
                self._expire(key)
            return provider.available

    def has_active_window(self, key: str) -> bool:
        """True while a window holds the provider down (registry guard)."""
        provider = self.registry.get(key)
        if provider is None:
            return False
        with provider.lock:
            window = self._windows.get(key)
            if window is None:
                return False
            if window.expired(self.clock()):
                self._clear(key)
                return False
            return True

    def window(self, key: str) -> Optional[AvailabilityWindow]:
        """The active window for a provider, if any."""
        return self.active_windows().get(key)

    def active_windows(self) -> Dict[str, AvailabilityWindow]:
        now = self.clock()
        return {
            key: window
            for key, window in list(self._windows.items())
            if not window.expired(now)
        }

    # ============================================================
    # Lifecycle
    # ============================================================

    def reset(self, key: Optional[str] = None):
        """Clear windows (all, or one provider), including permanent ones."""
        keys = [key] if key is not None else [p.key for p in self.registry.list_providers()]
        for provider_key in keys:
            provider = self.registry.get(provider_key)
            if provider is None:
                continue
            with provider.lock:
                self._clear(provider_key)
                provider.available = provider.credential_present

    def shutdown(self):
        """Cancel every pending recovery timer."""
        for handle in list(self._timers.values()):
            handle.cancel()
        self._timers.clear()

    # ============================================================
    # Internals (caller holds the provider lock)
    # ============================================================

    def _clear(self, key: str) -> bool:
        handle = self._timers.pop(key, None)
        if handle is not None:
            handle.cancel()
        return self._windows.pop(key, None) is not None

    def _expire(self, key: str):
        provider = self.registry.get(key)
        self._clear(key)
        provider.available = provider.credential_present
        logger.info("Provider window elapsed", provider=key, available=provider.available)
        if self.metrics:
            self.metrics.set_available(key, provider.available)

    def _schedule_recovery(self, window: AvailabilityWindow, duration: Optional[float]):
        previous = self._timers.pop(window.provider, None)
        if previous is not None:
            previous.cancel()

        if duration is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[window.provider] = loop.call_later(
            duration, self._on_timer, window.provider, window.generation
        )

    def _on_timer(self, key: str, generation: int):
        provider = self.registry.get(key)
        if provider is None:
            return
        with provider.lock:
            window = self._windows.get(key)
            # A newer failure replaced this window
            if window is None or window.generation != generation:
                return
            self._timers.pop(key, None)
            self._expire(key)
