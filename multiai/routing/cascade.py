"""
MultiAI - Cascade Orchestrator

The core control loop. One send walks the provider cascade:

1. Validate the message (ValidationError is the only exception a caller sees)
2. Refresh availability from the environment
3. Pick a preferred provider (last success, else persona preselection)
4. Try candidates in order, each with its own retry budget and timeout
5. Open availability windows for auth/rate-limit/server failures
6. Normalize the first successful reply, or explain why nothing answered
"""

import asyncio
import time
import uuid
from collections import Counter
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..adapters import create_adapter
from ..adapters.base import AdapterConfig, AdapterKind, AdapterReply, BaseAdapter
from ..config import CascadePolicy
from ..core.errors import (
    FailureKind,
    ProviderError,
    ProviderTimeoutError,
    ValidationError,
    classify_http_error,
)
from ..core.models import (
    ChatMessage,
    FinancialContext,
    NormalizedResponse,
    Persona,
    ResponseMetadata,
    SendOptions,
    utc_timestamp,
)
from ..observability.logging import LogContext, TimedOperation, get_logger
from ..observability.metrics import CascadeMetrics, get_metrics
from ..observability.tracing import current_trace_id, mark_span_failed, trace_provider_attempt, trace_send
from ..prompting.builder import PromptBuilder, PromptContext
from ..providers.registry import ProviderRegistry, ProviderSpec
from ..response.normalizer import MAX_SUGGESTIONS, ResponseNormalizer, with_disclaimer
from .availability import AvailabilityTracker
from .fallback import CascadeRecord, build_attempt_order
from .preselect import AgentRouter, ProviderChangeListener

logger = get_logger(__name__)

AdapterFactory = Callable[[ProviderSpec, AdapterConfig], BaseAdapter]


# ============================================================
# User-facing failure responses
# ============================================================

RATE_LIMIT_MESSAGE = "I'm currently receiving too many requests. Please wait a moment and try again."
RATE_LIMIT_SUGGESTIONS = ("Wait 30-60 seconds", "Reduce request frequency")

OFFLINE_MESSAGE = (
    "I'm currently not connected to any AI services. "
    "Please check your configuration and try again."
)
NETWORK_MESSAGE = (
    "I'm unable to connect to AI services right now (network error). "
    "Please check your connection and try again."
)
AUTH_MESSAGE = "There's an authentication issue with my AI services. Please contact support."
TECHNICAL_MESSAGE = (
    "I'm experiencing technical difficulties with my AI services. I tried {count} provider(s) "
    "but none are currently available. Please try again later."
)
ERROR_SUGGESTIONS = (
    "Check your internet connection",
    "Try again in a few moments",
    "Contact support if the problem persists",
)

LABEL_RATE_LIMIT = "rate-limit"
LABEL_OFFLINE = "offline"
LABEL_ERROR = "error"

PROBE_MESSAGE = "Hello, this is a test message."

# Failures that end a provider's turn without retrying
_NO_RETRY = {FailureKind.AUTH, FailureKind.RATE_LIMIT, FailureKind.UNCLASSIFIED}

# Failures that open an availability window once the provider's turn ends
_WINDOWED = {FailureKind.AUTH, FailureKind.RATE_LIMIT, FailureKind.SERVER}


def _default_adapter_factory(spec: ProviderSpec, config: AdapterConfig) -> BaseAdapter:
    return create_adapter(spec.kind, config)


class CascadeOrchestrator:
    """
    Multi-provider chat orchestration.

    Usage:
        orchestrator = CascadeOrchestrator()
        response = await orchestrator.send(
            "How do I start a budget?",
            history=[ChatMessage.user("Hi")],
            options=SendOptions(persona=Persona.PENNY),
        )
        print(response.message)

    Collaborators are injectable; defaults read the process environment.
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        policy: Optional[CascadePolicy] = None,
        tracker: Optional[AvailabilityTracker] = None,
        router: Optional[AgentRouter] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        adapter_factory: Optional[AdapterFactory] = None,
        metrics: Optional[CascadeMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
        env: Optional[Mapping[str, str]] = None,
    ):
        self.policy = policy or CascadePolicy.from_env(env)
        self.registry = registry or ProviderRegistry(env=env)
        self.metrics = metrics or get_metrics()
        self.tracker = tracker or AvailabilityTracker(
            self.registry, self.policy, clock=clock, metrics=self.metrics
        )
        self.router = router or AgentRouter(self.tracker)
        self.prompt_builder = prompt_builder or PromptBuilder(self.policy.history_window)
        self.normalizer = normalizer or ResponseNormalizer()
        self._adapter_factory = adapter_factory or _default_adapter_factory
        self._adapters: Dict[str, BaseAdapter] = {}
        # In-flight calls per adapter; replaced adapters close once idle
        self._leases: Counter = Counter()
        self._retired: List[BaseAdapter] = []
        self._current: Optional[str] = None

    # ============================================================
    # Send
    # ============================================================

    async def send(
        self,
        message: str,
        history: Sequence[ChatMessage] = (),
        context: Optional[FinancialContext] = None,
        options: Optional[SendOptions] = None,
    ) -> NormalizedResponse:
        """
        Send one chat turn through the cascade.

        Args:
            message: The user's message
            history: Prior turns, oldest first
            context: Optional financial snapshot and privacy preference
            options: Persona, temperature and overall deadline

        Returns:
            A NormalizedResponse; provider failures never raise

        Raises:
            ValidationError: empty or over-long message, unknown persona
        """
        options = options or SendOptions()
        started = time.monotonic()
        try:
            persona = self._validate(message, options)
        except ValidationError:
            self.metrics.record_send("invalid", "none", time.monotonic() - started)
            raise

        request_id = f"req_{uuid.uuid4().hex[:16]}"
        token = LogContext.set_current(
            LogContext(request_id=request_id, persona=persona.value if persona else "")
        )
        try:
            with trace_send(persona.value if persona else None, {"multiai.request_id": request_id}):
                LogContext.get_current().trace_id = current_trace_id()
                return await self._run_cascade(
                    message, list(history), context, options, persona, started, request_id
                )
        finally:
            LogContext.reset(token)

    def _validate(self, message: str, options: SendOptions) -> Optional[Persona]:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message cannot be empty")
        if len(message) > self.policy.max_message_length:
            raise ValidationError(
                f"Message too long (max {self.policy.max_message_length} characters)"
            )
        if options.deadline_seconds is not None and options.deadline_seconds <= 0:
            raise ValidationError("deadline_seconds must be positive", param="deadline_seconds")

        if options.persona is None or isinstance(options.persona, Persona):
            return options.persona
        try:
            return Persona(str(options.persona).lower())
        except ValueError:
            raise ValidationError(f"Unknown persona: {options.persona}", param="persona")

    async def _run_cascade(
        self,
        message: str,
        history: List[ChatMessage],
        context: Optional[FinancialContext],
        options: SendOptions,
        persona: Optional[Persona],
        started: float,
        request_id: str,
    ) -> NormalizedResponse:
        self._refresh_availability()

        preselected: Optional[str] = None
        preferred = self._current if self._current and self.tracker.is_available(self._current) else None
        if preferred is None:
            preselected = preferred = self.router.preselect(persona, message)

        order = build_attempt_order(preferred, self.registry.fallback_order, self.registry.synthetic_keys)
        prompt = self.prompt_builder.prompt_context(persona, context)
        deadline = started + options.deadline_seconds if options.deadline_seconds else None
        record = CascadeRecord()

        logger.debug("Cascade started", preferred=preferred, order=order)

        previous: Optional[str] = None
        for key in order:
            spec = self.registry.spec(key)
            if spec.synthetic and not record.attempted_any:
                continue
            if not self.tracker.is_available(key):
                continue

            if previous is not None and record.last_error is not None:
                self.metrics.record_fallback(previous, key, record.last_error.kind.value)

            reply = await self._attempt_provider(
                key, spec, message, history, prompt, options, record, deadline
            )
            if reply is not None:
                return self._success_response(key, spec, reply, record, started, preselected)
            if record.deadline_expired:
                logger.warning("Cascade deadline expired", attempted=record.attempted)
                break
            previous = key

        return self._exhausted_response(record, started, request_id)

    # ============================================================
    # Provider attempts
    # ============================================================

    def _refresh_availability(self):
        self.registry.refresh_availability()
        self._publish_availability()

    def _publish_availability(self):
        """Mirror every provider's availability into the gauge."""
        for provider in self.registry.list_providers():
            self.metrics.set_available(provider.key, self.tracker.is_available(provider.key))

    def _timeout_for(self, spec: ProviderSpec) -> float:
        if spec.timeout_seconds is not None:
            return spec.timeout_seconds
        if spec.kind == AdapterKind.OLLAMA:
            return self.policy.local_timeout_seconds
        return self.policy.default_timeout_seconds

    def _attempts_for(self, spec: ProviderSpec) -> int:
        if spec.max_attempts is not None:
            return max(1, spec.max_attempts)
        if spec.kind == AdapterKind.OLLAMA:
            return max(1, self.policy.local_max_attempts)
        return 1

    async def _acquire_adapter(self, spec: ProviderSpec) -> BaseAdapter:
        """
        Lease the cached adapter, rebuilding it when the provider's
        credentials or model change.

        A replaced adapter is closed straight away when idle; otherwise it
        is retired and closed by the last call still using it.
        """
        config = self.registry.adapter_config(spec.key, self._timeout_for(spec))
        adapter = self._adapters.get(spec.key)
        if adapter is None or adapter.config != config:
            replaced = adapter
            adapter = self._adapter_factory(spec, config)
            self._adapters[spec.key] = adapter
            if replaced is not None and replaced is not adapter:
                if self._leases[replaced]:
                    self._retired.append(replaced)
                else:
                    await replaced.close()
        self._leases[adapter] += 1
        return adapter

    async def _release_adapter(self, adapter: BaseAdapter):
        self._leases[adapter] -= 1
        if self._leases[adapter] > 0:
            return
        del self._leases[adapter]
        if adapter in self._retired:
            self._retired.remove(adapter)
            logger.debug("Closing replaced adapter", provider=adapter.config.provider_key)
            await adapter.close()

    async def _attempt_provider(
        self,
        key: str,
        spec: ProviderSpec,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions,
        record: CascadeRecord,
        deadline: Optional[float],
    ) -> Optional[AdapterReply]:
        """
        Run one provider's attempt budget.

        Returns the reply, or None when the provider's turn ended in failure.
        CancelledError propagates untouched and leaves availability alone.
        """
        adapter = await self._acquire_adapter(spec)
        try:
            return await self._run_attempts(
                adapter, key, spec, message, history, prompt, options, record, deadline
            )
        finally:
            await self._release_adapter(adapter)

    async def _run_attempts(
        self,
        adapter: BaseAdapter,
        key: str,
        spec: ProviderSpec,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions,
        record: CascadeRecord,
        deadline: Optional[float],
    ) -> Optional[AdapterReply]:
        provider = self.registry.get(key)
        timeout = self._timeout_for(spec)
        budget = self._attempts_for(spec)
        error: Optional[ProviderError] = None

        for attempt in range(1, budget + 1):
            call_timeout = timeout
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    record.deadline_expired = True
                    break
                call_timeout = min(timeout, remaining)

            attempt_started = time.monotonic()
            with trace_provider_attempt(key, provider.model, attempt) as span:
                try:
                    reply = await asyncio.wait_for(
                        adapter.complete(message, history, prompt, options),
                        timeout=call_timeout,
                    )
                except asyncio.TimeoutError:
                    error = ProviderTimeoutError(key, call_timeout)
                except Exception as e:
                    error = classify_http_error(key, e)
                else:
                    elapsed = time.monotonic() - attempt_started
                    record.record_success(key, attempt, int(elapsed * 1000))
                    self.metrics.record_attempt(key, "success", elapsed)
                    return reply
                mark_span_failed(span, error.kind.value)

            elapsed = time.monotonic() - attempt_started
            record.record_failure(key, attempt, error, int(elapsed * 1000))
            self.metrics.record_attempt(key, error.kind.value, elapsed)
            logger.warning(
                "Provider attempt failed",
                provider=key,
                attempt=attempt,
                failure=error.kind.value,
                code=error.code,
            )

            if error.kind in _NO_RETRY:
                break
            if deadline is not None and time.monotonic() >= deadline:
                record.deadline_expired = True
                break

        if error is not None and error.kind in _WINDOWED:
            self.tracker.record_failure(key, error.kind)
        return None

    # ============================================================
    # Responses
    # ============================================================

    def _success_response(
        self,
        key: str,
        spec: ProviderSpec,
        reply: AdapterReply,
        record: CascadeRecord,
        started: float,
        preselected: Optional[str],
    ) -> NormalizedResponse:
        self.tracker.record_success(key)

        if not spec.synthetic and key != self._current:
            self._current = key
            # Preselection already announced this provider
            if key != preselected:
                self.router.notify_provider_change(key)

        fragment = self.normalizer.normalize(reply.text)
        suggestions = tuple(reply.suggestions[:MAX_SUGGESTIONS]) if reply.suggestions else fragment.suggestions
        provider = self.registry.get(key)
        elapsed = time.monotonic() - started

        response = NormalizedResponse(
            message=fragment.message,
            provider=reply.label or provider.name,
            suggestions=suggestions,
            action=reply.action or fragment.action,
            confidence=reply.confidence if reply.confidence is not None else spec.confidence,
            metadata=ResponseMetadata(
                timestamp=utc_timestamp(),
                provider=key,
                model=provider.model,
                response_time_ms=int(elapsed * 1000),
                attempted_providers=tuple(record.attempted),
                error=record.last_error.code if record.last_error else None,
            ),
        )

        self.metrics.record_send("success", key, elapsed)
        logger.info(
            "Send completed",
            provider=key,
            attempts=len(record.attempts),
            duration_ms=response.metadata.response_time_ms,
        )
        return response

    def _exhausted_response(
        self,
        record: CascadeRecord,
        started: float,
        request_id: str,
    ) -> NormalizedResponse:
        exhausted = record.to_exhausted_error(request_id)
        last_kind = exhausted.last_kind
        suggestions = ERROR_SUGGESTIONS
        label = LABEL_ERROR

        if exhausted.rate_limited:
            text, suggestions, label = RATE_LIMIT_MESSAGE, RATE_LIMIT_SUGGESTIONS, LABEL_RATE_LIMIT
        elif record.deadline_expired:
            text = NETWORK_MESSAGE
        elif not exhausted.providers:
            text, label = OFFLINE_MESSAGE, LABEL_OFFLINE
        elif last_kind in (FailureKind.NETWORK, FailureKind.TIMEOUT):
            text = NETWORK_MESSAGE
        elif last_kind == FailureKind.AUTH:
            text = AUTH_MESSAGE
        else:
            text = TECHNICAL_MESSAGE.format(count=len(exhausted.providers))

        error_code = exhausted.last_error.code if exhausted.last_error else None
        if error_code is None and record.deadline_expired:
            error_code = "deadline_exceeded"

        elapsed = time.monotonic() - started
        self.metrics.record_send("exhausted", label, elapsed)
        logger.error(
            "All providers failed",
            attempted=exhausted.providers,
            last_error=error_code,
            label=label,
        )

        return NormalizedResponse(
            message=with_disclaimer(text),
            provider=label,
            suggestions=suggestions,
            metadata=ResponseMetadata(
                timestamp=utc_timestamp(),
                response_time_ms=int(elapsed * 1000),
                attempted_providers=tuple(exhausted.providers),
                error=error_code,
            ),
        )

    # ============================================================
    # Provider management
    # ============================================================

    @property
    def current_provider(self) -> Optional[str]:
        """Key of the last provider that answered (or was switched to)."""
        return self._current

    @property
    def current_provider_name(self) -> str:
        provider = self.registry.get(self._current) if self._current else None
        return provider.name if provider else "Unknown"

    def on_provider_change(self, listener: ProviderChangeListener) -> Callable[[], None]:
        """Register a provider-change listener; returns its remover."""
        return self.router.add_listener(listener)

    def switch_provider(self, key: str) -> bool:
        """Make an available, non-synthetic provider the preferred one."""
        provider = self.registry.get(key)
        if provider is None or provider.synthetic:
            return False
        self._refresh_availability()
        if not self.tracker.is_available(key):
            return False
        if key != self._current:
            self._current = key
            self.router.notify_provider_change(key)
        logger.info("Provider switched", provider=key)
        return True

    def get_available_providers(self) -> List[str]:
        self._refresh_availability()
        return [p.key for p in self.registry.list_providers() if self.tracker.is_available(p.key)]

    def get_primary_provider(self) -> Optional[str]:
        """First available provider in fallback order."""
        available = set(self.get_available_providers())
        return next((key for key in self.registry.fallback_order if key in available), None)

    def get_provider_details(self) -> List[dict]:
        self._refresh_availability()
        windows = self.tracker.active_windows()
        now = self.tracker.clock()
        details = []
        for provider in self.registry.list_providers():
            entry = provider.to_dict()
            entry["available"] = self.tracker.is_available(provider.key)
            entry["current"] = provider.key == self._current
            window = windows.get(provider.key)
            entry["window"] = window.to_dict(now) if window else None
            details.append(entry)
        return details

    async def test_provider(self, key: str) -> bool:
        """
        Probe one provider with a short message.

        Uses the provider's retry budget and classifies failures exactly like
        a real send, so a failed probe can open an availability window.
        """
        spec = self.registry.spec(key)
        if spec is None:
            return False
        self._refresh_availability()
        if not self.tracker.is_available(key):
            return False

        record = CascadeRecord()
        async with TimedOperation("provider_probe", logger, provider=key):
            reply = await self._attempt_provider(
                key,
                spec,
                PROBE_MESSAGE,
                (),
                self.prompt_builder.prompt_context(),
                SendOptions(),
                record,
                deadline=None,
            )
        if reply is None:
            logger.info("Provider probe failed", provider=key, attempts=len(record.attempts))
            return False
        self.tracker.record_success(key)
        return True

    def reload_configuration(self, env: Optional[Mapping[str, str]] = None):
        """Reload the environment and clear every window, permanent ones included."""
        self.tracker.reset()
        self.registry.reload(env)
        self._publish_availability()
        if self._current and not self.tracker.is_available(self._current):
            self._current = None

    async def aclose(self):
        """Cancel recovery timers and close adapter HTTP clients."""
        self.tracker.shutdown()
        adapters = list(self._adapters.values()) + self._retired
        self._adapters.clear()
        self._retired = []
        self._leases.clear()
        for adapter in adapters:
            await adapter.close()
