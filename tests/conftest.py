"""
MultiAI - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Controllable clock for availability windows
- Scripted adapters standing in for real providers
- Orchestrator factory wired to an isolated metrics registry
"""

import os
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pytest
from prometheus_client import CollectorRegistry

from multiai.adapters.base import AdapterConfig, AdapterKind, AdapterReply, BaseAdapter
from multiai.config import CascadePolicy
from multiai.core.models import ChatMessage, SendOptions
from multiai.observability.metrics import CascadeMetrics
from multiai.prompting.builder import PromptContext
from multiai.providers.registry import ProviderRegistry, ProviderSpec
from multiai.routing.availability import AvailabilityTracker
from multiai.routing.cascade import CascadeOrchestrator


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )
    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Credentials
# ============================================================

# Every real provider except local (no OLLAMA_HOST) is credentialed
REAL_ENV: Dict[str, str] = {
    "MODE": "prod",
    "DEEPSEEK_API_KEY": "sk-deepseek-test",
    "GEMINI_API_KEY": "AIza-gemini-test",
    "OPENAI_API_KEY": "sk-openai-test",
    "ANTHROPIC_API_KEY": "anthropic-test",
    "HUGGINGFACE_API_KEY": "hf_test",
    "OPENROUTER_API_KEY": "or-test",
}


@pytest.fixture
def real_env() -> Dict[str, str]:
    return dict(REAL_ENV)


@pytest.fixture
def test_env() -> Dict[str, str]:
    """Real credentials plus the mock provider (MODE=test)."""
    env = dict(REAL_ENV)
    env["MODE"] = "test"
    return env


# ============================================================
# Clock
# ============================================================

class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================
# Scripted Adapter
# ============================================================

class ScriptedAdapter(BaseAdapter):
    """
    Adapter that plays back a script, one entry per call.

    Entries: str (reply text), AdapterReply, an exception instance (raised),
    or an async callable returning either. The last entry repeats once the
    script runs out.
    """

    kind = AdapterKind.MOCK

    def __init__(self, config: AdapterConfig, script: Sequence[Any] = ("ok",)):
        super().__init__(config)
        self.script = list(script)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        index = min(len(self.calls), len(self.script) - 1)
        self.calls.append({"message": message, "history": list(history), "prompt": prompt})
        entry = self.script[index]

        if callable(entry) and not isinstance(entry, BaseException):
            entry = await entry()
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, AdapterReply):
            return entry
        return AdapterReply(text=str(entry), confidence=0.9)

    async def close(self):
        self.closed = True


class AdapterSet:
    """Scripted adapters keyed by provider, created on demand."""

    def __init__(self):
        self.scripts: Dict[str, Sequence[Any]] = {}
        self.adapters: Dict[str, ScriptedAdapter] = {}
        self.built: Dict[str, List[ScriptedAdapter]] = {}
        # When set, every factory call builds a new adapter like the real factory
        self.fresh_builds = False

    def script(self, key: str, *entries: Any):
        self.scripts[key] = entries

    def factory(self, spec: ProviderSpec, config: AdapterConfig) -> BaseAdapter:
        adapter = self.adapters.get(spec.key)
        if adapter is None or self.fresh_builds:
            adapter = ScriptedAdapter(config, self.scripts.get(spec.key, (f"reply from {spec.key}",)))
            self.adapters[spec.key] = adapter
            self.built.setdefault(spec.key, []).append(adapter)
        adapter.config = config
        return adapter

    def calls(self, key: str) -> int:
        adapter = self.adapters.get(key)
        return len(adapter.calls) if adapter else 0


@pytest.fixture
def adapters() -> AdapterSet:
    return AdapterSet()


# ============================================================
# Orchestrator
# ============================================================

@pytest.fixture
def metrics() -> CascadeMetrics:
    return CascadeMetrics(CollectorRegistry())


@pytest.fixture
def make_orchestrator(adapters, clock, metrics) -> Callable[..., CascadeOrchestrator]:
    """
    Build an isolated orchestrator.

    Usage:
        orch = make_orchestrator(env={"MODE": "prod", ...})
    """

    def _make(
        env: Optional[Mapping[str, str]] = None,
        policy: Optional[CascadePolicy] = None,
        specs: Optional[Sequence[ProviderSpec]] = None,
        fallback_order: Optional[Sequence[str]] = None,
    ) -> CascadeOrchestrator:
        env = dict(REAL_ENV) if env is None else env
        policy = policy or CascadePolicy()
        registry = ProviderRegistry(specs=specs, fallback_order=fallback_order, env=env)
        tracker = AvailabilityTracker(registry, policy, clock=clock, metrics=metrics)
        return CascadeOrchestrator(
            registry=registry,
            policy=policy,
            tracker=tracker,
            adapter_factory=adapters.factory,
            metrics=metrics,
            clock=clock,
        )

    return _make


