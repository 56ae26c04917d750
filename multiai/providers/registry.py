"""
MultiAI - Provider Registry

Data-driven table of AI backends. Adding a provider is one ProviderSpec
row plus an adapter kind; nothing else in the cascade changes.

Availability is re-derived from the environment on every refresh, except
for providers held down by an availability window (the tracker installs
that check as the window guard).
"""

import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..adapters.base import AdapterConfig, AdapterKind
from ..config import RuntimeMode, get_runtime_mode, synthetic_enabled
from ..core.models import Provider
from ..observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    """Static descriptor for one backend."""
    key: str
    name: str
    model: str
    base_url: str
    kind: AdapterKind

    # Environment overrides
    model_env: Optional[str] = None
    base_url_env: Optional[str] = None

    # First non-empty variable wins; empty tuple means no credential needed
    credential_env: Tuple[str, ...] = ()
    credential_prefix: str = ""

    # None falls back to CascadePolicy defaults
    timeout_seconds: Optional[float] = None
    max_attempts: Optional[int] = None

    synthetic: bool = False
    confidence: float = 0.9


# ============================================================
# Default Provider Table
# ============================================================

DEFAULT_PROVIDERS: List[ProviderSpec] = [
    ProviderSpec(
        key="claude",
        name="Claude",
        model="anthropic.claude-opus-4-1-20250805-v1:0",
        model_env="ANTHROPIC_MODEL_ID",
        base_url="https://api.anthropic.com/v1",
        kind=AdapterKind.ANTHROPIC,
        credential_env=("ANTHROPIC_API_KEY",),
        confidence=0.92,
    ),
    ProviderSpec(
        key="deepseek",
        name="DeepSeek",
        model="deepseek-chat",
        model_env="DEEPSEEK_MODEL",
        base_url="https://api.deepseek.com/v1",
        kind=AdapterKind.OPENAI_COMPATIBLE,
        credential_env=("DEEPSEEK_API_KEY",),
        credential_prefix="sk-",
    ),
    ProviderSpec(
        key="gemini",
        name="Google Gemini",
        model="gemini-1.5-flash",
        model_env="GEMINI_MODEL",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        kind=AdapterKind.GEMINI,
        credential_env=("GEMINI_API_KEY", "GOOGLE_AI_API_KEY"),
        credential_prefix="AIza",
    ),
    ProviderSpec(
        key="openai",
        name="OpenAI",
        model="gpt-4o-mini",
        model_env="OPENAI_MODEL",
        base_url="https://api.openai.com/v1",
        kind=AdapterKind.OPENAI_COMPATIBLE,
        credential_env=("OPENAI_API_KEY",),
        credential_prefix="sk-",
        confidence=0.95,
    ),
    ProviderSpec(
        key="local",
        name="Local Llama",
        model="llama3.2:3b",
        model_env="OLLAMA_MODEL",
        base_url="http://localhost:11434/api",
        base_url_env="OLLAMA_HOST",
        kind=AdapterKind.OLLAMA,
        confidence=0.85,
    ),
    ProviderSpec(
        key="huggingface-gpt-oss",
        name="Hugging Face (Zephyr)",
        model="HuggingFaceH4/zephyr-7b-beta",
        model_env="HF_GPT_OSS_MODEL",
        base_url="https://api-inference.huggingface.co/models",
        kind=AdapterKind.HUGGINGFACE,
        credential_env=("HUGGINGFACE_API_KEY", "HF_TOKEN"),
        credential_prefix="hf_",
        confidence=0.8,
    ),
    ProviderSpec(
        key="huggingface-llama",
        name="Hugging Face (Llama)",
        model="meta-llama/Llama-3.2-3B-Instruct",
        model_env="HF_LLAMA_MODEL",
        base_url="https://api-inference.huggingface.co/models",
        kind=AdapterKind.HUGGINGFACE,
        credential_env=("HUGGINGFACE_API_KEY", "HF_TOKEN"),
        credential_prefix="hf_",
        confidence=0.8,
    ),
    ProviderSpec(
        key="openrouter",
        name="OpenRouter",
        model="openrouter-gpt-4",
        model_env="OPENROUTER_MODEL",
        base_url="https://openrouter.ai/api/v1",
        kind=AdapterKind.OPENAI_COMPATIBLE,
        credential_env=("OPENROUTER_API_KEY",),
    ),
    ProviderSpec(
        key="mock",
        name="Mock AI",
        model="mock",
        base_url="",
        kind=AdapterKind.MOCK,
        synthetic=True,
        confidence=0.8,
    ),
]

DEFAULT_FALLBACK_ORDER: Tuple[str, ...] = (
    "deepseek",
    "gemini",
    "openai",
    "claude",
    "huggingface-gpt-oss",
    "huggingface-llama",
    "openrouter",
    "local",
    "mock",
)


WindowGuard = Callable[[str], bool]


class ProviderRegistry:
    """
    Owns the Provider records.

    Usage:
        registry = ProviderRegistry(env={"GEMINI_API_KEY": "AIza..."})
        registry.refresh_availability()
        [p.key for p in registry.list_providers() if p.available]
    """

    def __init__(
        self,
        specs: Optional[Sequence[ProviderSpec]] = None,
        fallback_order: Optional[Sequence[str]] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        specs = list(specs) if specs is not None else list(DEFAULT_PROVIDERS)
        self._specs: Dict[str, ProviderSpec] = {spec.key: spec for spec in specs}
        self._env: Mapping[str, str] = os.environ if env is None else env
        self._window_guard: Optional[WindowGuard] = None

        order = list(fallback_order) if fallback_order is not None else list(DEFAULT_FALLBACK_ORDER)
        unknown = [key for key in order if key not in self._specs]
        if unknown:
            raise ValueError(f"Fallback order names unknown providers: {unknown}")
        self._fallback_order: Tuple[str, ...] = tuple(order)

        self._providers: Dict[str, Provider] = {
            spec.key: Provider(
                key=spec.key,
                name=spec.name,
                model=spec.model,
                base_url=spec.base_url,
                synthetic=spec.synthetic,
            )
            for spec in specs
        }
        self.refresh_availability()

    # ============================================================
    # Lookup
    # ============================================================

    def list_providers(self) -> List[Provider]:
        return list(self._providers.values())

    def get(self, key: str) -> Optional[Provider]:
        return self._providers.get(key)

    def spec(self, key: str) -> Optional[ProviderSpec]:
        return self._specs.get(key)

    @property
    def fallback_order(self) -> Tuple[str, ...]:
        return self._fallback_order

    @property
    def synthetic_keys(self) -> Tuple[str, ...]:
        return tuple(key for key, spec in self._specs.items() if spec.synthetic)

    @property
    def mode(self) -> RuntimeMode:
        """Runtime mode from the registry's environment (invalid MODE means prod)."""
        try:
            return get_runtime_mode(self._env)
        except ValueError:
            logger.warning("Invalid MODE, treating as prod", mode=self._env.get("MODE"))
            return RuntimeMode.PROD

    # ============================================================
    # Credentials
    # ============================================================

    def credential(self, key: str) -> str:
        """Current credential value for a provider, or empty string."""
        spec = self._specs.get(key)
        if spec is None:
            return ""
        for name in spec.credential_env:
            value = self._env.get(name, "").strip()
            if value:
                return value
        return ""

    def _has_credential(self, spec: ProviderSpec) -> bool:
        if spec.synthetic:
            return synthetic_enabled(self.mode)

        if spec.kind == AdapterKind.OLLAMA:
            return bool(spec.base_url_env and self._env.get(spec.base_url_env, "").strip())

        value = self.credential(spec.key)
        if not value:
            return False
        return value.startswith(spec.credential_prefix)

    def _resolve(self, spec: ProviderSpec) -> Tuple[str, str]:
        model = (self._env.get(spec.model_env, "").strip() if spec.model_env else "") or spec.model
        base_url = spec.base_url
        if spec.base_url_env:
            override = self._env.get(spec.base_url_env, "").strip().rstrip("/")
            if override:
                base_url = override if override.endswith("/api") else f"{override}/api"
        return model, base_url

    def adapter_config(self, key: str, timeout: float) -> AdapterConfig:
        """Adapter settings from the current environment."""
        spec = self._specs[key]
        model, base_url = self._resolve(spec)
        return AdapterConfig(
            provider_key=key,
            model=model,
            api_key=self.credential(key),
            base_url=base_url or None,
            timeout=timeout,
        )

    # ============================================================
    # Availability
    # ============================================================

    def set_window_guard(self, guard: Optional[WindowGuard]):
        """Install the check that keeps windowed providers unavailable."""
        self._window_guard = guard

    def refresh_availability(self):
        """Re-derive credential presence and availability for every provider."""
        for key, provider in self._providers.items():
            spec = self._specs[key]
            model, base_url = self._resolve(spec)
            present = self._has_credential(spec)
            held = self._window_guard(key) if self._window_guard else False
            with provider.lock:
                provider.model = model
                provider.base_url = base_url
                provider.credential_present = present
                provider.available = present and not held

    def reload(self, env: Optional[Mapping[str, str]] = None):
        """Re-read the environment (optionally swapping the mapping) and refresh."""
        if env is not None:
            self._env = env
        self.refresh_availability()
        logger.info(
            "Provider configuration reloaded",
            available=[p.key for p in self._providers.values() if p.available],
        )
