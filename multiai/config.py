"""
MultiAI - Runtime Configuration

Runtime mode and cascade policy, read from the process environment.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional


class RuntimeMode(str, Enum):
    """Runtime mode."""

    LOCAL = "local"  # Development: synthetic provider enabled
    TEST = "test"    # Deterministic test mode: synthetic provider enabled
    PROD = "prod"    # Real providers only


def get_runtime_mode(env: Optional[Mapping[str, str]] = None) -> RuntimeMode:
    """
    Get the current runtime mode.

    MODE must be one of: local, test, prod/production.

    Default: prod (the synthetic provider stays off unless asked for).
    """
    env = os.environ if env is None else env
    mode = env.get("MODE", "prod").lower().strip()
    if mode in {"prod", "production"}:
        return RuntimeMode.PROD
    if mode == "local":
        return RuntimeMode.LOCAL
    if mode == "test":
        return RuntimeMode.TEST
    raise ValueError("Invalid MODE. Use one of: local, prod, production, test")


def synthetic_enabled(mode: RuntimeMode) -> bool:
    """The mock provider only exists in local and test mode."""
    return mode in {RuntimeMode.LOCAL, RuntimeMode.TEST}


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class CascadePolicy:
    """Tuning constants for the provider cascade."""

    # How long a rate-limited provider sits out (seconds)
    rate_limit_cooldown_seconds: float = 60.0

    # How long a provider returning 5xx sits out (seconds)
    server_error_cooldown_seconds: float = 30.0

    # Longest accepted user message
    max_message_length: int = 5000

    # Per-call adapter timeouts
    default_timeout_seconds: float = 30.0
    local_timeout_seconds: float = 45.0

    # Attempt budget for the locally hosted provider (others get one)
    local_max_attempts: int = 2

    # Prior turns forwarded to chat-style providers
    history_window: int = 10

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "CascadePolicy":
        """Build a policy with MULTIAI_* environment overrides applied."""
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            rate_limit_cooldown_seconds=_float_env(
                env, "MULTIAI_RATE_LIMIT_COOLDOWN", defaults.rate_limit_cooldown_seconds
            ),
            server_error_cooldown_seconds=_float_env(
                env, "MULTIAI_SERVER_ERROR_COOLDOWN", defaults.server_error_cooldown_seconds
            ),
            max_message_length=_int_env(
                env, "MULTIAI_MAX_MESSAGE_LENGTH", defaults.max_message_length
            ),
            default_timeout_seconds=_float_env(
                env, "MULTIAI_DEFAULT_TIMEOUT", defaults.default_timeout_seconds
            ),
            local_timeout_seconds=_float_env(
                env, "MULTIAI_LOCAL_TIMEOUT", defaults.local_timeout_seconds
            ),
            local_max_attempts=_int_env(
                env, "MULTIAI_LOCAL_MAX_ATTEMPTS", defaults.local_max_attempts
            ),
            history_window=_int_env(
                env, "MULTIAI_HISTORY_WINDOW", defaults.history_window
            ),
        )
