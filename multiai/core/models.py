"""
MultiAI - Core Data Models

Provider descriptors, chat context and the normalized response contract
shared by every provider.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================
# Enums
# ============================================================

class Role(str, Enum):
    """Message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Persona(str, Enum):
    """Assistant personas that shape the prompt and provider routing."""
    PEPPER = "pepper"  # Standard Bank specialist
    PENNY = "penny"    # Budget coach
    SABLE = "sable"    # Savings and investing guide
    ZURI = "zuri"      # Financial educator
    KORA = "kora"      # Crypto and digital payments
    NOVA = "nova"      # Income growth specialist


class ActionType(str, Enum):
    """Follow-up actions a response can hint at."""
    CREATE_BUDGET = "create_budget"
    SET_GOAL = "set_goal"
    TRACK_EXPENSE = "track_expense"
    LEARN_MORE = "learn_more"
    EDUCATE = "educate"


# ============================================================
# Providers
# ============================================================

@dataclass
class Provider:
    """
    Runtime state of one AI backend.

    `available` is written by the registry (credential refresh) and the
    availability tracker (failure windows), always under `lock`.
    """
    key: str
    name: str
    model: str
    base_url: str
    credential_present: bool = False
    available: bool = False
    synthetic: bool = False
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "model": self.model,
            "available": self.available,
        }


# ============================================================
# Chat Context
# ============================================================

@dataclass
class ChatMessage:
    """One prior turn of the conversation."""
    role: Role
    content: str
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content)


@dataclass
class Expense:
    """A recent expense line."""
    amount: float
    category: str
    date: str


@dataclass
class Goal:
    """A savings goal with progress."""
    title: str
    target_amount: float
    current_amount: float

    @property
    def progress_percent(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        return (self.current_amount / self.target_amount) * 100


@dataclass
class FinancialContext:
    """Per-call snapshot of the user's finances and privacy preference."""
    balance: Optional[float] = None
    recent_expenses: List[Expense] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    user_name: Optional[str] = None
    data_sharing_consent: Optional[bool] = None


@dataclass
class SendOptions:
    """Caller options for a single send."""
    persona: Optional[Persona] = None
    temperature: Optional[float] = None

    # Overall budget for the whole cascade (seconds)
    deadline_seconds: Optional[float] = None

    @property
    def effective_temperature(self) -> float:
        return 0.7 if self.temperature is None else self.temperature


# ============================================================
# Normalized Response
# ============================================================

@dataclass(frozen=True)
class ActionHint:
    """Tagged follow-up action."""
    type: ActionType
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type.value}
        if self.data:
            result["data"] = dict(self.data)
        return result


@dataclass(frozen=True)
class ResponseMetadata:
    """Diagnostics attached to every response (for logs, not for display)."""
    timestamp: str
    provider: Optional[str] = None
    model: Optional[str] = None
    response_time_ms: Optional[int] = None
    attempted_providers: tuple = ()
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"timestamp": self.timestamp}
        if self.provider:
            result["provider"] = self.provider
        if self.model:
            result["model"] = self.model
        if self.response_time_ms is not None:
            result["response_time_ms"] = self.response_time_ms
        if self.attempted_providers:
            result["attempted_providers"] = list(self.attempted_providers)
        if self.error:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class NormalizedResponse:
    """The single response contract returned for every send."""
    message: str
    provider: str
    metadata: ResponseMetadata
    suggestions: tuple = ()
    action: Optional[ActionHint] = None
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "message": self.message,
            "provider": self.provider,
            "suggestions": list(self.suggestions),
            "metadata": self.metadata.to_dict(),
        }
        if self.action is not None:
            result["action_required"] = self.action.to_dict()
        if self.confidence is not None:
            result["confidence"] = self.confidence
        return result


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used in response metadata."""
    return datetime.now(timezone.utc).isoformat()
