"""
MultiAI - API Request/Response Models

Pydantic models for API validation and serialization.
These are the external-facing models that clients interact with.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.models import (
    ChatMessage,
    Expense,
    FinancialContext,
    Goal,
    Role,
    SendOptions,
)


class HistoryRoleEnum(str, Enum):
    """Roles allowed in conversation history."""
    USER = "user"
    ASSISTANT = "assistant"


# ============================================================
# Request Models
# ============================================================

class HistoryMessage(BaseModel):
    """One prior conversation turn."""
    role: HistoryRoleEnum
    content: str


class ExpenseInput(BaseModel):
    amount: float
    category: str
    date: str


class GoalInput(BaseModel):
    title: str
    target_amount: float = Field(..., ge=0)
    current_amount: float = Field(0.0, ge=0)


class FinancialContextInput(BaseModel):
    """Financial snapshot supplied by the caller."""
    balance: Optional[float] = None
    recent_expenses: List[ExpenseInput] = Field(default_factory=list)
    goals: List[GoalInput] = Field(default_factory=list)
    user_name: Optional[str] = None
    data_sharing_consent: Optional[bool] = None

    def to_internal(self) -> FinancialContext:
        return FinancialContext(
            balance=self.balance,
            recent_expenses=[Expense(e.amount, e.category, e.date) for e in self.recent_expenses],
            goals=[Goal(g.title, g.target_amount, g.current_amount) for g in self.goals],
            user_name=self.user_name,
            data_sharing_consent=self.data_sharing_consent,
        )


class ChatRequest(BaseModel):
    """
    Chat request.

    Message length is checked by the orchestrator so every validation
    failure shares one error shape.
    """
    message: str
    history: List[HistoryMessage] = Field(default_factory=list)
    persona: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    deadline_seconds: Optional[float] = Field(None, gt=0)
    context: Optional[FinancialContextInput] = None

    def to_history(self) -> List[ChatMessage]:
        return [ChatMessage(role=Role(m.role.value), content=m.content) for m in self.history]

    def to_options(self) -> SendOptions:
        return SendOptions(
            persona=self.persona,
            temperature=self.temperature,
            deadline_seconds=self.deadline_seconds,
        )


# ============================================================
# Response Models
# ============================================================

class ActionOutput(BaseModel):
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ChatResponse(BaseModel):
    """Normalized response as returned over HTTP."""
    message: str
    provider: str
    suggestions: List[str] = Field(default_factory=list)
    action_required: Optional[ActionOutput] = None
    confidence: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class WindowOutput(BaseModel):
    reason: str
    permanent: bool
    remaining_seconds: Optional[float] = None


class ProviderOutput(BaseModel):
    key: str
    name: str
    model: str
    available: bool
    current: bool = False
    window: Optional[WindowOutput] = None


class ProviderListResponse(BaseModel):
    current_provider: Optional[str] = None
    current_provider_name: str = "Unknown"
    providers: List[ProviderOutput]


class ProviderSelectResponse(BaseModel):
    current_provider: str
    current_provider_name: str
