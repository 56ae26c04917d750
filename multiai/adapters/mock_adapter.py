"""
MultiAI - Mock Provider Adapter

Deterministic in-process adapter for development and tests.
No network calls, no provider keys required. Only registered when the
runtime mode is local or test.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .base import AdapterConfig, AdapterKind, AdapterReply, BaseAdapter
from ..core.models import ActionHint, ActionType, ChatMessage, SendOptions
from ..prompting.builder import PromptContext


MOCK_LABEL = "Mock AI"


@dataclass(frozen=True)
class CannedReply:
    keywords: Tuple[str, ...]
    text: str
    suggestions: Tuple[str, ...]
    confidence: float
    action: Optional[ActionType] = None
    action_data: Dict[str, str] = field(default_factory=dict)


# First keyword match wins
CANNED_REPLIES: List[CannedReply] = [
    CannedReply(
        keywords=("learn", "education", "teach"),
        text=(
            "Great choice! Learning about finance is one of the best investments you can make. "
            "I can help you with budgeting basics, understanding South African banking, investment "
            "options like the JSE, and even cryptocurrency for unbanked users. What specific topic "
            "interests you most?"
        ),
        suggestions=(
            "Start with budgeting fundamentals",
            "Learn about South African financial products",
            "Understand cryptocurrency basics",
        ),
        confidence=0.85,
        action=ActionType.EDUCATE,
        action_data={"topic": "general"},
    ),
    CannedReply(
        keywords=("budget", "spending"),
        text=(
            "Let's create a budget that works for South African conditions! I recommend starting "
            "with the 50/30/20 rule adapted for our economy: 50% for essentials (rent, groceries, "
            "transport), 30% for lifestyle, and 20% for savings and debt repayment. Given "
            "load-shedding and economic challenges, having an emergency fund is crucial!"
        ),
        suggestions=(
            "Track your expenses for a week first",
            "Set up automatic savings transfers",
            "Consider the impact of electricity costs",
        ),
        confidence=0.9,
        action=ActionType.CREATE_BUDGET,
    ),
    CannedReply(
        keywords=("invest", "save"),
        text=(
            "Smart thinking about investments! In South Africa, you have great options: Tax-Free "
            "Savings Accounts (R36,000 annual limit), JSE-listed ETFs for diversification, and even "
            "crypto through regulated platforms. For beginners, I suggest starting with low-cost "
            "index funds that track the JSE Top 40. Remember, time in the market beats timing the "
            "market!"
        ),
        suggestions=(
            "Open a TFSA with a major bank",
            "Research JSE ETFs that track the Top 40",
            "Start with R500/month if possible",
        ),
        confidence=0.88,
        action=ActionType.LEARN_MORE,
        action_data={"topic": "investing"},
    ),
]

DEFAULT_REPLY = CannedReply(
    keywords=(),
    text=(
        "Hi there! I'm BlueBot, your South African financial assistant. I'm here to help you "
        "navigate everything from basic budgeting to understanding local banking, investments, "
        "and even crypto options for unbanked users. What would you like to explore today?"
    ),
    suggestions=(
        "Help me create a monthly budget",
        "Explain South African investment options",
        "Learn about financial basics",
    ),
    confidence=0.8,
)


class MockAdapter(BaseAdapter):
    """Keyword-driven canned replies labelled "Mock AI"."""

    kind = AdapterKind.MOCK
    label = MOCK_LABEL
    default_confidence = 0.8

    def __init__(self, config: AdapterConfig, delay_seconds: float = 0.0):
        super().__init__(config)
        self.delay_seconds = delay_seconds

    async def complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        prompt: PromptContext,
        options: SendOptions
    ) -> AdapterReply:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        reply = self.pick(message)
        action = None
        if reply.action is not None:
            action = ActionHint(type=reply.action, data=dict(reply.action_data))

        return AdapterReply(
            text=reply.text,
            confidence=reply.confidence,
            label=self.label,
            suggestions=list(reply.suggestions),
            action=action,
        )

    @staticmethod
    def pick(message: str) -> CannedReply:
        lowered = message.lower()
        for reply in CANNED_REPLIES:
            if any(keyword in lowered for keyword in reply.keywords):
                return reply
        return DEFAULT_REPLY
