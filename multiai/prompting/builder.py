"""Prompt assembly for the finance assistant.

Builds the system prompt from a persona, an optional financial snapshot and
the user's data-sharing preference. Provider selection, retries and model
invocation happen elsewhere.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering: intro, guardrails, privacy note, user context.
    - No I/O, no global state mutation.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..core.models import ChatMessage, FinancialContext, Persona, Role


# =========================================================
# PERSONA INTRODUCTIONS
# =========================================================
# Exactly one intro opens every prompt. Unknown or missing persona falls
# back to GENERIC_INTRO.

PERSONA_INTROS: Dict[Persona, str] = {
    Persona.PEPPER: (
        "You are Pepper, a Standard Bank specialist. Answer questions about "
        "Standard Bank products, accounts, cards, loans, fees and processes. "
        "Prefer Standard Bank options and add short disclaimers. Keep answers "
        "concise and specific to South Africa."
    ),
    Persona.PENNY: (
        "You are Penny, a budgeting coach. Focus on budgets, envelopes, "
        "spending control and habit-building with actionable steps for South "
        "African users."
    ),
    Persona.SABLE: (
        "You are Sable, a savings and investing guide. Explain TFSAs, ETFs on "
        "the JSE, retirement annuities and risk basics. Educational, not advice."
    ),
    Persona.ZURI: (
        "You are Zuri, a financial educator. Explain concepts like credit "
        "scores, interest, inflation, POPIA and the NCA. Short, structured "
        "lessons with module suggestions."
    ),
    Persona.KORA: (
        "You are Kora, a crypto and digital payments assistant. Help with "
        "wallets, safety, South African exchanges and underbanked-friendly "
        "options. Always include security reminders."
    ),
    Persona.NOVA: (
        "You are Nova, an investing and income growth specialist. Focus on "
        "legal ways to grow income in South Africa: diversified investing, side "
        "hustles and freelancing, SARS tax considerations, consumer protection "
        "(POPIA/NCA) and risk awareness. Give practical, compliant guidance with "
        "quick next steps."
    ),
}

GENERIC_INTRO = (
    "You are BlueBot, a helpful financial assistant designed for South African "
    "users. You provide practical, actionable financial advice tailored to the "
    "South African context."
)


# =========================================================
# GUARDRAILS
# =========================================================
# Appended verbatim after the intro for every persona.

GUARDRAILS = """Key guidelines:
- Use South African terminology (Rand, ZAR, SARB, POPIA, SARS, JSE, etc.)
- Reference South African financial institutions (Standard Bank, FNB, Capitec, Nedbank, etc.)
- Consider local economic conditions (load-shedding, interest rates, inflation)
- Promote financial literacy and responsible spending
- Be empathetic to users who may be unbanked or have limited financial access
- Provide advice that considers South African laws and regulations
- Focus on practical, achievable financial goals

You help users with:
- Budgeting and expense tracking adapted to SA conditions
- Savings goals and local investment strategies
- Understanding South African banking and financial products
- Cryptocurrency and digital payments for unbanked users
- Financial education with local examples
- Tax-efficient investing (TFSA, retirement annuities)
- Debt management under the National Credit Act

Always be encouraging, supportive, and provide specific, actionable advice relevant to South Africa."""

PRIVACY_NOTE = (
    "\n- The user does not consent to data being used for model training. "
    "Do not include personally identifying details and avoid storing or "
    "reusing content beyond this session."
)

MAX_CONTEXT_EXPENSES = 3
MAX_CONTEXT_GOALS = 2


@dataclass(frozen=True)
class PromptContext:
    """Prompt material handed to every adapter for one send."""
    system_prompt: str
    history_window: int = 10

    def recent_history(self, history: Sequence[ChatMessage]) -> List[ChatMessage]:
        if self.history_window <= 0:
            return []
        return list(history)[-self.history_window:]


def _money(amount: float) -> str:
    return f"R{amount:.2f}"


def render_financial_context(context: FinancialContext) -> str:
    """Compact rendering of balance, expenses and goal progress."""
    lines = ["", "", "Current user context:"]

    if context.balance is not None:
        lines.append(f"- Current balance: {_money(context.balance)}")

    if context.recent_expenses:
        lines.append("- Recent expenses:")
        for expense in context.recent_expenses[:MAX_CONTEXT_EXPENSES]:
            lines.append(f"  • {_money(expense.amount)} on {expense.category} ({expense.date})")

    if context.goals:
        lines.append("- Financial goals:")
        for goal in context.goals[:MAX_CONTEXT_GOALS]:
            lines.append(
                f"  • {goal.title}: {_money(goal.current_amount)} / "
                f"{_money(goal.target_amount)} ({goal.progress_percent:.1f}%)"
            )

    return "\n".join(lines)


def build_system_prompt(
    persona: Optional[Persona] = None,
    context: Optional[FinancialContext] = None
) -> str:
    """Build the system prompt for a persona and optional user context.

    Args:
        persona: Assistant persona; None selects the generic assistant.
        context: Financial snapshot and privacy preference for this call.

    Returns:
        The complete system prompt text.
    """
    intro = PERSONA_INTROS.get(persona, GENERIC_INTRO) if persona else GENERIC_INTRO
    prompt = f"{intro}\n\n{GUARDRAILS}"

    if context is None:
        return prompt

    # Only an explicit refusal triggers the note; unknown consent does not.
    if context.data_sharing_consent is False:
        prompt += PRIVACY_NOTE

    return prompt + render_financial_context(context)


def build_message_history(
    system_prompt: str,
    history: Sequence[ChatMessage],
    current_message: str,
    window: int = 10
) -> List[Dict[str, str]]:
    """Chat-completions style message list: system, recent turns, user."""
    messages = [{"role": Role.SYSTEM.value, "content": system_prompt}]
    recent = list(history)[-window:] if window > 0 else []
    for msg in recent:
        role = msg.role.value if isinstance(msg.role, Role) else str(msg.role)
        messages.append({"role": role, "content": msg.content})
    messages.append({"role": Role.USER.value, "content": current_message})
    return messages


def render_transcript(
    history: Sequence[ChatMessage],
    user_label: str = "User",
    assistant_label: str = "Assistant"
) -> str:
    """Plain-text transcript for completion-style providers."""
    return "\n".join(
        f"{user_label if msg.role == Role.USER else assistant_label}: {msg.content}"
        for msg in history
    )


class PromptBuilder:
    """Injectable wrapper so the cascade can take a custom prompt policy."""

    def __init__(self, history_window: int = 10):
        self.history_window = history_window

    def build(
        self,
        persona: Optional[Persona] = None,
        context: Optional[FinancialContext] = None
    ) -> str:
        return build_system_prompt(persona, context)

    def prompt_context(
        self,
        persona: Optional[Persona] = None,
        context: Optional[FinancialContext] = None
    ) -> PromptContext:
        return PromptContext(
            system_prompt=self.build(persona, context),
            history_window=self.history_window,
        )
