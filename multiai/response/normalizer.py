"""
MultiAI - Response Normalizer

Turns raw provider text into the shared response fragment:
- action hint (first matching rule wins, fixed priority)
- up to 3 suggestions (advisory lead-ins, else actionable sentences)
- research disclaimer footer, attached exactly once

The rules are plain data and callables so they can be replaced
(e.g. by a trained classifier) without touching the cascade.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ..core.models import ActionHint, ActionType


DISCLAIMER_FOOTER = (
    "\n\nNote: Always do your own research and verify with official sources. "
    "If I do not know, I will say so."
)
DISCLAIMER_MARKER = "always do your own research"

MAX_SUGGESTIONS = 3
MIN_SUGGESTION_LENGTH = 10
SENTENCE_SCAN_LIMIT = 4


@dataclass(frozen=True)
class ActionRule:
    """Lower-cased text predicate that maps to an action type."""
    action: ActionType
    any_of: Sequence[str] = ()
    all_of: Sequence[str] = ()

    def matches(self, lowered: str) -> bool:
        if self.all_of and not all(phrase in lowered for phrase in self.all_of):
            return False
        if self.any_of and not any(phrase in lowered for phrase in self.any_of):
            return False
        return bool(self.any_of or self.all_of)


# Checked in order; first match wins.
DEFAULT_ACTION_RULES: List[ActionRule] = [
    ActionRule(ActionType.CREATE_BUDGET, any_of=("create a budget", "set up a budget")),
    ActionRule(ActionType.SET_GOAL, any_of=("set a goal", "savings goal")),
    ActionRule(ActionType.TRACK_EXPENSE, all_of=("track", "expense")),
    ActionRule(ActionType.EDUCATE, any_of=("learn more", "educational", "teach")),
]

SUGGESTION_PATTERNS = [
    re.compile(r"\b(?:I suggest|I recommend|You could|Try to|Consider)([^.!?]+)", re.IGNORECASE),
    re.compile(r"\b(?:Maybe|Perhaps|You might want to)([^.!?]+)", re.IGNORECASE),
]

LEAD_IN = re.compile(
    r"^(?:I suggest|I recommend|You could|Try to|Consider|Maybe|Perhaps|You might want to)\s*",
    re.IGNORECASE,
)

ACTION_VERBS = re.compile(
    r"\b(?:start|create|open|set up|track|reduce|save|invest|review|set|build)\b",
    re.IGNORECASE,
)

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class NormalizedFragment:
    """Provider-independent part of a response."""
    message: str
    suggestions: tuple = ()
    action: Optional[ActionHint] = None


def detect_action(text: str, rules: Sequence[ActionRule] = DEFAULT_ACTION_RULES) -> Optional[ActionHint]:
    """Return the first matching action, or None."""
    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            return ActionHint(type=rule.action)
    return None


def extract_suggestions(text: str) -> List[str]:
    """Pull advisory phrases, falling back to actionable sentences."""
    suggestions: List[str] = []
    for pattern in SUGGESTION_PATTERNS:
        for match in pattern.finditer(text):
            cleaned = LEAD_IN.sub("", match.group(0)).strip()
            if len(cleaned) > MIN_SUGGESTION_LENGTH:
                suggestions.append(cleaned)

    if suggestions:
        return suggestions[:MAX_SUGGESTIONS]

    sentences = SENTENCE_SPLIT.split(text)[:SENTENCE_SCAN_LIMIT]
    actionable = [s.strip() for s in sentences if ACTION_VERBS.search(s)]
    return actionable[:MAX_SUGGESTIONS]


def with_disclaimer(text: str) -> str:
    """Append the research footer unless an equivalent is already present."""
    if DISCLAIMER_MARKER in text.lower():
        return text
    return f"{text}{DISCLAIMER_FOOTER}"


class ResponseNormalizer:
    """
    Configurable normalizer.

    Usage:
        normalizer = ResponseNormalizer()
        fragment = normalizer.normalize(raw_text)
    """

    def __init__(
        self,
        action_rules: Optional[Sequence[ActionRule]] = None,
        suggestion_extractor: Optional[Callable[[str], List[str]]] = None,
    ):
        self.action_rules = list(action_rules) if action_rules is not None else list(DEFAULT_ACTION_RULES)
        self.suggestion_extractor = suggestion_extractor or extract_suggestions

    def normalize(self, raw_text: str) -> NormalizedFragment:
        """Normalize raw provider text. Only the footer is ever added."""
        action = detect_action(raw_text, self.action_rules)
        suggestions = self.suggestion_extractor(raw_text)[:MAX_SUGGESTIONS]
        return NormalizedFragment(
            message=with_disclaimer(raw_text),
            suggestions=tuple(suggestions),
            action=action,
        )


_default_normalizer = ResponseNormalizer()


def normalize(raw_text: str) -> NormalizedFragment:
    """Normalize with the default rules."""
    return _default_normalizer.normalize(raw_text)
