"""
MultiAI - Agent Router

Persona and message heuristics that propose a starting provider. The
proposal is only a preference: it is used when the provider is available
and otherwise ignored.
"""

import re
from typing import Callable, Dict, List, Optional, Pattern, Protocol, Sequence, Tuple

from ..core.models import Persona
from ..observability.logging import get_logger
from .availability import AvailabilityTracker

logger = get_logger(__name__)

ProviderChangeListener = Callable[[str], None]


class PreselectionStrategy(Protocol):
    """Anything that can propose a provider for a persona and message."""

    def propose(self, persona: Optional[Persona], message: str) -> Optional[str]:
        ...


# (pattern, provider) pairs checked in order; None matches anything
DEFAULT_RULES: Dict[Persona, Sequence[Tuple[Optional[str], str]]] = {
    Persona.PEPPER: (
        (r"explain|how|what|where|when|process|fees|limit", "gemini"),
        (None, "deepseek"),
    ),
    Persona.PENNY: (
        (r"analy[sz]e|calc|optimi[sz]e|plan|budget|rule|percent", "deepseek"),
        (None, "openai"),
    ),
    Persona.SABLE: (
        (r"explain|tfsa|etf|jse|risk|diversif|tax", "gemini"),
        (None, "deepseek"),
    ),
    Persona.NOVA: (
        (r"idea|ideas|side hustle|freelanc|business|marketing|copy|pitch|plan", "openai"),
        (r"roi|profit|cost|calc|break-even|model|analysis|spreadsheet|projection", "deepseek"),
        (None, "gemini"),
    ),
    Persona.ZURI: (
        (None, "gemini"),
    ),
    Persona.KORA: (
        (r"safety|wallet|how|explain|setup|kyc|regulat", "gemini"),
        (None, "deepseek"),
    ),
}


class KeywordPreselection:
    """Regex rules per persona over the lower-cased message."""

    def __init__(self, rules: Optional[Dict[Persona, Sequence[Tuple[Optional[str], str]]]] = None):
        rules = rules if rules is not None else DEFAULT_RULES
        self._rules: Dict[Persona, List[Tuple[Optional[Pattern], str]]] = {
            persona: [(re.compile(pattern) if pattern else None, provider) for pattern, provider in entries]
            for persona, entries in rules.items()
        }

    def propose(self, persona: Optional[Persona], message: str) -> Optional[str]:
        if persona is None:
            return None
        lowered = message.lower()
        for pattern, provider in self._rules.get(persona, ()):
            if pattern is None or pattern.search(lowered):
                return provider
        return None


class AgentRouter:
    """
    Applies a preselection strategy against current availability.

    Listeners hear about every provider change, whether it came from
    preselection, a successful fallback or a manual switch.
    """

    def __init__(
        self,
        tracker: AvailabilityTracker,
        strategy: Optional[PreselectionStrategy] = None,
    ):
        self.tracker = tracker
        self.strategy = strategy or KeywordPreselection()
        self._listeners: List[ProviderChangeListener] = []

    def preselect(self, persona: Optional[Persona], message: str) -> Optional[str]:
        """Proposed provider key if it is available right now, else None."""
        proposal = self.strategy.propose(persona, message)
        if proposal is None:
            return None
        if not self.tracker.is_available(proposal):
            logger.debug("Preselected provider unavailable", proposed=proposal)
            return None
        self.notify_provider_change(proposal)
        return proposal

    def add_listener(self, listener: ProviderChangeListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def notify_provider_change(self, key: str):
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception:
                logger.exception("Provider change listener failed", provider=key)
