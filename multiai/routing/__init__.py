"""
MultiAI Routing Module

Availability windows, persona preselection, attempt planning and the
cascade orchestrator.
"""

from .availability import AvailabilityTracker, AvailabilityWindow, WindowReason
from .cascade import CascadeOrchestrator
from .fallback import CascadeAttempt, CascadeRecord, build_attempt_order
from .preselect import AgentRouter, KeywordPreselection, PreselectionStrategy

__all__ = [
    "AvailabilityTracker",
    "AvailabilityWindow",
    "WindowReason",
    "CascadeOrchestrator",
    "CascadeAttempt",
    "CascadeRecord",
    "build_attempt_order",
    "AgentRouter",
    "KeywordPreselection",
    "PreselectionStrategy",
]
