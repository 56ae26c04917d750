"""Prompt construction for the finance assistant personas."""

from .builder import (
    GENERIC_INTRO,
    PERSONA_INTROS,
    PromptBuilder,
    PromptContext,
    build_message_history,
    build_system_prompt,
    render_transcript,
)

__all__ = [
    "GENERIC_INTRO",
    "PERSONA_INTROS",
    "PromptBuilder",
    "PromptContext",
    "build_message_history",
    "build_system_prompt",
    "render_transcript",
]
