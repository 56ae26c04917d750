"""Response normalization: action hints, suggestions and the disclaimer footer."""

from .normalizer import (
    DEFAULT_ACTION_RULES,
    DISCLAIMER_FOOTER,
    ActionRule,
    NormalizedFragment,
    ResponseNormalizer,
    detect_action,
    extract_suggestions,
    normalize,
    with_disclaimer,
)

__all__ = [
    "DEFAULT_ACTION_RULES",
    "DISCLAIMER_FOOTER",
    "ActionRule",
    "NormalizedFragment",
    "ResponseNormalizer",
    "detect_action",
    "extract_suggestions",
    "normalize",
    "with_disclaimer",
]
