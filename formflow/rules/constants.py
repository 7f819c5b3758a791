"""
Rule language constants.

Single source of truth for operator names and operand prefixes. Used by
the node constructors, the parser and the evaluator dispatch.
"""

from __future__ import annotations


# =============================================================================
# Operators
# =============================================================================

COMPARISON_OPERATORS: frozenset[str] = frozenset({
    "eq", "neq", "gt", "gte", "lt", "lte", "in", "regex",
})

# gt/gte/lt/lte coerce both sides to numbers
ORDERING_OPERATORS: frozenset[str] = frozenset({"gt", "gte", "lt", "lte"})

LOGICAL_OPERATORS: frozenset[str] = frozenset({"and", "or", "not"})

CUSTOM_OPERATOR = "custom"
ALWAYS_OPERATOR = "always"

VALID_OPERATORS: frozenset[str] = (
    COMPARISON_OPERATORS
    | LOGICAL_OPERATORS
    | frozenset({CUSTOM_OPERATOR, ALWAYS_OPERATOR})
)


# =============================================================================
# Operand prefixes
# =============================================================================

# "$.age" resolves against the data snapshot
DATA_PREFIX = "$"

# "@now" resolves against the context map
CONTEXT_PREFIX = "@"


# =============================================================================
# Built-in custom rule function names
# =============================================================================

FN_IS_WEEKDAY = "isWeekday"
FN_HAS_ROLE = "hasRole"
FN_IS_COMPLETE = "isComplete"


__all__ = [
    "COMPARISON_OPERATORS",
    "ORDERING_OPERATORS",
    "LOGICAL_OPERATORS",
    "CUSTOM_OPERATOR",
    "ALWAYS_OPERATOR",
    "VALID_OPERATORS",
    "DATA_PREFIX",
    "CONTEXT_PREFIX",
    "FN_IS_WEEKDAY",
    "FN_HAS_ROLE",
    "FN_IS_COMPLETE",
]
