"""
Operand resolution for rule comparisons.

An operand is one of:
- a data reference: string starting with "$" ("$.applicant.age"), walked
  key by key through the data snapshot; any missing segment is None
- a context reference: string starting with "@" ("@now"), looked up in the
  caller's context first, then in a small fixed map
- anything else: a literal, returned unchanged
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from ..utils.paths import get_value
from .constants import CONTEXT_PREFIX, DATA_PREFIX


class OperandKind(str, Enum):
    """How an operand is resolved."""

    DATA = "data"
    CONTEXT = "context"
    LITERAL = "literal"


def classify_operand(operand: Any) -> OperandKind:
    """Classify an operand without resolving it."""
    if isinstance(operand, str):
        if operand.startswith(DATA_PREFIX):
            return OperandKind.DATA
        if operand.startswith(CONTEXT_PREFIX):
            return OperandKind.CONTEXT
    return OperandKind.LITERAL


def default_context_values(environment: str) -> dict[str, Any]:
    """The fixed context map consulted when the caller does not supply a key."""
    now = datetime.now(timezone.utc)
    return {
        "@now": now,
        "@today": now.date().isoformat(),
        "@env": environment,
    }


def resolve_data_ref(path: str, data: Any) -> Any:
    """Resolve a "$" reference; None when missing or unparseable."""
    try:
        return get_value(data, path)
    except ValueError:
        return None


def resolve_context_ref(
    name: str,
    context: Optional[Mapping[str, Any]],
    environment: str,
) -> Any:
    """
    Resolve an "@" reference.

    The caller's context wins. Both "@key" and "key" spellings are looked up
    so {"stepId": "intro"} answers "@stepId".
    """
    if context:
        if name in context:
            return context[name]
        bare = name[len(CONTEXT_PREFIX):]
        if bare in context:
            return context[bare]
    return default_context_values(environment).get(name)


def resolve_operand(
    operand: Any,
    data: Any,
    context: Optional[Mapping[str, Any]],
    environment: str = "production",
) -> Any:
    """Resolve any operand to its value."""
    kind = classify_operand(operand)
    if kind is OperandKind.DATA:
        return resolve_data_ref(operand, data)
    if kind is OperandKind.CONTEXT:
        return resolve_context_ref(operand, context, environment)
    return operand


__all__ = [
    "OperandKind",
    "classify_operand",
    "default_context_values",
    "resolve_data_ref",
    "resolve_context_ref",
    "resolve_operand",
]
