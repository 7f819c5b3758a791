"""
Rule node types.

A rule is a closed tagged union of frozen dataclasses:
- Comparison: op in {eq, neq, gt, gte, lt, lte, in, regex} over two operands
- Logical: and / or / not over child rules
- Custom: call to a host-registered predicate by name
- Always: constant truth value (true unless overridden)

Rules are data. They are built declaratively (parse_rule() or RuleBuilder),
never by running code at evaluation time, and serialize back to the schema
vocabulary via to_dict().
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from .constants import (
    ALWAYS_OPERATOR,
    COMPARISON_OPERATORS,
    CUSTOM_OPERATOR,
    LOGICAL_OPERATORS,
)


def freeze_literal(value: Any) -> Any:
    """Convert list literals to tuples."""
    if isinstance(value, list):
        return tuple(freeze_literal(v) for v in value)
    return value


def _thaw_literal(value: Any) -> Any:
    if isinstance(value, re.Pattern):
        return value.pattern
    if isinstance(value, tuple):
        return [_thaw_literal(v) for v in value]
    return value


# =============================================================================
# Rule Nodes
# =============================================================================

@dataclass(frozen=True)
class Comparison:
    """
    Compare two operands.

    Operands are literals, data references ("$.applicant.age") or context
    references ("@now").

    Examples:
        Comparison("eq", "$.country", "GB")
        Comparison("gte", "$.age", 18)
        Comparison("in", "$.plan", ("basic", "pro"))
        Comparison("regex", "$.postcode", r"^[A-Z]{1,2}\\d")
    """
    op: str
    left: Any
    right: Any = None

    def __post_init__(self):
        if self.op not in COMPARISON_OPERATORS:
            raise ValueError(
                f"Comparison: unknown operator '{self.op}'. "
                f"Valid operators: {sorted(COMPARISON_OPERATORS)}"
            )
        object.__setattr__(self, "left", freeze_literal(self.left))
        object.__setattr__(self, "right", freeze_literal(self.right))

    def to_dict(self) -> dict:
        return {"op": self.op, "left": _thaw_literal(self.left), "right": _thaw_literal(self.right)}

    def __repr__(self) -> str:
        return f"Cmp({self.left!r} {self.op} {self.right!r})"


@dataclass(frozen=True)
class Logical:
    """
    Boolean combination of child rules.

    Semantics:
        and: all children true (vacuously true when empty), short-circuit
        or:  any child true (false when empty), short-circuit
        not: inverts its single child; no child at all evaluates to true
    """
    op: str
    args: tuple["Rule", ...] = ()

    def __post_init__(self):
        if self.op not in LOGICAL_OPERATORS:
            raise ValueError(
                f"Logical: unknown operator '{self.op}'. "
                f"Valid operators: {sorted(LOGICAL_OPERATORS)}"
            )
        object.__setattr__(self, "args", tuple(self.args))
        if self.op == "not" and len(self.args) > 1:
            raise ValueError(
                f"Logical: 'not' takes exactly one argument, got {len(self.args)}"
            )

    def to_dict(self) -> dict:
        return {"op": self.op, "args": [child.to_dict() for child in self.args]}

    def __repr__(self) -> str:
        children = ", ".join(repr(c) for c in self.args)
        return f"{self.op.capitalize()}({children})"


@dataclass(frozen=True)
class Custom:
    """
    Call a named predicate registered with the evaluator.

    The function receives (data, args, context) and returns a bool.
    An unregistered name is a configuration error, not a silent false.
    """
    fn: str
    args: tuple[Any, ...] = ()

    def __post_init__(self):
        if not self.fn or not isinstance(self.fn, str):
            raise ValueError("Custom: fn must be a non-empty string")
        object.__setattr__(self, "args", freeze_literal(list(self.args)))

    def to_dict(self) -> dict:
        return {"op": CUSTOM_OPERATOR, "fn": self.fn, "args": _thaw_literal(self.args)}

    def __repr__(self) -> str:
        return f"Custom({self.fn!r}, {list(self.args)!r})"


@dataclass(frozen=True)
class Always:
    """Constant rule. True unless value says otherwise."""
    value: bool = True

    def to_dict(self) -> dict:
        return {"op": ALWAYS_OPERATOR, "value": self.value}

    def __repr__(self) -> str:
        return f"Always({self.value})"


Rule = Union[Comparison, Logical, Custom, Always]

RULE_TYPES = (Comparison, Logical, Custom, Always)


def is_rule(value: Any) -> bool:
    """Whether value is one of the rule node types."""
    return isinstance(value, RULE_TYPES)


__all__ = [
    "Comparison",
    "Logical",
    "Custom",
    "Always",
    "Rule",
    "RULE_TYPES",
    "is_rule",
    "freeze_literal",
]
