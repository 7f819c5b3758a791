"""
Rule Parser: schema documents to Rule nodes.

Accepts the rule vocabulary used inside form schemas:

```yaml
visibleWhen:
  op: and
  args:
    - {op: gte, left: $.age, right: 18}
    - {op: custom, fn: hasRole, args: [broker]}
    - op: not
      args:
        - {op: eq, left: $.country, right: US}
```

Usage:
    rule = parse_rule(step_dict["visibleWhen"])
    rule = coerce_rule(maybe_dict_or_rule_or_none)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from ..errors import RuleParseError
from .constants import (
    ALWAYS_OPERATOR,
    COMPARISON_OPERATORS,
    CUSTOM_OPERATOR,
    LOGICAL_OPERATORS,
    VALID_OPERATORS,
)
from .nodes import Always, Comparison, Custom, Logical, Rule, is_rule


def parse_rule(data: Any, _path: str = "rule") -> Rule:
    """
    Parse a rule document into a Rule node.

    Args:
        data: Mapping with an "op" key (or an existing Rule, returned as-is)

    Returns:
        Comparison, Logical, Custom or Always node

    Raises:
        RuleParseError: If the document is not a valid rule
    """
    if is_rule(data):
        return data

    if not isinstance(data, Mapping):
        raise RuleParseError(
            f"{_path}: expected a mapping with an 'op' key, got {type(data).__name__}"
        )

    op = data.get("op")
    if not isinstance(op, str):
        raise RuleParseError(f"{_path}: missing or non-string 'op'")
    if op not in VALID_OPERATORS:
        raise RuleParseError(
            f"{_path}: unknown operator '{op}'. Valid operators: {sorted(VALID_OPERATORS)}"
        )

    if op in COMPARISON_OPERATORS:
        if "left" not in data:
            raise RuleParseError(f"{_path}: comparison '{op}' requires 'left'")
        return Comparison(op=op, left=data["left"], right=data.get("right"))

    if op in LOGICAL_OPERATORS:
        raw_args = data.get("args", [])
        if not isinstance(raw_args, (list, tuple)):
            raise RuleParseError(f"{_path}: '{op}' args must be a list")
        if op == "not" and len(raw_args) > 1:
            raise RuleParseError(
                f"{_path}: 'not' takes exactly one argument, got {len(raw_args)}"
            )
        children = tuple(
            parse_rule(child, f"{_path}.args[{i}]") for i, child in enumerate(raw_args)
        )
        return Logical(op=op, args=children)

    if op == CUSTOM_OPERATOR:
        fn = data.get("fn")
        if not isinstance(fn, str) or not fn:
            raise RuleParseError(f"{_path}: custom rule requires a non-empty 'fn'")
        raw_args = data.get("args") or []
        if not isinstance(raw_args, (list, tuple)):
            raise RuleParseError(f"{_path}: custom rule args must be a list")
        return Custom(fn=fn, args=tuple(raw_args))

    # ALWAYS_OPERATOR
    value = data.get("value", True)
    if not isinstance(value, bool):
        raise RuleParseError(f"{_path}: '{ALWAYS_OPERATOR}' value must be a boolean")
    return Always(value=value)


def coerce_rule(data: Any, _path: str = "rule") -> Optional[Rule]:
    """Like parse_rule(), but None stays None (meaning "no rule")."""
    if data is None:
        return None
    return parse_rule(data, _path)


__all__ = [
    "parse_rule",
    "coerce_rule",
]
