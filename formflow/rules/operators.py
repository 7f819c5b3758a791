"""
Comparison operator semantics.

Design principles:
- A missing (None) left operand never satisfies eq, neq or an ordering
  comparison. Absent fields must not slip into "not equal" branches.
- eq/neq are strict: no cross-type coercion, True is not 1, "1" is not 1.
- Ordering operators coerce both sides to numbers; dates and datetimes
  become epoch milliseconds, naive ones read as UTC. Two strings that are
  not numbers are tried as ISO dates. Anything that will not coerce
  compares false.
- 'in' needs a real collection on the right; a scalar is a RuleTypeError.
- 'regex' needs a string on the left (otherwise false) and searches with a
  case-respecting pattern.
"""

from __future__ import annotations

import math
import operator
import re
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional

from ..errors import RuleTypeError


_ORDERING: dict[str, Callable[[float, float], bool]] = {
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def is_missing(value: Any) -> bool:
    """None (absent or explicit null) counts as missing."""
    return value is None


def strict_equal(left: Any, right: Any) -> bool:
    """
    Equality without type coercion.

    Lists and tuples compare element-wise so a YAML list literal matches a
    list in the data.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            strict_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(
            strict_equal(left[k], right[k]) for k in left
        )
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def _to_epoch_ms(value: Any) -> Optional[float]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp() * 1000.0
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc).timestamp() * 1000.0
    if isinstance(value, str):
        try:
            return _to_epoch_ms(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    return to_number(value)


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a value to a number for ordering comparisons.

    Returns:
        int/float, or None when the value has no numeric reading
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value
    if isinstance(value, (datetime, date)):
        return _to_epoch_ms(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def eval_eq(left: Any, right: Any) -> bool:
    if is_missing(left):
        return False
    return strict_equal(left, right)


def eval_neq(left: Any, right: Any) -> bool:
    if is_missing(left):
        return False
    return not strict_equal(left, right)


def eval_ordering(op: str, left: Any, right: Any) -> bool:
    """gt / gte / lt / lte over numerically coerced operands."""
    if is_missing(left):
        return False
    if isinstance(left, (datetime, date)) or isinstance(right, (datetime, date)):
        lhs, rhs = _to_epoch_ms(left), _to_epoch_ms(right)
    else:
        lhs, rhs = to_number(left), to_number(right)
        if (lhs is None or rhs is None) and isinstance(left, str) and isinstance(right, str):
            # ISO date strings, e.g. stored dates against "@today"
            lhs, rhs = _to_epoch_ms(left), _to_epoch_ms(right)
    if lhs is None or rhs is None:
        return False
    return _ORDERING[op](lhs, rhs)


def eval_in(left: Any, right: Any) -> bool:
    """Membership of left in the right-hand collection."""
    if not isinstance(right, _COLLECTION_TYPES):
        raise RuleTypeError(
            f"Right side of 'in' must be a list, got {type(right).__name__}"
        )
    if is_missing(left):
        return False
    return any(strict_equal(left, item) for item in right)


def eval_regex(left: Any, right: Any) -> bool:
    """Search left for the pattern given on the right."""
    if not isinstance(left, str):
        return False
    if isinstance(right, re.Pattern):
        pattern = right
    elif isinstance(right, str):
        try:
            pattern = re.compile(right)
        except re.error as e:
            raise RuleTypeError(f"Invalid regex pattern {right!r}: {e}") from e
    else:
        raise RuleTypeError(
            f"Right side of 'regex' must be a pattern string, got {type(right).__name__}"
        )
    return pattern.search(left) is not None


def dispatch_comparison(op: str, left: Any, right: Any) -> bool:
    """
    Dispatch to the operator function.

    Args:
        op: Comparison operator name
        left: Resolved left operand
        right: Resolved right operand
    """
    if op == "eq":
        return eval_eq(left, right)
    elif op == "neq":
        return eval_neq(left, right)
    elif op in _ORDERING:
        return eval_ordering(op, left, right)
    elif op == "in":
        return eval_in(left, right)
    elif op == "regex":
        return eval_regex(left, right)
    else:
        raise RuleTypeError(f"Unknown comparison operator: {op}")


__all__ = [
    "is_missing",
    "strict_equal",
    "to_number",
    "eval_eq",
    "eval_neq",
    "eval_ordering",
    "eval_in",
    "eval_regex",
    "dispatch_comparison",
]
