"""
Built-in custom rule functions.

Registered on every VisibilityController's evaluator:
- isWeekday():          today is Monday..Friday (local date)
- hasRole(role):        role is in data.user.roles
- isComplete(step_id):  step_id is in data._meta.completedSteps
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import TYPE_CHECKING, Any, Optional

from ..utils.paths import get_value
from .constants import FN_HAS_ROLE, FN_IS_COMPLETE, FN_IS_WEEKDAY

if TYPE_CHECKING:
    from .evaluator import RuleEvaluator


def _today() -> date:
    return date.today()


def _first_string_arg(args: tuple) -> Optional[str]:
    if args and isinstance(args[0], str):
        return args[0]
    return None


def _string_list(value: Any) -> list:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return []


def is_weekday(data: Any, args: tuple = (), context: Optional[Mapping[str, Any]] = None) -> bool:
    return _today().weekday() < 5


def has_role(data: Any, args: tuple = (), context: Optional[Mapping[str, Any]] = None) -> bool:
    role = _first_string_arg(args)
    if role is None:
        return False
    return role in _string_list(get_value(data, "$.user.roles"))


def is_complete(data: Any, args: tuple = (), context: Optional[Mapping[str, Any]] = None) -> bool:
    step_id = _first_string_arg(args)
    if step_id is None:
        return False
    return step_id in _string_list(get_value(data, "$._meta.completedSteps"))


DEFAULT_RULE_FUNCTIONS = {
    FN_IS_WEEKDAY: is_weekday,
    FN_HAS_ROLE: has_role,
    FN_IS_COMPLETE: is_complete,
}


def register_default_functions(evaluator: "RuleEvaluator") -> None:
    """Register the built-in predicates on an evaluator."""
    for name, fn in DEFAULT_RULE_FUNCTIONS.items():
        evaluator.register_custom_function(name, fn)


__all__ = [
    "is_weekday",
    "has_role",
    "is_complete",
    "DEFAULT_RULE_FUNCTIONS",
    "register_default_functions",
]
