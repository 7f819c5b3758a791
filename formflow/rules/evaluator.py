"""
Rule Evaluator.

Evaluates Rule trees against a data snapshot and a context map.

Key Features:
- Short-circuit evaluation for and/or
- Strict equality, numeric/date ordering, membership and regex operators
- Custom predicates dispatched by name from a per-instance registry
- Memoization keyed by (rule, data, context), per instance
- Hard evaluation ceiling so a runaway schema fails loudly

Usage:
    evaluator = RuleEvaluator()
    evaluator.register_custom_function("isAdult", lambda data, args, ctx: ...)
    ok = evaluator.evaluate(rule, data, {"stepId": "intro"})
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Callable, Optional, Union

from ..errors import EvaluationLimitError, UnknownRuleFunctionError
from .constants import CUSTOM_OPERATOR
from .nodes import Always, Comparison, Custom, Logical, Rule
from .operators import dispatch_comparison
from .parser import parse_rule
from .resolve import resolve_operand


CustomRuleFunction = Callable[[Any, tuple, Optional[Mapping[str, Any]]], bool]


def serialize_for_key(value: Any) -> str:
    """Deterministic text form of a value, used in cache keys."""
    try:
        return json.dumps(value, sort_keys=True, default=repr)
    except (TypeError, ValueError):
        # Mixed-type keys cannot be sorted; fall back to repr
        return repr(value)


def _key_literal(value: Any) -> Any:
    if isinstance(value, re.Pattern):
        # Flags change the match, so they are part of the identity
        return {"$regex": value.pattern, "flags": value.flags}
    if isinstance(value, tuple):
        return [_key_literal(v) for v in value]
    return value


def _key_tree(rule: Any) -> Any:
    if isinstance(rule, Comparison):
        return {"op": rule.op, "left": _key_literal(rule.left), "right": _key_literal(rule.right)}
    if isinstance(rule, Logical):
        return {"op": rule.op, "args": [_key_tree(child) for child in rule.args]}
    if isinstance(rule, Custom):
        return {"op": CUSTOM_OPERATOR, "fn": rule.fn, "args": _key_literal(rule.args)}
    if isinstance(rule, Always):
        return rule.to_dict()
    return rule


def rule_key(rule: Any) -> str:
    """
    Cache-key text for a rule node or raw rule document.

    Unlike to_dict(), compiled regex literals keep their flags.
    """
    return serialize_for_key(_key_tree(rule))


class RuleEvaluator:
    """
    Evaluates rule trees against a data snapshot.

    Not thread-safe: the cache and evaluation counter are instance state.
    Use one evaluator per form session.

    Attributes:
        max_evaluations: Ceiling on evaluate() calls between clear_cache()
        environment: Value answered for "@env" when the context has none

    Example:
        evaluator = RuleEvaluator(max_evaluations=500)

        rule = Logical("and", (
            Comparison("gte", "$.age", 18),
            Comparison("in", "$.plan", ["basic", "pro"]),
        ))
        evaluator.evaluate(rule, {"age": 30, "plan": "pro"})  # True
    """

    def __init__(
        self,
        max_evaluations: Optional[int] = None,
        environment: Optional[str] = None,
    ):
        """
        Initialize evaluator.

        Args:
            max_evaluations: Evaluation ceiling. Defaults to the configured value.
            environment: "@env" default. Defaults to the configured environment.
        """
        if max_evaluations is None or environment is None:
            from ..config import get_config

            config = get_config()
            if max_evaluations is None:
                max_evaluations = config.rules.max_evaluations
            if environment is None:
                environment = config.environment
        if max_evaluations < 1:
            raise ValueError(f"max_evaluations must be >= 1, got {max_evaluations}")

        self.max_evaluations = max_evaluations
        self.environment = environment
        self._custom_functions: dict[str, CustomRuleFunction] = {}
        self._cache: dict[str, bool] = {}
        self._evaluation_count = 0

    @property
    def evaluation_count(self) -> int:
        """evaluate() calls since construction or the last clear_cache()."""
        return self._evaluation_count

    @property
    def custom_functions(self) -> tuple[str, ...]:
        """Names of registered custom functions, sorted."""
        return tuple(sorted(self._custom_functions))

    def register_custom_function(self, name: str, fn: CustomRuleFunction) -> None:
        """
        Register a predicate callable as fn(data, args, context) -> bool.

        Re-registering a name replaces the previous function. Cached results
        are dropped since they may have been computed with the old one.
        """
        if not name:
            raise ValueError("Custom function name must be non-empty")
        if not callable(fn):
            raise TypeError(f"Custom function '{name}' is not callable")
        self._custom_functions[name] = fn
        self._cache.clear()

    def clear_cache(self) -> None:
        """Drop memoized results and reset the evaluation counter."""
        self._cache.clear()
        self._evaluation_count = 0

    def evaluate(
        self,
        rule: Union[Rule, Mapping[str, Any], None],
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Evaluate a rule tree.

        Args:
            rule: Rule node, rule document (parsed on the fly), or None
            data: Data snapshot referenced by "$" operands
            context: Context map referenced by "@" operands

        Returns:
            True/False. No rule at all is True.

        Raises:
            EvaluationLimitError: Ceiling exceeded
            UnknownRuleFunctionError: Custom rule names an unregistered function
            RuleTypeError: Operand shape invalid for its operator
        """
        if rule is None:
            return True
        if isinstance(rule, Mapping):
            rule = parse_rule(rule)

        # Counted before the cache lookup so cached hits still consume budget
        self._evaluation_count += 1
        if self._evaluation_count > self.max_evaluations:
            raise EvaluationLimitError(self.max_evaluations)

        key = self._cache_key(rule, data, context)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = self._evaluate_node(rule, data, context)
        self._cache[key] = result
        return result

    def _evaluate_node(
        self,
        rule: Rule,
        data: Any,
        context: Optional[Mapping[str, Any]],
    ) -> bool:
        if isinstance(rule, Comparison):
            return self._eval_comparison(rule, data, context)
        elif isinstance(rule, Logical):
            return self._eval_logical(rule, data, context)
        elif isinstance(rule, Custom):
            return self._eval_custom(rule, data, context)
        elif isinstance(rule, Always):
            return bool(rule.value)
        else:
            raise TypeError(f"Unknown rule type: {type(rule).__name__}")

    def _eval_comparison(
        self,
        rule: Comparison,
        data: Any,
        context: Optional[Mapping[str, Any]],
    ) -> bool:
        left = resolve_operand(rule.left, data, context, self.environment)
        right = resolve_operand(rule.right, data, context, self.environment)
        return dispatch_comparison(rule.op, left, right)

    def _eval_logical(
        self,
        rule: Logical,
        data: Any,
        context: Optional[Mapping[str, Any]],
    ) -> bool:
        if rule.op == "and":
            return all(self.evaluate(child, data, context) for child in rule.args)
        elif rule.op == "or":
            return any(self.evaluate(child, data, context) for child in rule.args)
        # not: zero children is tolerated and reads as true
        if not rule.args:
            return True
        return not self.evaluate(rule.args[0], data, context)

    def _eval_custom(
        self,
        rule: Custom,
        data: Any,
        context: Optional[Mapping[str, Any]],
    ) -> bool:
        fn = self._custom_functions.get(rule.fn)
        if fn is None:
            raise UnknownRuleFunctionError(rule.fn, self._custom_functions.keys())
        return bool(fn(data, rule.args, context))

    @staticmethod
    def _cache_key(
        rule: Rule,
        data: Any,
        context: Optional[Mapping[str, Any]],
    ) -> str:
        return "::".join((
            rule_key(rule),
            serialize_for_key(data),
            serialize_for_key(dict(context) if context else {}),
        ))


__all__ = [
    "RuleEvaluator",
    "CustomRuleFunction",
    "serialize_for_key",
    "rule_key",
]
