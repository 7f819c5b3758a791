"""
Visibility Controller.

Derives which steps and fields are shown for the current data.

Design principles:
- No rule means visible
- A rule that raises is logged and treated as visible (fail open): a data
  glitch must never hide part of the form
- An unresolved "$ref" in a step's field schema is a schema bug and raises
- Results are memoized per instance; clear_cache() drops them
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Union

from ..errors import EvaluationLimitError
from ..schema.refs import resolve_schema
from ..schema.types import SchemaLike, as_schema
from ..utils.logger import FormFlowLogger, get_logger
from .builtins import register_default_functions
from .evaluator import RuleEvaluator, rule_key, serialize_for_key
from .nodes import Rule


# Property-schema key holding a field-level visibility rule
VISIBILITY_KEY = "x-visibility"


class VisibilityController:
    """
    Computes visible steps and fields.

    The built-in rule functions (isWeekday, hasRole, isComplete) are
    registered on the evaluator at construction.

    Example:
        controller = VisibilityController()
        controller.get_visible_steps(schema, data)          # ["intro", "details"]
        controller.get_visible_fields(schema, "details", data)
    """

    def __init__(
        self,
        evaluator: Optional[RuleEvaluator] = None,
        logger: Optional[FormFlowLogger] = None,
    ):
        self.evaluator = evaluator or RuleEvaluator()
        self.logger = logger or get_logger()
        self._visibility_cache: dict[str, bool] = {}
        self._step_cache: dict[str, list[str]] = {}
        register_default_functions(self.evaluator)

    def is_visible(
        self,
        element_id: str,
        rule: Union[Rule, Mapping[str, Any], None],
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Evaluate one element's visibility rule.

        Raises:
            EvaluationLimitError: The evaluator's ceiling is a hard bound, not a rule failure
        """
        if rule is None:
            return True

        key = f"{element_id}::{rule_key(rule)}::{serialize_for_key(data)}::{serialize_for_key(dict(context or {}))}"
        cached = self._visibility_cache.get(key)
        if cached is not None:
            return cached

        try:
            result = self.evaluator.evaluate(rule, data, context)
        except EvaluationLimitError:
            raise
        except Exception as e:
            self.logger.rule_failure(element_id, e)
            return True

        self._visibility_cache[key] = result
        return result

    def get_visible_steps(
        self,
        schema: SchemaLike,
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> list[str]:
        """Ids of visible steps, in declaration order."""
        schema = as_schema(schema)
        steps_key = serialize_for_key([
            [step.id, rule_key(step.visible_when) if step.visible_when else None]
            for step in schema.steps
        ])
        key = f"{steps_key}::{serialize_for_key(data)}::{serialize_for_key(dict(context or {}))}"
        cached = self._step_cache.get(key)
        if cached is not None:
            return list(cached)

        steps = [
            step.id
            for step in schema.steps
            if self.is_visible(step.id, step.visible_when, data, context)
        ]
        self._step_cache[key] = steps
        return list(steps)

    def get_visible_fields(
        self,
        schema: SchemaLike,
        step_id: str,
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> list[str]:
        """
        Names of visible properties in a step's field schema.

        Returns:
            Property names in declaration order; [] for an unknown step

        Raises:
            SchemaReferenceError: The step's field schema is an unresolved $ref
        """
        schema = as_schema(schema)
        step = schema.get_step(step_id)
        if step is None:
            return []

        step_schema = resolve_schema(step.field_schema, schema)
        properties = step_schema.get("properties") or {}
        return [
            name
            for name, field_schema in properties.items()
            if self.is_visible(name, self._field_rule(field_schema), data, context)
        ]

    def is_field_visible(
        self,
        field_schema: Mapping[str, Any],
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
        field_name: str = "field",
    ) -> bool:
        """Visibility of a single property schema via its "x-visibility" rule."""
        return self.is_visible(field_name, self._field_rule(field_schema), data, context)

    def clear_cache(self) -> None:
        """Drop memoized visibility results and reset the evaluator."""
        self._visibility_cache.clear()
        self._step_cache.clear()
        self.evaluator.clear_cache()

    @staticmethod
    def _field_rule(field_schema: Any) -> Any:
        if isinstance(field_schema, Mapping):
            return field_schema.get(VISIBILITY_KEY)
        return None


__all__ = [
    "VisibilityController",
    "VISIBILITY_KEY",
]
