"""
Computed Field Engine.

Keeps derived fields in sync with the data they are computed from.

Key Features:
- Dependency graph over normalized paths, for "what changed downstream" queries
- Expressions parsed once per target path and reused
- Topological batch evaluation with precise cycle reporting
- Soft failure per field: the fallback is written and the error returned, never raised
- Optional half-up decimal rounding

Usage:
    engine = ComputedFieldEngine()
    total = ComputedField("$.total", "price * qty", ("$.price", "$.qty"), round=2)
    engine.register_computed_field(total)

    data = {"price": 3, "qty": 3}
    result = engine.evaluate(total, data)
    # result.value == 9 and data["total"] == 9
"""

from __future__ import annotations

import copy
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from ..errors import ExpressionError
from ..schema.types import ComputedField
from ..utils.logger import FormFlowLogger, get_logger
from ..utils.paths import get_value, leaf_name, normalize_path, set_value
from .expression import CompiledExpression, compile_expression
from .functions import BUILTIN_FUNCTIONS, round_half_up
from .graph import DependencyGraph, topological_order


FieldLike = Union[ComputedField, Mapping[str, Any]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _as_field(field_or_dict: FieldLike) -> ComputedField:
    if isinstance(field_or_dict, ComputedField):
        return field_or_dict
    return ComputedField.from_dict(field_or_dict)


@dataclass
class ComputedFieldResult:
    """
    Outcome of one computed-field evaluation.

    On failure, value holds the fallback that was written and error holds
    the exception.
    """
    path: str
    value: Any
    dependencies: list[str] = field(default_factory=list)
    timestamp: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        result = {
            "path": self.path,
            "value": self.value,
            "dependencies": list(self.dependencies),
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            result["error"] = f"{type(self.error).__name__}: {self.error}"
        return result


class ComputedFieldEngine:
    """
    Evaluates computed fields against a mutable data snapshot.

    Not thread-safe. State (graph, parsed expressions, cached values, custom
    functions, user context) belongs to this instance only.

    Attributes:
        logger: Channel for parse failures and per-field fallbacks
    """

    def __init__(self, logger: Optional[FormFlowLogger] = None):
        self.logger = logger or get_logger()
        self._graph = DependencyGraph()
        self._expressions: dict[str, CompiledExpression] = {}
        self._values: dict[str, Any] = {}
        self._fields: dict[str, ComputedField] = {}
        self._custom_functions: dict[str, Callable[..., Any]] = {}
        self._user_context: Any = None

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_computed_field(self, computed: FieldLike) -> ComputedField:
        """
        Add a field's dependency edges and parse its expression.

        A parse failure is logged here and surfaces again (as the result's
        error) when the field is evaluated.
        """
        computed = _as_field(computed)
        target = computed.normalized_path
        self._graph.add_field(target, computed.normalized_dependencies)
        self._fields[target] = computed

        cached = self._expressions.get(target)
        if cached is None or cached.source != computed.expr:
            try:
                self._expressions[target] = compile_expression(computed.expr)
            except ExpressionError as e:
                self._expressions.pop(target, None)
                self.logger.warning(
                    f"Failed to parse expression for {computed.path}: {e}"
                )
        return computed

    def register_computed_fields(self, fields: Iterable[FieldLike]) -> list[ComputedField]:
        return [self.register_computed_field(f) for f in fields]

    def register_custom_function(self, name: str, fn: Callable[..., Any]) -> None:
        """Expose fn to expressions as name(...). Shadows a built-in of the same name."""
        if not name or not name.isidentifier():
            raise ValueError(f"Custom function name must be an identifier, got {name!r}")
        if not callable(fn):
            raise TypeError(f"Custom function '{name}' is not callable")
        self._custom_functions[name] = fn

    def set_user_context(self, user: Any) -> None:
        """Bind "user" in every expression context. None unbinds it."""
        self._user_context = user

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(self, computed: FieldLike, data: Any) -> ComputedFieldResult:
        """
        Evaluate one field and write the result into data at its path.

        Never raises for expression problems: the fallback (or None) is
        written instead, the failure is logged, and the error is returned
        in the result.
        """
        computed = _as_field(computed)
        target = computed.normalized_path
        dependencies = list(computed.normalized_dependencies)
        timestamp = _now_ms()

        try:
            compiled = self._expression_for(computed)
            context = self._build_context(data, dependencies)
            value = compiled.evaluate(context)
            value = self._apply_rounding(value, computed.round)
            set_value(data, target, value)
        except Exception as e:
            fallback = copy.deepcopy(computed.fallback)
            self._values.pop(target, None)
            self._write_fallback(data, target, fallback)
            self.logger.computed_failure(target, e, fallback)
            return ComputedFieldResult(
                path=computed.path,
                value=fallback,
                dependencies=dependencies,
                timestamp=timestamp,
                error=e,
            )

        if computed.cache:
            self._values[target] = value
        return ComputedFieldResult(
            path=computed.path,
            value=value,
            dependencies=dependencies,
            timestamp=timestamp,
        )

    def evaluate_all(self, fields: Sequence[FieldLike], data: Any) -> list[ComputedFieldResult]:
        """
        Evaluate a batch in dependency order.

        Raises:
            CircularDependencyError: Before anything is evaluated or written
        """
        if not fields:
            return []
        ordered = topological_order([_as_field(f) for f in fields])
        return [self.evaluate(f, data) for f in ordered]

    def get_affected_fields(self, changed_path: str) -> list[str]:
        """Normalized paths of every registered field downstream of changed_path."""
        return self._graph.affected(changed_path)

    def recompute_affected(
        self,
        changed_path: str,
        data: Any,
        fields: Optional[Sequence[FieldLike]] = None,
    ) -> list[ComputedFieldResult]:
        """
        Re-evaluate only what a single change can influence.

        Args:
            changed_path: Path the user just edited
            data: Data snapshot (already holding the new value)
            fields: Field declarations to pick from. Defaults to every
                registered field.

        Returns:
            Results for the affected fields, in dependency order
        """
        affected = set(self.get_affected_fields(changed_path))
        if not affected:
            return []
        if fields is None:
            pool = list(self._fields.values())
        else:
            pool = [_as_field(f) for f in fields]
        return self.evaluate_all(
            [f for f in pool if f.normalized_path in affected], data
        )

    # -------------------------------------------------------------------------
    # Cached values
    # -------------------------------------------------------------------------

    def get_computed_value(self, path: str) -> Any:
        """Last successfully computed value for path (None when never computed)."""
        return self._values.get(normalize_path(path))

    def clear_cache(self) -> None:
        """Forget computed values. Registrations and parsed expressions stay."""
        self._values.clear()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _expression_for(self, computed: ComputedField) -> CompiledExpression:
        target = computed.normalized_path
        compiled = self._expressions.get(target)
        if compiled is None or compiled.source != computed.expr:
            compiled = compile_expression(computed.expr)
            self._expressions[target] = compiled
        return compiled

    def _build_context(self, data: Any, dependencies: Sequence[str]) -> dict[str, Any]:
        context: dict[str, Any] = dict(BUILTIN_FUNCTIONS)
        context.update(self._custom_functions)
        context["data"] = data
        if self._user_context is not None:
            context["user"] = self._user_context
        if isinstance(data, Mapping):
            context.update(
                (key, value) for key, value in data.items() if isinstance(key, str)
            )
        for dep in dependencies:
            name = leaf_name(dep)
            if name.isidentifier():
                context[name] = get_value(data, dep)
        return context

    @staticmethod
    def _apply_rounding(value: Any, decimals: Optional[int]) -> Any:
        if decimals is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        return round_half_up(value, decimals)

    def _write_fallback(self, data: Any, target: str, fallback: Any) -> None:
        try:
            set_value(data, target, fallback)
        except (ValueError, TypeError) as e:
            self.logger.warning(f"Failed to write fallback at {target}: {e}")


__all__ = [
    "ComputedFieldEngine",
    "ComputedFieldResult",
]
