"""
Fluent constructors for rule nodes.

Bare field names are rooted automatically:

    RuleBuilder.and_(
        RuleBuilder.greater_than_or_equal("age", 18),
        RuleBuilder.in_("plan", ["basic", "pro"]),
    )
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Union

from .constants import CONTEXT_PREFIX, DATA_PREFIX
from .nodes import Comparison, Custom, Logical, Rule


def field_ref(field: str) -> str:
    """Turn a field name into a data reference ("age" -> "$.age")."""
    if field.startswith((DATA_PREFIX, CONTEXT_PREFIX)):
        return field
    return f"$.{field}"


class RuleBuilder:
    """Static helpers that return frozen rule nodes."""

    @staticmethod
    def equals(field: str, value: Any) -> Comparison:
        return Comparison("eq", field_ref(field), value)

    @staticmethod
    def not_equals(field: str, value: Any) -> Comparison:
        return Comparison("neq", field_ref(field), value)

    @staticmethod
    def greater_than(field: str, value: Any) -> Comparison:
        return Comparison("gt", field_ref(field), value)

    @staticmethod
    def greater_than_or_equal(field: str, value: Any) -> Comparison:
        return Comparison("gte", field_ref(field), value)

    @staticmethod
    def less_than(field: str, value: Any) -> Comparison:
        return Comparison("lt", field_ref(field), value)

    @staticmethod
    def less_than_or_equal(field: str, value: Any) -> Comparison:
        return Comparison("lte", field_ref(field), value)

    @staticmethod
    def in_(field: str, values: Iterable[Any]) -> Comparison:
        return Comparison("in", field_ref(field), list(values))

    @staticmethod
    def matches(field: str, pattern: Union[str, re.Pattern]) -> Comparison:
        return Comparison("regex", field_ref(field), pattern)

    @staticmethod
    def and_(*rules: Rule) -> Logical:
        return Logical("and", rules)

    @staticmethod
    def or_(*rules: Rule) -> Logical:
        return Logical("or", rules)

    @staticmethod
    def not_(rule: Rule) -> Logical:
        return Logical("not", (rule,))

    @staticmethod
    def custom(function_name: str, *args: Any) -> Custom:
        return Custom(function_name, args)

    @classmethod
    def required(cls, field: str) -> Comparison:
        """
        Field holds a value.

        neq on a missing field is false, so this is also false when the
        field is absent, not only when it is explicitly None.
        """
        return cls.not_equals(field, None)

    @classmethod
    def optional(cls, field: str) -> Logical:
        return cls.not_(cls.required(field))


__all__ = [
    "RuleBuilder",
    "field_ref",
]
