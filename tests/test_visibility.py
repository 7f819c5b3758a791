"""
Tests for the visibility controller.

Validates that:
1. Steps are filtered by their visibleWhen rules, in declaration order
2. Fields are filtered by x-visibility, through $ref definitions
3. A failing rule is logged and treated as visible (fail open)
4. Built-in rule functions are available without registration
5. Results are memoized per element, rule, data and context
"""

import logging
import re
from datetime import date

import pytest

from formflow.errors import EvaluationLimitError, SchemaReferenceError
from formflow.rules import (
    Always,
    Comparison,
    Custom,
    RuleEvaluator,
    VisibilityController,
    builtins,
)


@pytest.fixture
def controller():
    return VisibilityController(RuleEvaluator(max_evaluations=1000, environment="test"))


class TestVisibleSteps:
    """Step-level visibility."""

    def test_adult_sees_employment(self, controller, sample_schema, adult_data):
        """visibleWhen age >= 18 shows employment and hides guardian."""
        assert controller.get_visible_steps(sample_schema, adult_data) == [
            "intro", "employment", "contact", "review", "done",
        ]

    def test_minor_sees_guardian(self, controller, sample_schema, minor_data):
        """The complementary rule shows guardian instead."""
        assert controller.get_visible_steps(sample_schema, minor_data) == [
            "intro", "guardian", "contact", "review", "done",
        ]

    def test_missing_age_hides_both_branches(self, controller, sample_schema):
        """A missing field fails both gte and lt."""
        assert controller.get_visible_steps(sample_schema, {}) == [
            "intro", "contact", "review", "done",
        ]

    def test_accepts_dict_schema(self, controller, sample_schema, adult_data):
        """The dict form of a schema gives the same answer."""
        assert controller.get_visible_steps(sample_schema.to_dict(), adult_data) == (
            controller.get_visible_steps(sample_schema, adult_data)
        )

    def test_returned_list_is_a_copy(self, controller, sample_schema, adult_data):
        """Mutating a result does not poison the cache."""
        first = controller.get_visible_steps(sample_schema, adult_data)
        first.clear()
        assert controller.get_visible_steps(sample_schema, adult_data) != []

    def test_duplicate_step_ids_are_listed_twice(self, controller):
        """Step ids are not deduplicated; the linter reports them instead."""
        schema = {"$id": "dup", "steps": [{"id": "a"}, {"id": "a"}, {"id": "b"}]}
        assert controller.get_visible_steps(schema, {}) == ["a", "a", "b"]


class TestVisibleFields:
    """Field-level visibility."""

    def test_field_rule_applies(self, controller, sample_schema):
        """bonus shows only for income above 50000."""
        assert controller.get_visible_fields(sample_schema, "employment", {"income": 60000}) == [
            "employer", "income", "bonus",
        ]
        assert controller.get_visible_fields(sample_schema, "employment", {"income": 1000}) == [
            "employer", "income",
        ]

    def test_ref_schema_is_resolved(self, controller, sample_schema):
        """A step schema given as $ref uses the definition's properties."""
        assert controller.get_visible_fields(sample_schema, "contact", {"contact_by": "phone"}) == [
            "email", "phone",
        ]
        assert controller.get_visible_fields(sample_schema, "contact", {"contact_by": "email"}) == [
            "email",
        ]

    def test_unknown_step_has_no_fields(self, controller, sample_schema):
        """An unknown step id yields an empty list."""
        assert controller.get_visible_fields(sample_schema, "nowhere", {}) == []

    def test_step_without_properties(self, controller, sample_schema):
        """A step with no field schema has no fields."""
        assert controller.get_visible_fields(sample_schema, "review", {}) == []

    def test_unresolved_ref_raises(self, controller):
        """A dangling $ref is a schema bug, not an empty step."""
        schema = {
            "$id": "broken",
            "steps": [{"id": "a", "schema": {"$ref": "#/definitions/missing"}}],
        }
        with pytest.raises(SchemaReferenceError, match="#/definitions/missing"):
            controller.get_visible_fields(schema, "a", {})

    def test_is_field_visible(self, controller):
        """A single property schema is checked via its x-visibility rule."""
        field_schema = {"type": "string", "x-visibility": {"op": "eq", "left": "$.a", "right": 1}}
        assert controller.is_field_visible(field_schema, {"a": 1}) is True
        assert controller.is_field_visible(field_schema, {"a": 2}) is False
        assert controller.is_field_visible({"type": "string"}, {}) is True


class TestFailOpen:
    """Rule failures never hide parts of the form."""

    def test_type_error_is_visible_and_logged(self, controller, caplog):
        """A rule that raises is treated as visible and logged."""
        rule = Comparison("in", "$.plan", "pro")
        with caplog.at_level(logging.ERROR, logger="formflow"):
            assert controller.is_visible("plan_field", rule, {"plan": "pro"}) is True
        assert "[RULE:FAIL_OPEN]" in caplog.text
        assert "element=plan_field" in caplog.text

    def test_unknown_function_fails_open(self, controller, caplog):
        """An unregistered custom function also fails open at this layer."""
        with caplog.at_level(logging.ERROR, logger="formflow"):
            assert controller.is_visible("x", Custom("notRegistered"), {}) is True
        assert "UnknownRuleFunctionError" in caplog.text

    def test_evaluation_limit_propagates(self):
        """The evaluation ceiling is a hard bound, not a rule failure."""
        controller = VisibilityController(RuleEvaluator(max_evaluations=1, environment="test"))
        controller.is_visible("a", Always(), {"n": 1})
        with pytest.raises(EvaluationLimitError):
            controller.is_visible("b", Always(), {"n": 2})

    def test_no_rule_is_visible(self, controller):
        """None means visible."""
        assert controller.is_visible("anything", None, {}) is True


class TestBuiltinFunctions:
    """isWeekday, hasRole and isComplete."""

    def test_has_role(self, controller):
        """hasRole reads data.user.roles."""
        rule = Custom("hasRole", ("admin",))
        assert controller.is_visible("admin_panel", rule, {"user": {"roles": ["admin"]}}) is True
        assert controller.is_visible("admin_panel", rule, {"user": {"roles": ["viewer"]}}) is False
        assert controller.is_visible("admin_panel", rule, {}) is False

    def test_is_complete(self, controller):
        """isComplete reads data._meta.completedSteps."""
        rule = Custom("isComplete", ("intro",))
        assert controller.is_visible("summary", rule, {"_meta": {"completedSteps": ["intro"]}}) is True
        assert controller.is_visible("summary", rule, {"_meta": {"completedSteps": []}}) is False

    def test_is_weekday(self, controller, monkeypatch):
        """isWeekday follows the current date."""
        rule = Custom("isWeekday")

        monkeypatch.setattr(builtins, "_today", lambda: date(2024, 1, 6))  # Saturday
        assert controller.is_visible("support_chat", rule, {}) is False

        controller.clear_cache()
        monkeypatch.setattr(builtins, "_today", lambda: date(2024, 1, 8))  # Monday
        assert controller.is_visible("support_chat", rule, {}) is True

    def test_builtins_registered_on_shared_evaluator(self):
        """Passing an evaluator in still gets the built-ins registered on it."""
        evaluator = RuleEvaluator(max_evaluations=100, environment="test")
        VisibilityController(evaluator)
        assert {"hasRole", "isComplete", "isWeekday"} <= set(evaluator.custom_functions)


class TestVisibilityCache:
    """Memoization."""

    def test_repeat_calls_hit_cache(self, controller):
        """Same element, rule and data evaluate once until clear_cache()."""
        calls = []

        def counting(data, args, context):
            calls.append(1)
            return True

        controller.evaluator.register_custom_function("counting", counting)
        controller.is_visible("a", Custom("counting"), {"x": 1})
        controller.is_visible("a", Custom("counting"), {"x": 1})
        assert len(calls) == 1

        controller.clear_cache()
        controller.is_visible("a", Custom("counting"), {"x": 1})
        assert len(calls) == 2

    def test_same_element_different_rules_do_not_collide(self, controller):
        """Two fields named alike with different rules keep separate results."""
        shown = {"x-visibility": {"op": "eq", "left": "$.a", "right": 1}}
        hidden = {"x-visibility": {"op": "eq", "left": "$.a", "right": 2}}
        data = {"a": 1}
        assert controller.is_field_visible(shown, data, field_name="name") is True
        assert controller.is_field_visible(hidden, data, field_name="name") is False

    def test_regex_flags_are_part_of_the_key(self, controller):
        """The same pattern with and without IGNORECASE caches separately."""
        data = {"name": "ABC"}
        insensitive = Comparison("regex", "$.name", re.compile("abc", re.IGNORECASE))
        sensitive = Comparison("regex", "$.name", re.compile("abc"))
        assert controller.is_visible("name", insensitive, data) is True
        assert controller.is_visible("name", sensitive, data) is False
