"""
Tests for schema loading, the schema model and $ref resolution.

Validates that:
1. YAML files load into FormSchema with rules parsed
2. Empty, malformed and mis-shaped documents raise SchemaLoadError
3. to_dict()/from_dict() preserve the schema
4. Local $ref pointers resolve, chain, and fail loudly
"""

import pytest

from formflow.errors import RuleParseError, SchemaLoadError, SchemaReferenceError
from formflow.rules import Comparison
from formflow.schema import (
    ComputedField,
    FormSchema,
    RecomputeTrigger,
    ReviewPolicy,
    StepTransition,
    list_schemas,
    load_document,
    load_schema,
    resolve_pointer,
    resolve_ref,
    resolve_schema,
)


class TestLoadSchema:
    """Files to FormSchema."""

    def test_sample_form(self, sample_schema):
        """The sample schema loads with every section populated."""
        assert sample_schema.id == "loan-application"
        assert sample_schema.version == "1.2.0"
        assert sample_schema.title == "Loan Application"
        assert sample_schema.metadata == {"sensitivity": "high"}
        assert sample_schema.step_ids == ["intro", "employment", "guardian", "contact", "review", "done"]
        assert len(sample_schema.transitions) == 7
        assert len(sample_schema.computed) == 3
        assert sample_schema.navigation.review == ReviewPolicy(step_id="review", terminal=True)

    def test_rules_are_parsed(self, sample_schema):
        """visibleWhen and when become rule nodes."""
        assert sample_schema.get_step("employment").visible_when == Comparison("gte", "$.age", 18)
        assert sample_schema.transitions[0].when == Comparison("gte", "$.age", 18)
        assert sample_schema.get_step("intro").visible_when is None

    def test_transitions_from(self, sample_schema):
        """Transitions are grouped by source in declaration order."""
        assert [t.to_step for t in sample_schema.transitions_from("intro")] == ["employment", "guardian"]
        assert sample_schema.transitions_from("done") == []

    def test_json_file(self, tmp_path):
        """JSON documents load through the same path."""
        path = tmp_path / "form.json"
        path.write_text('{"$id": "j", "steps": [{"id": "only"}]}')
        assert load_schema(path).step_ids == ["only"]

    def test_missing_file(self, tmp_path):
        """A missing file is FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_schema(tmp_path / "absent.yml")

    def test_empty_file(self, tmp_path):
        """An empty document is rejected."""
        path = tmp_path / "empty.yml"
        path.write_text("")
        with pytest.raises(SchemaLoadError, match="Empty"):
            load_schema(path)

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML is a load error."""
        path = tmp_path / "bad.yml"
        path.write_text("steps: [unclosed\n")
        with pytest.raises(SchemaLoadError, match="Invalid YAML"):
            load_schema(path)

    def test_root_must_be_mapping(self, tmp_path):
        """A list at the root is rejected."""
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SchemaLoadError, match="must be a mapping"):
            load_schema(path)

    def test_bad_rule(self, tmp_path):
        """A malformed rule names its location."""
        path = tmp_path / "rule.yml"
        path.write_text("steps:\n  - id: a\n    visibleWhen: {op: nope}\n")
        with pytest.raises(RuleParseError, match=r"steps\[0\]\.visibleWhen"):
            load_schema(path)

    def test_step_without_id(self):
        """Steps need an id."""
        with pytest.raises(SchemaLoadError, match=r"steps\[0\]"):
            FormSchema.from_dict({"steps": [{"title": "No id"}]})

    def test_load_document_and_listing(self, tmp_path):
        """Data documents load as plain structures; schema files are listed by stem."""
        (tmp_path / "a.yml").write_text("x: 1\n")
        (tmp_path / "b.json").write_text("{}")
        (tmp_path / "notes.txt").write_text("ignored")
        assert load_document(tmp_path / "a.yml") == {"x": 1}
        assert list_schemas(tmp_path) == ["a", "b"]
        assert list_schemas(tmp_path / "absent") == []


class TestSchemaModel:
    """Dataclass construction and serialization."""

    def test_round_trip(self, sample_schema):
        """to_dict() output rebuilds an equal schema."""
        assert FormSchema.from_dict(sample_schema.to_dict()) == sample_schema

    def test_snake_case_keys_accepted(self):
        """from_dict reads snake_case spellings too."""
        transition = StepTransition.from_dict({"from_step": "a", "to_step": "b", "allow_cycle": True})
        assert transition == StepTransition("a", "b", allow_cycle=True)

    def test_computed_field_defaults(self):
        """recompute and cache have defaults; dependencies normalize."""
        field = ComputedField.from_dict({"path": "total", "expr": "a", "dependsOn": ["a", "$['b']"]})
        assert field.recompute is RecomputeTrigger.ON_CHANGE
        assert field.cache is True
        assert field.normalized_path == "$.total"
        assert field.normalized_dependencies == ("$.a", "$.b")

    @pytest.mark.parametrize("round_value", [-1, 1.5, True])
    def test_computed_field_invalid_round(self, round_value):
        """round must be a non-negative integer."""
        with pytest.raises(SchemaLoadError, match="round"):
            ComputedField.from_dict({"path": "$.t", "expr": "1", "round": round_value})

    def test_review_policy_from_dict_with_defaults(self):
        """Missing keys keep the given defaults."""
        base = ReviewPolicy(step_id="summary", terminal=True)
        policy = ReviewPolicy.from_dict({"terminal": False}, defaults=base)
        assert policy == ReviewPolicy(step_id="summary", terminal=False)


class TestRefs:
    """Local JSON pointer resolution."""

    def test_resolve_definition(self, sample_schema):
        """A definitions pointer returns the definition."""
        target = resolve_ref("#/definitions/contact", sample_schema)
        assert list(target["properties"]) == ["email", "phone"]

    def test_resolve_schema_passthrough(self, sample_schema):
        """A schema without $ref is returned unchanged."""
        plain = {"properties": {"a": {}}}
        assert resolve_schema(plain, sample_schema) is plain

    def test_chained_refs(self):
        """A definition that is itself a $ref is followed."""
        root = {"definitions": {"a": {"$ref": "#/definitions/b"}, "b": {"type": "object"}}}
        assert resolve_ref("#/definitions/a", root) == {"type": "object"}

    def test_reference_loop(self):
        """Loops are detected."""
        root = {"definitions": {"a": {"$ref": "#/definitions/b"}, "b": {"$ref": "#/definitions/a"}}}
        with pytest.raises(SchemaReferenceError, match="loop"):
            resolve_ref("#/definitions/a", root)

    @pytest.mark.parametrize("ref", [
        "#/definitions/missing",
        "https://example.com/schema.json",
        "#definitions",
    ])
    def test_unresolvable(self, ref):
        """Missing targets and non-local refs raise."""
        with pytest.raises(SchemaReferenceError):
            resolve_ref(ref, {"definitions": {}})

    def test_non_object_target(self):
        """A pointer landing on a scalar is an error."""
        with pytest.raises(SchemaReferenceError, match="not an object"):
            resolve_ref("#/definitions/n", {"definitions": {"n": 3}})

    def test_pointer_escapes(self):
        """~1 and ~0 unescape to / and ~."""
        root = {"a/b": {"c~d": 1}}
        assert resolve_pointer("#/a~1b/c~0d", root) == 1
