"""
Form schema model.

Contains:
- RecomputeTrigger, TransitionType: Enums
- ReviewPolicy, NavigationConfig: Review/terminal step policy
- FormStep, StepTransition, ComputedField: Schema building blocks
- FormSchema: Complete form definition

All classes are frozen dataclasses. from_dict() accepts both the JSON
vocabulary used by schema authors (camelCase, "$id", "from"/"to") and the
snake_case field names; to_dict() emits the JSON vocabulary.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from ..errors import SchemaLoadError
from ..rules.nodes import Rule
from ..rules.parser import coerce_rule
from ..utils.paths import normalize_path


def _pick(d: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins (camelCase spelling first, then snake_case)."""
    for key in keys:
        if key in d:
            return d[key]
    return default


def _require_str(d: Mapping[str, Any], where: str, *keys: str) -> str:
    value = _pick(d, *keys)
    if not isinstance(value, str) or not value:
        raise SchemaLoadError(f"{where}: '{keys[0]}' must be a non-empty string")
    return value


def _require_mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SchemaLoadError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


class RecomputeTrigger(str, Enum):
    """When the host should recompute a computed field."""
    ON_CHANGE = "onChange"
    ON_BLUR = "onBlur"
    ON_SUBMIT = "onSubmit"


class TransitionType(str, Enum):
    """How a transition was selected."""
    CONDITIONAL = "conditional"
    DEFAULT = "default"


# =============================================================================
# Navigation policy
# =============================================================================

@dataclass(frozen=True)
class ReviewPolicy:
    """
    Review step policy.

    When terminal is true, asking for the step after step_id returns None
    regardless of declared transitions.

    Examples:
        ReviewPolicy()                              # "review" is terminal
        ReviewPolicy(step_id="summary")             # "summary" is terminal
        ReviewPolicy(terminal=False)                # follow review's transitions
    """
    step_id: str = "review"
    terminal: bool = True
    freeze_navigation: bool = True
    validate: str = "form"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "stepId": self.step_id,
            "terminal": self.terminal,
            "freezeNavigation": self.freeze_navigation,
            "validate": self.validate,
        }

    @classmethod
    def from_dict(
        cls,
        d: Mapping[str, Any],
        defaults: Optional["ReviewPolicy"] = None,
    ) -> "ReviewPolicy":
        """Create from dict. Missing keys fall back to defaults (or class defaults)."""
        base = defaults or cls()
        return cls(
            step_id=_pick(d, "stepId", "step_id", default=base.step_id),
            terminal=bool(_pick(d, "terminal", default=base.terminal)),
            freeze_navigation=bool(
                _pick(d, "freezeNavigation", "freeze_navigation", default=base.freeze_navigation)
            ),
            validate=_pick(d, "validate", default=base.validate),
        )


@dataclass(frozen=True)
class NavigationConfig:
    """Schema-level navigation settings."""
    review: Optional[ReviewPolicy] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {"review": self.review.to_dict()} if self.review else {}

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "NavigationConfig":
        """Create from dict."""
        if not d:
            return cls()
        review = d.get("review")
        return cls(
            review=ReviewPolicy.from_dict(_require_mapping(review, "navigation.review"))
            if review is not None else None
        )


# =============================================================================
# Steps, transitions, computed fields
# =============================================================================

@dataclass(frozen=True)
class FormStep:
    """
    One page of a multi-step form.

    field_schema is a JSON-schema object ({"properties": {...}}) or a
    {"$ref": "#/definitions/..."} pointer into FormSchema.definitions.
    Field-level rules live under each property's "x-visibility" key.
    """
    id: str
    title: str = ""
    description: Optional[str] = None
    field_schema: Mapping[str, Any] = field(default_factory=dict)
    visible_when: Optional[Rule] = None
    help_text: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "schema": dict(self.field_schema),
        }
        if self.description is not None:
            result["description"] = self.description
        if self.visible_when is not None:
            result["visibleWhen"] = self.visible_when.to_dict()
        if self.help_text is not None:
            result["helpText"] = self.help_text
        return result

    @classmethod
    def from_dict(cls, d: Mapping[str, Any], where: str = "step") -> "FormStep":
        """Create from dict."""
        d = _require_mapping(d, where)
        step_id = _require_str(d, where, "id")
        field_schema = _pick(d, "schema", "field_schema", default={}) or {}
        return cls(
            id=step_id,
            title=d.get("title") or "",
            description=d.get("description"),
            field_schema=_require_mapping(field_schema, f"{where}.schema"),
            visible_when=coerce_rule(
                _pick(d, "visibleWhen", "visible_when"), f"{where}.visibleWhen"
            ),
            help_text=_pick(d, "helpText", "help_text"),
        )


@dataclass(frozen=True)
class StepTransition:
    """
    Directed edge between two steps.

    Selection: non-default transitions are tried in declaration order (when
    rule, then guard); the single default transition is the fallback.
    allow_cycle only matters to the navigation linter.
    """
    from_step: str
    to_step: str
    when: Optional[Rule] = None
    guard: Optional[str] = None
    default: bool = False
    allow_cycle: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        result: dict[str, Any] = {"from": self.from_step, "to": self.to_step}
        if self.when is not None:
            result["when"] = self.when.to_dict()
        if self.guard is not None:
            result["guard"] = self.guard
        if self.default:
            result["default"] = True
        if self.allow_cycle:
            result["allowCycle"] = True
        return result

    @classmethod
    def from_dict(cls, d: Mapping[str, Any], where: str = "transition") -> "StepTransition":
        """Create from dict."""
        d = _require_mapping(d, where)
        guard = d.get("guard")
        if guard is not None and not isinstance(guard, str):
            raise SchemaLoadError(f"{where}: 'guard' must be a string")
        return cls(
            from_step=_require_str(d, where, "from", "from_step"),
            to_step=_require_str(d, where, "to", "to_step"),
            when=coerce_rule(d.get("when"), f"{where}.when"),
            guard=guard,
            default=bool(d.get("default", False)),
            allow_cycle=bool(_pick(d, "allowCycle", "allow_cycle", default=False)),
        )


@dataclass(frozen=True)
class ComputedField:
    """
    A data field derived from other fields by an expression.

    Examples:
        ComputedField("$.total", "price * qty", ("$.price", "$.qty"), round=2)
        ComputedField("shout", "upper(name)", ("name",), fallback="")
    """
    path: str
    expr: str
    depends_on: tuple[str, ...] = ()
    round: Optional[int] = None
    recompute: RecomputeTrigger = RecomputeTrigger.ON_CHANGE
    cache: bool = True
    fallback: Any = None

    def __post_init__(self):
        """Validate field."""
        if not self.path:
            raise ValueError("ComputedField path must be non-empty")
        if not isinstance(self.expr, str) or not self.expr.strip():
            raise ValueError(f"ComputedField {self.path}: expr must be a non-empty string")
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        if self.round is not None:
            if isinstance(self.round, bool) or not isinstance(self.round, int) or self.round < 0:
                raise ValueError(
                    f"ComputedField {self.path}: round must be a non-negative int. Got: {self.round!r}"
                )
        object.__setattr__(self, "recompute", RecomputeTrigger(self.recompute))

    @property
    def normalized_path(self) -> str:
        return normalize_path(self.path)

    @property
    def normalized_dependencies(self) -> tuple[str, ...]:
        return tuple(normalize_path(dep) for dep in self.depends_on)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        result: dict[str, Any] = {
            "path": self.path,
            "expr": self.expr,
            "dependsOn": list(self.depends_on),
            "recompute": self.recompute.value,
            "cache": self.cache,
        }
        if self.round is not None:
            result["round"] = self.round
        if self.fallback is not None:
            result["fallback"] = self.fallback
        return result

    @classmethod
    def from_dict(cls, d: Mapping[str, Any], where: str = "computed") -> "ComputedField":
        """Create from dict."""
        d = _require_mapping(d, where)
        depends_on = _pick(d, "dependsOn", "depends_on", default=[]) or []
        if not isinstance(depends_on, (list, tuple)):
            raise SchemaLoadError(f"{where}: 'dependsOn' must be a list")
        try:
            return cls(
                path=_require_str(d, where, "path"),
                expr=_require_str(d, where, "expr"),
                depends_on=tuple(depends_on),
                round=d.get("round"),
                recompute=d.get("recompute", RecomputeTrigger.ON_CHANGE.value),
                cache=bool(d.get("cache", True)),
                fallback=d.get("fallback"),
            )
        except ValueError as e:
            if isinstance(e, SchemaLoadError):
                raise
            raise SchemaLoadError(f"{where}: {e}") from e


# =============================================================================
# Form schema
# =============================================================================

@dataclass(frozen=True)
class FormSchema:
    """
    Complete form definition.

    Step order is declaration order. Step ids are expected to be unique;
    lookups take the first match and lint_navigation() reports duplicates.
    """
    id: str
    version: str = "1.0.0"
    title: str = ""
    steps: tuple[FormStep, ...] = ()
    transitions: tuple[StepTransition, ...] = ()
    computed: tuple[ComputedField, ...] = ()
    definitions: Mapping[str, Any] = field(default_factory=dict)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "transitions", tuple(self.transitions))
        object.__setattr__(self, "computed", tuple(self.computed))

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]

    def get_step(self, step_id: str) -> Optional[FormStep]:
        """First step with this id, or None."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def transitions_from(self, step_id: str) -> list[StepTransition]:
        """Transitions leaving step_id, in declaration order."""
        return [t for t in self.transitions if t.from_step == step_id]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        metadata = dict(self.metadata)
        if self.title:
            metadata["title"] = self.title
        result: dict[str, Any] = {
            "$id": self.id,
            "version": self.version,
            "metadata": metadata,
            "steps": [step.to_dict() for step in self.steps],
            "transitions": [t.to_dict() for t in self.transitions],
        }
        if self.computed:
            result["computed"] = [c.to_dict() for c in self.computed]
        if self.definitions:
            result["definitions"] = dict(self.definitions)
        navigation = self.navigation.to_dict()
        if navigation:
            result["navigation"] = navigation
        return result

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "FormSchema":
        """
        Create from dict.

        Raises:
            SchemaLoadError: Structural problem (missing ids, wrong shapes)
            RuleParseError: A visibleWhen/when rule is malformed
        """
        d = _require_mapping(d, "schema")
        steps = d.get("steps") or []
        transitions = d.get("transitions") or []
        computed = d.get("computed") or []
        for key, value in (("steps", steps), ("transitions", transitions), ("computed", computed)):
            if not isinstance(value, (list, tuple)):
                raise SchemaLoadError(f"schema.{key} must be a list")

        metadata = _require_mapping(d.get("metadata") or {}, "schema.metadata")
        title = d.get("title") or metadata.get("title") or ""
        return cls(
            id=str(_pick(d, "$id", "id", default="") or ""),
            version=str(d.get("version", "1.0.0")),
            title=title,
            steps=tuple(
                FormStep.from_dict(s, f"steps[{i}]") for i, s in enumerate(steps)
            ),
            transitions=tuple(
                StepTransition.from_dict(t, f"transitions[{i}]")
                for i, t in enumerate(transitions)
            ),
            computed=tuple(
                ComputedField.from_dict(c, f"computed[{i}]") for i, c in enumerate(computed)
            ),
            definitions=_require_mapping(d.get("definitions") or {}, "schema.definitions"),
            navigation=NavigationConfig.from_dict(d.get("navigation")),
            metadata={k: v for k, v in metadata.items() if k != "title"},
        )


SchemaLike = Union[FormSchema, Mapping[str, Any]]


def as_schema(schema: SchemaLike) -> FormSchema:
    """Accept a FormSchema or its dict form."""
    if isinstance(schema, FormSchema):
        return schema
    return FormSchema.from_dict(schema)


__all__ = [
    "RecomputeTrigger",
    "TransitionType",
    "ReviewPolicy",
    "NavigationConfig",
    "FormStep",
    "StepTransition",
    "ComputedField",
    "FormSchema",
    "SchemaLike",
    "as_schema",
]
