"""
formflow - runtime engine for declarative multi-step forms.

Given a form schema and the current data, decides which steps and fields are
visible, which step comes next, and keeps computed fields up to date. Renders
nothing and performs no I/O.

Usage:
    from formflow import load_schema, TransitionEngine, ComputedFieldEngine

    schema = load_schema("forms/onboarding.yml")
    engine = TransitionEngine()
    engine.get_next_step(schema, "intro", data)
"""

# rules must load before schema (schema types embed rule nodes)
from .rules import (
    Comparison,
    Logical,
    Custom,
    Always,
    Rule,
    parse_rule,
    RuleBuilder,
    RuleEvaluator,
    VisibilityController,
    TransitionEngine,
    TransitionHistoryEntry,
)
from .schema import (
    FormSchema,
    FormStep,
    StepTransition,
    ComputedField,
    ReviewPolicy,
    NavigationConfig,
    load_schema,
    resolve_ref,
    lint_navigation,
    lint_computed,
)
from .computed import (
    ComputedFieldEngine,
    ComputedFieldResult,
)
from .errors import (
    FormFlowError,
    ConfigurationError,
    AmbiguousDefaultTransitionError,
    CircularDependencyError,
    UnknownRuleFunctionError,
    SchemaReferenceError,
    RuleParseError,
    SchemaLoadError,
    EvaluationLimitError,
    RuleTypeError,
    ExpressionError,
    UnsafeExpressionError,
)

__version__ = "0.1.0"

__all__ = [
    # Rules
    "Comparison",
    "Logical",
    "Custom",
    "Always",
    "Rule",
    "parse_rule",
    "RuleBuilder",
    "RuleEvaluator",
    "VisibilityController",
    "TransitionEngine",
    "TransitionHistoryEntry",
    # Schema
    "FormSchema",
    "FormStep",
    "StepTransition",
    "ComputedField",
    "ReviewPolicy",
    "NavigationConfig",
    "load_schema",
    "resolve_ref",
    "lint_navigation",
    "lint_computed",
    # Computed
    "ComputedFieldEngine",
    "ComputedFieldResult",
    # Errors
    "FormFlowError",
    "ConfigurationError",
    "AmbiguousDefaultTransitionError",
    "CircularDependencyError",
    "UnknownRuleFunctionError",
    "SchemaReferenceError",
    "RuleParseError",
    "SchemaLoadError",
    "EvaluationLimitError",
    "RuleTypeError",
    "ExpressionError",
    "UnsafeExpressionError",
]
