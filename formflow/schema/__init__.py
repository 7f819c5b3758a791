"""
Form schema model, loading and static checks.

- types: FormSchema and its building blocks (frozen dataclasses)
- loader: YAML/JSON files to FormSchema
- refs: local "$ref" pointer resolution
- lint: navigation and computed-field structure checks
"""

from .types import (
    RecomputeTrigger,
    TransitionType,
    ReviewPolicy,
    NavigationConfig,
    FormStep,
    StepTransition,
    ComputedField,
    FormSchema,
    SchemaLike,
    as_schema,
)
from .refs import (
    resolve_pointer,
    resolve_ref,
    resolve_schema,
)
from .loader import (
    load_document,
    load_schema,
    list_schemas,
)
from .lint import (
    LintIssue,
    NavigationLintResult,
    lint_navigation,
    lint_computed,
    lint_schema,
)

__all__ = [
    # Types
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
    # References
    "resolve_pointer",
    "resolve_ref",
    "resolve_schema",
    # Loading
    "load_document",
    "load_schema",
    "list_schemas",
    # Lint
    "LintIssue",
    "NavigationLintResult",
    "lint_navigation",
    "lint_computed",
    "lint_schema",
]
