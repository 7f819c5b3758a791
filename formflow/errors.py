"""
Error taxonomy for the form flow engine.

Two families matter to callers:
- ConfigurationError: the schema itself is malformed. Always raised, never
  patched over (ambiguous defaults, circular computed fields, unknown rule
  functions, unresolved $ref pointers, unparseable rules/schemas).
- EvaluationLimitError: the per-instance rule evaluation ceiling was hit.

Per-element failures (one visibility rule, one computed expression) are
caught inside the component that produced them and never reach the caller.
"""

from __future__ import annotations

from typing import Optional, Sequence


class FormFlowError(Exception):
    """Base class for every error raised by formflow."""


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigurationError(FormFlowError):
    """The schema (or a rule/expression inside it) is malformed."""


class AmbiguousDefaultTransitionError(ConfigurationError):
    """More than one transition out of a step is marked as default."""

    def __init__(self, step_id: str, targets: Sequence[str]):
        self.step_id = step_id
        self.targets = tuple(targets)
        super().__init__(
            f'Step "{step_id}" has multiple default transitions defined '
            f"(targets: {', '.join(self.targets)})."
        )


class CircularDependencyError(ConfigurationError):
    """Computed fields depend on each other in a cycle."""

    def __init__(self, path: str, cycle: Optional[Sequence[str]] = None):
        self.path = path
        self.cycle = tuple(cycle or ())
        msg = f"Circular dependency detected: {path}"
        if self.cycle:
            msg += f" ({' -> '.join(self.cycle)})"
        super().__init__(msg)


class UnknownRuleFunctionError(ConfigurationError):
    """A Custom rule names a function that was never registered."""

    def __init__(self, name: str, available: Optional[Sequence[str]] = None):
        self.name = name
        self.available = tuple(sorted(available or ()))
        msg = f"Unknown custom function: {name}"
        if self.available:
            msg += f". Registered: {', '.join(self.available)}"
        super().__init__(msg)


class SchemaReferenceError(ConfigurationError):
    """A $ref pointer inside the schema does not resolve."""

    def __init__(self, ref: str, message: str = "reference does not resolve"):
        self.ref = ref
        super().__init__(f"Invalid $ref '{ref}': {message}")


class RuleParseError(ConfigurationError, ValueError):
    """A rule document cannot be turned into a Rule node."""


class SchemaLoadError(ConfigurationError, ValueError):
    """A schema document cannot be loaded or is structurally invalid."""


# =============================================================================
# Evaluation errors
# =============================================================================

class EvaluationLimitError(FormFlowError):
    """The rule evaluator exceeded its evaluation ceiling."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Maximum rule evaluations exceeded ({limit}). "
            f"Call clear_cache() between independent evaluation passes."
        )


class RuleTypeError(FormFlowError, TypeError):
    """An operand has the wrong shape for its operator (e.g. 'in' on a scalar)."""


class ExpressionError(FormFlowError):
    """A computed-field expression failed to parse or evaluate."""


class UnsafeExpressionError(ExpressionError, ValueError):
    """A computed-field expression uses syntax outside the allowed subset."""
