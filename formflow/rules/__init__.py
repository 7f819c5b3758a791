"""
Rule language and the engines built on it.

Design principles:
- Rules are data: a closed set of frozen node types, never executable code
- Custom predicates and guards are looked up by name in explicit tables
- Missing data never satisfies a comparison
- Malformed schemas fail loudly; bad data fails open (visible)
"""

from .nodes import (
    Comparison,
    Logical,
    Custom,
    Always,
    Rule,
    RULE_TYPES,
    is_rule,
)
from .parser import (
    parse_rule,
    coerce_rule,
)
from .builder import (
    RuleBuilder,
    field_ref,
)
from .evaluator import (
    RuleEvaluator,
    CustomRuleFunction,
)
from .builtins import (
    DEFAULT_RULE_FUNCTIONS,
    register_default_functions,
)
from .visibility import (
    VisibilityController,
    VISIBILITY_KEY,
)
from .transitions import (
    TransitionEngine,
    TransitionHistoryEntry,
)

__all__ = [
    # Nodes
    "Comparison",
    "Logical",
    "Custom",
    "Always",
    "Rule",
    "RULE_TYPES",
    "is_rule",
    # Parsing / building
    "parse_rule",
    "coerce_rule",
    "RuleBuilder",
    "field_ref",
    # Evaluation
    "RuleEvaluator",
    "CustomRuleFunction",
    "DEFAULT_RULE_FUNCTIONS",
    "register_default_functions",
    # Engines
    "VisibilityController",
    "VISIBILITY_KEY",
    "TransitionEngine",
    "TransitionHistoryEntry",
]
