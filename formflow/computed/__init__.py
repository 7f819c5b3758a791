"""
Computed fields: derived values kept in sync with their sources.

Design principles:
- Paths are normalized once and used as graph node identity
- Expressions are whitelisted syntax, interpreted, never eval()'d
- Cycles are configuration errors, raised before any value is written
- A failing expression writes its fallback and reports, never raises
"""

from .expression import (
    CompiledExpression,
    compile_expression,
)
from .functions import (
    BUILTIN_FUNCTIONS,
    round_half_up,
)
from .graph import (
    DependencyGraph,
    topological_order,
    find_cycles,
)
from .engine import (
    ComputedFieldEngine,
    ComputedFieldResult,
)

__all__ = [
    # Expressions
    "CompiledExpression",
    "compile_expression",
    "BUILTIN_FUNCTIONS",
    "round_half_up",
    # Graph
    "DependencyGraph",
    "topological_order",
    "find_cycles",
    # Engine
    "ComputedFieldEngine",
    "ComputedFieldResult",
]
