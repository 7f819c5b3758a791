"""
Static checks for form schemas.

lint_navigation() checks the step/transition graph:
1. Duplicate step ids
2. More than one default transition out of a step
3. Transitions whose "from" or "to" names no step
4. Transition cycles where no edge is marked allow_cycle
5. (warning) No terminal step reachable from the entry step

lint_computed() reports computed-field dependency loops without raising.

Neither check evaluates any rule; they only look at schema structure.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from ..computed.graph import find_cycles
from .types import FormSchema, SchemaLike, StepTransition, as_schema


@dataclass(frozen=True)
class LintIssue:
    """One finding. keyword is a stable machine-readable code."""
    path: str
    message: str
    keyword: str
    property: Optional[str] = None

    def __str__(self) -> str:
        return f"[{self.keyword}] {self.path}: {self.message}"


@dataclass
class NavigationLintResult:
    errors: list[LintIssue] = field(default_factory=list)
    warnings: list[LintIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def extend(self, other: "NavigationLintResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


def _detect_duplicate_steps(step_ids: list[str], errors: list[LintIssue]) -> None:
    seen: set[str] = set()
    duplicates: list[str] = []
    for step_id in step_ids:
        if step_id in seen and step_id not in duplicates:
            duplicates.append(step_id)
        seen.add(step_id)
    for step_id in duplicates:
        errors.append(LintIssue(
            path=f"/steps/{step_id}",
            message=f"Duplicate step id detected: {step_id}",
            keyword="navigation:duplicate-step",
            property=step_id,
        ))


def _detect_multiple_defaults(
    transitions: list[tuple[int, StepTransition]],
    errors: list[LintIssue],
) -> None:
    defaults: dict[str, list[int]] = {}
    for index, transition in transitions:
        if transition.default:
            defaults.setdefault(transition.from_step, []).append(index)
    for from_step, indices in defaults.items():
        if len(indices) > 1:
            errors.append(LintIssue(
                path=f"/transitions/{from_step}",
                message=(
                    f'Multiple default transitions defined for step "{from_step}" '
                    f"(indices: {', '.join(str(i) for i in indices)})."
                ),
                keyword="navigation:multiple-defaults",
                property=from_step,
            ))


def _detect_unknown_references(
    transitions: list[tuple[int, StepTransition]],
    step_set: set[str],
    errors: list[LintIssue],
) -> None:
    for index, transition in transitions:
        if transition.from_step not in step_set:
            errors.append(LintIssue(
                path=f"/transitions/{index}",
                message=f'Transition references unknown step in "from": {transition.from_step}',
                keyword="navigation:unknown-from",
                property=transition.from_step,
            ))
        if transition.to_step not in step_set:
            errors.append(LintIssue(
                path=f"/transitions/{index}",
                message=f'Transition references unknown step in "to": {transition.to_step}',
                keyword="navigation:unknown-to",
                property=transition.to_step,
            ))


def _detect_cycles(
    transitions: list[tuple[int, StepTransition]],
    step_ids: list[str],
    step_set: set[str],
    errors: list[LintIssue],
) -> None:
    """Three-color DFS over steps; each loop is reported once."""
    graph: dict[str, list[tuple[int, StepTransition]]] = {}
    for index, transition in transitions:
        graph.setdefault(transition.from_step, []).append((index, transition))

    # States: 0=unvisited, 1=in-progress, 2=done
    state: dict[str, int] = {}
    via_stack: list[tuple[int, StepTransition]] = []
    recorded: set[frozenset[int]] = set()

    def _record(cycle_edges: list[tuple[int, StepTransition]]) -> None:
        key = frozenset(index for index, _ in cycle_edges)
        if key in recorded:
            return
        recorded.add(key)
        if any(t.allow_cycle for _, t in cycle_edges):
            return
        loop = " -> ".join(f"{t.from_step}->{t.to_step}" for _, t in cycle_edges)
        errors.append(LintIssue(
            path="/transitions",
            message=f"Cycle detected without allowCycle override: {loop}",
            keyword="navigation:cycle",
        ))

    def _dfs(node: str) -> None:
        state[node] = 1
        for edge in graph.get(node, ()):
            target = edge[1].to_step
            if target not in step_set:
                continue
            if state.get(target, 0) == 1:
                # Walk back along the DFS edges until the loop closes
                cycle = [edge]
                for via in reversed(via_stack):
                    if via[1].to_step == target:
                        break
                    cycle.append(via)
                cycle.reverse()
                _record(cycle)
            elif state.get(target, 0) == 0:
                via_stack.append(edge)
                _dfs(target)
                via_stack.pop()
        state[node] = 2

    for step_id in step_ids:
        if state.get(step_id, 0) == 0:
            _dfs(step_id)


def _detect_missing_terminals(
    step_ids: list[str],
    transitions: list[tuple[int, StepTransition]],
    step_set: set[str],
    warnings: list[LintIssue],
) -> None:
    if not step_ids:
        return

    adjacency: dict[str, list[str]] = {}
    for _, transition in transitions:
        if transition.from_step in step_set and transition.to_step in step_set:
            adjacency.setdefault(transition.from_step, []).append(transition.to_step)

    reachable: set[str] = set()
    queue = deque([step_ids[0]])
    while queue:
        current = queue.popleft()
        if current in reachable:
            continue
        reachable.add(current)
        queue.extend(n for n in adjacency.get(current, ()) if n not in reachable)

    if not any(not adjacency.get(step_id) for step_id in reachable):
        warnings.append(LintIssue(
            path="/transitions",
            message="No reachable terminal steps detected from the entry step.",
            keyword="navigation:no-terminal",
        ))


def lint_navigation(schema: SchemaLike) -> NavigationLintResult:
    """
    Check the navigation graph of a schema.

    Returns:
        NavigationLintResult with errors (schema bugs) and warnings
    """
    schema = as_schema(schema)
    result = NavigationLintResult()

    step_ids = schema.step_ids
    step_set = set(step_ids)
    transitions = list(enumerate(schema.transitions))

    _detect_duplicate_steps(step_ids, result.errors)
    _detect_multiple_defaults(transitions, result.errors)
    _detect_unknown_references(transitions, step_set, result.errors)
    _detect_cycles(transitions, step_ids, step_set, result.errors)
    _detect_missing_terminals(step_ids, transitions, step_set, result.warnings)

    return result


def lint_computed(schema: SchemaLike) -> NavigationLintResult:
    """
    Check computed-field declarations.

    Reports dependency loops as errors and duplicate target paths as warnings.
    """
    schema = as_schema(schema)
    result = NavigationLintResult()

    seen: set[str] = set()
    for index, computed in enumerate(schema.computed):
        target = computed.normalized_path
        if target in seen:
            result.warnings.append(LintIssue(
                path=f"/computed/{index}",
                message=f"Computed field declared more than once: {target}",
                keyword="computed:duplicate-path",
                property=target,
            ))
        seen.add(target)

    for cycle in find_cycles(list(schema.computed)):
        result.errors.append(LintIssue(
            path="/computed",
            message=f"Circular dependency detected: {' -> '.join(cycle)}",
            keyword="computed:cycle",
            property=cycle[0],
        ))

    return result


def lint_schema(schema: SchemaLike) -> NavigationLintResult:
    """Navigation and computed-field checks combined."""
    schema = as_schema(schema)
    result = lint_navigation(schema)
    result.extend(lint_computed(schema))
    return result


__all__ = [
    "LintIssue",
    "NavigationLintResult",
    "lint_navigation",
    "lint_computed",
    "lint_schema",
]
