"""
Computed-field dependency graph.

Edges run from a source path to the computed field that reads it
("$.price" -> "$.total"). All paths are normalized before they touch the
graph, so "price", "$.price" and "$['price']" are one node.

Ordering uses a three-color DFS: unvisited, in progress, done. Meeting an
in-progress node again means a cycle, which is reported with the exact loop.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Sequence

from ..errors import CircularDependencyError
from ..schema.types import ComputedField
from ..utils.paths import normalize_path

# DFS colors
_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


class DependencyGraph:
    """
    Adjacency map of source path -> computed paths that depend on it.

    Example:
        graph = DependencyGraph()
        graph.add_field("$.subtotal", ["$.price", "$.qty"])
        graph.add_field("$.total", ["$.subtotal"])
        graph.affected("$.price")  # ["$.subtotal", "$.total"]
    """

    def __init__(self):
        self._dependents: dict[str, list[str]] = {}

    def add_field(self, target: str, depends_on: Iterable[str]) -> None:
        """Add edges dep -> target. Repeated edges are ignored."""
        target = normalize_path(target)
        for dep in depends_on:
            bucket = self._dependents.setdefault(normalize_path(dep), [])
            if target not in bucket:
                bucket.append(target)

    def dependents(self, path: str) -> list[str]:
        """Direct dependents of path."""
        return list(self._dependents.get(normalize_path(path), ()))

    def affected(self, changed_path: str) -> list[str]:
        """
        Every computed path reachable downstream of changed_path.

        Breadth-first, in discovery order, each path at most once. The
        changed path itself is only included when a cycle leads back to it.
        """
        start = normalize_path(changed_path)
        seen: set[str] = set()
        order: list[str] = []
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for dependent in self._dependents.get(current, ()):
                if dependent not in seen:
                    seen.add(dependent)
                    order.append(dependent)
                    queue.append(dependent)
        return order

    def clear(self) -> None:
        self._dependents.clear()

    def __contains__(self, path: str) -> bool:
        return normalize_path(path) in self._dependents

    def __len__(self) -> int:
        return sum(len(targets) for targets in self._dependents.values())


def _index_fields(fields: Sequence[ComputedField]) -> dict[str, ComputedField]:
    # Later declarations of the same path win, matching registration order
    return {field.normalized_path: field for field in fields}


def topological_order(fields: Sequence[ComputedField]) -> list[ComputedField]:
    """
    Order fields so every field comes after the fields it depends on.

    Dependencies that are not themselves in the batch are plain data and
    impose no ordering. Input order breaks ties.

    Raises:
        CircularDependencyError: Naming the field where the loop closed and the loop itself
    """
    by_path = _index_fields(fields)
    state: dict[str, int] = {path: _UNVISITED for path in by_path}
    stack: list[str] = []
    ordered: list[ComputedField] = []

    def _visit(path: str) -> None:
        if state[path] == _DONE:
            return
        if state[path] == _IN_PROGRESS:
            cycle = stack[stack.index(path):] + [path]
            raise CircularDependencyError(by_path[path].path, cycle)

        state[path] = _IN_PROGRESS
        stack.append(path)
        for dep in by_path[path].normalized_dependencies:
            if dep in by_path:
                _visit(dep)
        stack.pop()
        state[path] = _DONE
        ordered.append(by_path[path])

    for field in fields:
        _visit(field.normalized_path)
    return ordered


def find_cycles(fields: Sequence[ComputedField]) -> list[list[str]]:
    """
    Every distinct dependency loop among fields, without raising.

    Each loop is listed once, starting and ending at the same path.
    """
    by_path = _index_fields(fields)
    state: dict[str, int] = {path: _UNVISITED for path in by_path}
    stack: list[str] = []
    cycles: list[list[str]] = []
    recorded: set[frozenset[str]] = set()

    def _visit(path: str) -> None:
        state[path] = _IN_PROGRESS
        stack.append(path)
        for dep in by_path[path].normalized_dependencies:
            if dep not in by_path:
                continue
            if state[dep] == _IN_PROGRESS:
                cycle = stack[stack.index(dep):] + [dep]
                key = frozenset(cycle)
                if key not in recorded:
                    recorded.add(key)
                    cycles.append(cycle)
            elif state[dep] == _UNVISITED:
                _visit(dep)
        stack.pop()
        state[path] = _DONE

    for path in by_path:
        if state[path] == _UNVISITED:
            _visit(path)
    return cycles


__all__ = [
    "DependencyGraph",
    "topological_order",
    "find_cycles",
]
