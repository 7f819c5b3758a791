"""
Data path helpers.

Form data is a plain nested structure of dicts and lists. Paths address it
with a JSONPath-like subset rooted at "$":

    $.applicant.age
    $.items[0].price
    $['first name']

Bare paths ("applicant.age") are accepted and treated as rooted. The
canonical form produced by normalize_path() is what the computed-field
dependency graph uses as node identity, so "$['a'].b", "a.b" and "$.a.b"
all name the same node.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, Union

Segment = Union[str, int]

ROOT = "$"

_SEGMENT_RE = re.compile(
    r"""
    \.(?P<dot>[^.\[\]]+)            # .name
    | \[(?P<index>-?\d+)\]          # [0]
    | \['(?P<sq>(?:[^'\\]|\\.)*)'\] # ['name']
    | \["(?P<dq>(?:[^"\\]|\\.)*)"\] # ["name"]
    """,
    re.VERBOSE,
)

_PLAIN_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")


def parse_path(path: str) -> tuple[Segment, ...]:
    """
    Split a path into its segments.

    Args:
        path: "$"-rooted or bare dotted/bracketed path

    Returns:
        Tuple of segments; ints for list indices, strings for keys

    Raises:
        ValueError: If the path is empty or has unparseable syntax
    """
    if not isinstance(path, str) or not path.strip():
        raise ValueError(f"Path must be a non-empty string, got {path!r}")

    text = path.strip()
    if text == ROOT:
        return ()
    if text.startswith(ROOT):
        text = text[1:]
    if not text.startswith((".", "[")):
        text = "." + text

    segments: list[Segment] = []
    pos = 0
    while pos < len(text):
        match = _SEGMENT_RE.match(text, pos)
        if match is None:
            raise ValueError(f"Invalid path syntax at offset {pos}: {path!r}")
        if match.group("dot") is not None:
            segments.append(match.group("dot"))
        elif match.group("index") is not None:
            segments.append(int(match.group("index")))
        elif match.group("sq") is not None:
            segments.append(match.group("sq").replace("\\'", "'"))
        else:
            segments.append(match.group("dq").replace('\\"', '"'))
        pos = match.end()

    return tuple(segments)


def format_path(segments: Sequence[Segment]) -> str:
    """Render segments back into the canonical "$" form."""
    parts = [ROOT]
    for segment in segments:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif _PLAIN_NAME_RE.match(segment):
            parts.append(f".{segment}")
        else:
            escaped = segment.replace("'", "\\'")
            parts.append(f"['{escaped}']")
    return "".join(parts)


def normalize_path(path: str) -> str:
    """
    Canonicalize a path.

    Examples:
        normalize_path("total")          -> "$.total"
        normalize_path("$['order'].qty") -> "$.order.qty"
        normalize_path("$.items[0]")     -> "$.items[0]"
    """
    return format_path(parse_path(path))


def leaf_name(path: str) -> str:
    """Last segment of a path as a string ("" for the root)."""
    segments = parse_path(path)
    if not segments:
        return ""
    return str(segments[-1])


def _step(container: Any, segment: Segment) -> tuple[bool, Any]:
    if isinstance(container, Mapping):
        if segment in container:
            return True, container[segment]
        return False, None
    if isinstance(container, Sequence) and not isinstance(container, (str, bytes)):
        if isinstance(segment, str):
            if not segment.lstrip("-").isdigit():
                return False, None
            segment = int(segment)
        try:
            return True, container[segment]
        except IndexError:
            return False, None
    return False, None


def get_value(data: Any, path: Union[str, Sequence[Segment]], default: Any = None) -> Any:
    """
    Read the value at a path, returning default on any missing segment.

    Never raises for missing keys, out-of-range indices, or walking into a
    scalar. Raises ValueError only for syntactically invalid string paths.
    """
    segments = parse_path(path) if isinstance(path, str) else tuple(path)
    current = data
    for segment in segments:
        found, current = _step(current, segment)
        if not found:
            return default
    return current


def has_value(data: Any, path: Union[str, Sequence[Segment]]) -> bool:
    """Whether every segment of the path exists in data."""
    segments = parse_path(path) if isinstance(path, str) else tuple(path)
    current = data
    for segment in segments:
        found, current = _step(current, segment)
        if not found:
            return False
    return True


def set_value(data: Any, path: Union[str, Sequence[Segment]], value: Any) -> None:
    """
    Write value at path in place, creating intermediate containers.

    A missing intermediate becomes a list when the following segment is an
    int and a dict otherwise. Lists are padded with None to reach an index.

    Raises:
        ValueError: If the path is the root or walks through a scalar
    """
    segments = parse_path(path) if isinstance(path, str) else tuple(path)
    if not segments:
        raise ValueError("Cannot assign to the root path '$'")

    current = data
    for position, segment in enumerate(segments):
        is_last = position == len(segments) - 1
        next_segment = None if is_last else segments[position + 1]

        if isinstance(current, MutableMapping):
            if is_last:
                current[segment] = value
                return
            if not isinstance(current.get(segment), (MutableMapping, MutableSequence)):
                current[segment] = [] if isinstance(next_segment, int) else {}
            current = current[segment]
        elif isinstance(current, MutableSequence):
            index = int(segment)
            while len(current) <= index:
                current.append(None)
            if is_last:
                current[index] = value
                return
            if not isinstance(current[index], (MutableMapping, MutableSequence)):
                current[index] = [] if isinstance(next_segment, int) else {}
            current = current[index]
        else:
            raise ValueError(
                f"Cannot assign {format_path(segments)}: "
                f"segment {segment!r} walks into a {type(current).__name__}"
            )
