"""
Local "$ref" resolution.

Only in-document JSON pointers ("#/definitions/address") are supported.
A pointer that does not resolve is a schema authoring bug and raises
SchemaReferenceError instead of quietly producing an empty schema.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

from ..errors import SchemaReferenceError
from .types import FormSchema


def _unescape(token: str) -> str:
    # RFC 6901: ~1 is "/", ~0 is "~" (order matters)
    return token.replace("~1", "/").replace("~0", "~")


def _root_for(schema: Union[FormSchema, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(schema, FormSchema):
        return {"definitions": schema.definitions}
    return schema


def resolve_pointer(ref: str, root: Mapping[str, Any]) -> Any:
    """Walk a "#/a/b" pointer through root."""
    if not isinstance(ref, str) or not ref.startswith("#"):
        raise SchemaReferenceError(str(ref), "only local '#/...' references are supported")

    pointer = ref[1:]
    if pointer in ("", "/"):
        return root
    if not pointer.startswith("/"):
        raise SchemaReferenceError(ref, "pointer must start with '#/'")

    current: Any = root
    for token in pointer[1:].split("/"):
        key = _unescape(token)
        if isinstance(current, Mapping) and key in current:
            current = current[key]
        elif isinstance(current, (list, tuple)) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            raise SchemaReferenceError(ref, f"'{key}' not found")
    return current


def resolve_ref(
    ref: str,
    schema: Union[FormSchema, Mapping[str, Any]],
) -> Mapping[str, Any]:
    """
    Resolve a reference to a JSON-schema object.

    Chained references (a definition that is itself a {"$ref": ...}) are
    followed until a concrete object is reached.

    Raises:
        SchemaReferenceError: Pointer does not resolve, loops, or lands on a non-object
    """
    root = _root_for(schema)
    seen: list[str] = []
    current_ref = ref
    while True:
        if current_ref in seen:
            raise SchemaReferenceError(ref, f"reference loop: {' -> '.join(seen + [current_ref])}")
        seen.append(current_ref)
        target = resolve_pointer(current_ref, root)
        if not isinstance(target, Mapping):
            raise SchemaReferenceError(ref, f"target is {type(target).__name__}, not an object")
        nested = target.get("$ref")
        if isinstance(nested, str):
            current_ref = nested
            continue
        return target


def resolve_schema(
    field_schema: Mapping[str, Any],
    schema: Union[FormSchema, Mapping[str, Any]],
) -> Mapping[str, Any]:
    """Return field_schema itself, or its target when it is a {"$ref": ...} stub."""
    ref = field_schema.get("$ref") if isinstance(field_schema, Mapping) else None
    if isinstance(ref, str):
        return resolve_ref(ref, schema)
    return field_schema


__all__ = [
    "resolve_pointer",
    "resolve_ref",
    "resolve_schema",
]
