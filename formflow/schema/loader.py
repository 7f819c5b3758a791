"""
Schema and data document loading.

YAML is a superset of JSON, so one safe_load() covers .yml, .yaml and .json.

Usage:
    schema = load_schema("forms/onboarding.yml")
    data = load_document("fixtures/applicant.json")
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml

from ..errors import SchemaLoadError
from .types import FormSchema


SCHEMA_EXTENSIONS = (".yml", ".yaml", ".json")


def load_document(path: Union[str, Path]) -> Any:
    """
    Read a YAML/JSON document.

    Raises:
        FileNotFoundError: If the file does not exist
        SchemaLoadError: If the document is not valid YAML/JSON
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SchemaLoadError(f"Invalid YAML/JSON in {path}: {e}") from e


def load_schema(path: Union[str, Path]) -> FormSchema:
    """
    Load a FormSchema from a YAML/JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        SchemaLoadError: If the document is empty or structurally invalid
        RuleParseError: If a rule inside the schema is malformed
    """
    raw = load_document(path)
    if not raw:
        raise SchemaLoadError(f"Empty or invalid YAML in {path}")
    if not isinstance(raw, dict):
        raise SchemaLoadError(
            f"Schema root in {path} must be a mapping, got {type(raw).__name__}"
        )
    return FormSchema.from_dict(raw)


def list_schemas(base_dir: Union[str, Path]) -> list[str]:
    """List schema files (by stem) under base_dir, sorted."""
    base_dir = Path(base_dir)
    if not base_dir.exists():
        return []
    return sorted(
        p.stem for p in base_dir.rglob("*") if p.suffix in SCHEMA_EXTENSIONS and p.is_file()
    )


__all__ = [
    "SCHEMA_EXTENSIONS",
    "load_document",
    "load_schema",
    "list_schemas",
]
