"""JSON Schema validation for node-supplied box records.

Provides:
- A registry of the bundled EPF schemas for $ref resolution
- Cached validators
- Error messages that name the failing JSON path
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"

ERGO_BOX_SCHEMA = "ergo-box.schema.json"


def _load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def _schema_registry(schemas_dir: Path = SCHEMAS_DIR) -> Registry:
    """Build a registry of every bundled schema, keyed by its $id."""
    resources = []
    for schema_path in sorted(schemas_dir.glob("*.schema.json")):
        schema = _load_json(schema_path)
        schema_id = schema.get("$id") or f"https://schemas.epf.dev/{schema_path.name}"
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(name: str, schemas_dir: Path = SCHEMAS_DIR) -> Draft202012Validator:
    """Return a validator for a bundled schema file."""
    schema = _load_json(schemas_dir / name)
    return Draft202012Validator(schema, registry=_schema_registry(schemas_dir))


def validate_against_schema(obj: Any, name: str) -> List[str]:
    """Validate an object against a bundled schema.

    Returns a list of error messages, empty when the object is valid.
    """
    validator = schema_validator(name)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(obj), key=lambda e: e.json_path)
    ]
