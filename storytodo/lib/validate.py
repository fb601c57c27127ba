"""
JSON Schema checks for storytodo.yaml and other structured input.

Schemas live in storytodo/schemas/<name>.schema.json and are compiled once.
"""

import json
from pathlib import Path

import jsonschema
from jsonschema.exceptions import best_match

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"

_validators: dict = {}


class ValidationError(Exception):
    """Input does not match its schema (or could not be read as data at all)."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        location = f" at {path}" if path else ""
        super().__init__(f"[{schema_name}] {message}{location}")


def _validator(schema_name: str):
    if schema_name in _validators:
        return _validators[schema_name]

    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
    except OSError:
        raise ValidationError(schema_name, f"No bundled schema {schema_path.name}") from None

    cls = jsonschema.validators.validator_for(schema)
    cls.check_schema(schema)
    _validators[schema_name] = cls(schema)
    return _validators[schema_name]


def validate(data: dict, schema_name: str) -> None:
    """Raise ValidationError with the most relevant schema violation, if any."""
    error = best_match(_validator(schema_name).iter_errors(data))
    if error is None:
        return
    path = ".".join(str(p) for p in error.absolute_path) or "(root)"
    raise ValidationError(schema_name, error.message, path)
