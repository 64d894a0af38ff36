"""
Schema validation for specflow.

Validates project.json and spec.json against JSON Schemas shipped in
specflow/schemas/. Fails with clear errors when data doesn't match.
"""

import json
from pathlib import Path

import jsonschema

from .errors import ConfigurationError


class ValidationError(ConfigurationError):
    """Schema validation failed."""

    def __init__(self, schema_name: str, message: str, path: str = None,
                 remediation: list[str] | None = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""), remediation)


# Cache loaded schemas
_schema_cache: dict[str, dict] = {}


def _get_schemas_dir() -> Path:
    """Get path to schemas directory."""
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    if schema_name not in _schema_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
        _schema_cache[schema_name] = json.loads(schema_path.read_text(encoding="utf-8"))
    return _schema_cache[schema_name]


def validate(data: dict, schema_name: str) -> None:
    """
    Validate data against named schema.

    Args:
        data: Dictionary to validate
        schema_name: Schema name ("project" or "spec")

    Raises:
        ValidationError: If validation fails
    """
    schema = _load_schema(schema_name)

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise ValidationError(schema_name, e.message, path) from None


def iter_errors(data: dict, schema_name: str) -> list[str]:
    """Return every schema violation as a readable string (empty if valid)."""
    schema = _load_schema(schema_name)
    validator = jsonschema.Draft7Validator(schema)
    messages = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "(root)"
        messages.append(f"{error.message} at {path}")
    return messages


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """
    Validate data before writing to file. Ensures we never write invalid data.

    Raises:
        ValidationError: If data doesn't match schema
    """
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(
            schema_name,
            f"Refusing to write invalid data to {filepath}: {e}",
            remediation=[f"Correct {filepath} by hand and run the command again"],
        ) from None
