"""
Schema validation for sctui.

Config data is checked against a JSON Schema before anything reads it.
Fails hard with clear errors when data doesn't match.
"""

from typing import Any

import jsonschema


class ValidationError(Exception):
    """Schema validation failed."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


SCHEMAS: dict[str, dict[str, Any]] = {
    "config": {
        "type": "object",
        "required": ["workspaces"],
        "properties": {
            "default_workspace": {"type": "string", "minLength": 1},
            "workspaces": {
                "type": "object",
                "minProperties": 1,
                "additionalProperties": {"$ref": "#/definitions/workspace"},
            },
        },
        "additionalProperties": False,
        "definitions": {
            "workspace": {
                "type": "object",
                "required": ["api_key", "user_id"],
                "properties": {
                    "api_key": {"type": "string", "minLength": 1},
                    "user_id": {"type": "string", "minLength": 1},
                    "limit": {"type": "integer", "minimum": 1},
                },
                "additionalProperties": False,
            },
        },
    },
}


def validate(data: dict, schema_name: str) -> None:
    """
    Validate data against named schema.

    Args:
        data: Dictionary to validate
        schema_name: Schema name (e.g., "config")

    Raises:
        ValidationError: If validation fails
    """
    schema = SCHEMAS.get(schema_name)
    if schema is None:
        raise ValidationError(schema_name, "Unknown schema")

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise ValidationError(schema_name, e.message, path) from None
