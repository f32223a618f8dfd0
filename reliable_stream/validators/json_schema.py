"""
JSON schema validation for buffered stream payloads.

Parses the concatenated ``data`` content of a response as JSON and checks
it against a JSON schema, collecting every error instead of stopping at the
first one.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError


@dataclass(frozen=True)
class SchemaValidationResult:
    """Outcome of validating one payload."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return "; ".join(self.errors)

    def __bool__(self) -> bool:
        return self.is_valid


def _format_path(path) -> str:
    return " -> ".join(str(p) for p in path) if path else "(root)"


class JsonSchemaPayloadValidator:
    """Validates text payloads against a JSON schema."""

    def __init__(self, schema: Dict[str, Any]):
        """
        Args:
            schema: JSON schema (Draft 7)

        Raises:
            SchemaError: If the schema itself is invalid
        """
        try:
            Draft7Validator.check_schema(schema)
        except SchemaError as e:
            raise SchemaError(f"Invalid JSON schema: {e.message}")
        self.schema = schema
        self._validator = Draft7Validator(schema)

    def validate_data(self, data: Any) -> SchemaValidationResult:
        """Validate already-parsed data."""
        errors = [
            f"{_format_path(error.path)}: {error.message}"
            for error in self._validator.iter_errors(data)
        ]
        return SchemaValidationResult(is_valid=not errors, errors=errors)

    def validate(self, content: str) -> SchemaValidationResult:
        """Parse ``content`` as JSON and validate it."""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            return SchemaValidationResult(
                is_valid=False,
                errors=[f"(root): Invalid JSON at position {e.pos}: {e.msg}"],
            )
        return self.validate_data(data)

    def __call__(self, content: str) -> SchemaValidationResult:
        return self.validate(content)
