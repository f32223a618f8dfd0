"""Payload validators used by the schema-gated relay."""

from .json_schema import JsonSchemaPayloadValidator, SchemaValidationResult

__all__ = [
    "JsonSchemaPayloadValidator",
    "SchemaValidationResult",
]
