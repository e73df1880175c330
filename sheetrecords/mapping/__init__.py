"""Record schemas, value coercion and record validation."""

from .kinds import CoercionError, FieldType, ValueKind, optional
from .mapper import MappingOutcome, RecordMapper
from .schema import FieldDescriptor, RecordSchema, SchemaError, column, register_schema, schema_for
from .validation import INVALID_MODEL_PREFIX, JsonSchemaValidator

__all__ = [
    "CoercionError",
    "FieldType",
    "ValueKind",
    "optional",
    "MappingOutcome",
    "RecordMapper",
    "FieldDescriptor",
    "RecordSchema",
    "SchemaError",
    "column",
    "register_schema",
    "schema_for",
    "INVALID_MODEL_PREFIX",
    "JsonSchemaValidator",
]
