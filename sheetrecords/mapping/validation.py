from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import jsonschema
from jsonschema.exceptions import SchemaError as JsonSchemaError

from .kinds import ValueKind

if TYPE_CHECKING:
    from .schema import FieldDescriptor

"""Declarative record validation backed by jsonschema.

Field declarations carry JSON-Schema keywords (``minimum``, ``pattern``, ``enum`` ...)
and a ``required`` flag. They are compiled once per record type into a
Draft 2020-12 validator; each record is checked as a JSON-like object holding its
non-null field values.

- a required field holding blank text counts as missing
- DATE values are checked in ISO form (``"2024-01-15"``), so string keywords such
  as ``pattern``, ``format`` or ``enum`` apply to them
- float keywords of DECIMAL fields are compiled to ``Decimal``
"""

__all__ = [
    "INVALID_MODEL_PREFIX",
    "RecordValidator",
    "JsonSchemaValidator",
    "InvalidConstraintsError",
    "invalid_model_message",
]

INVALID_MODEL_PREFIX = "Model is not valid: "

RecordValidator = Callable[[Any], Sequence[str]]


class InvalidConstraintsError(ValueError):
    """Raised when field constraints do not form a valid JSON schema."""


def invalid_model_message(violations: Sequence[str]) -> str:
    return INVALID_MODEL_PREFIX + ", ".join(violations)


def _property_schema(descriptor: FieldDescriptor) -> dict[str, Any]:
    constraints: Mapping[str, Any] = descriptor.constraints
    if descriptor.field_type.kind is not ValueKind.DECIMAL:
        return dict(constraints)
    # Decimal と float は混在演算できない (multipleOf)
    return {
        key: Decimal(str(value)) if isinstance(value, float) else value
        for key, value in constraints.items()
    }


class JsonSchemaValidator:
    def __init__(self, fields: Sequence[FieldDescriptor]) -> None:
        self._fields = tuple(fields)
        self._labels = {f.attribute: f.column_name for f in self._fields}
        self.schema: dict[str, Any] = {
            "type": "object",
            "properties": {f.attribute: _property_schema(f) for f in self._fields},
            "required": [f.attribute for f in self._fields if f.required],
        }
        try:
            jsonschema.Draft202012Validator.check_schema(self.schema)
        except JsonSchemaError as e:
            raise InvalidConstraintsError(f"invalid field constraints: {e.message}") from e
        self._validator = jsonschema.Draft202012Validator(self.schema)

    @property
    def is_trivial(self) -> bool:
        """True when no field declares a constraint (nothing can fail)."""
        return not self.schema["required"] and not any(self.schema["properties"].values())

    def _instance(self, record: Any) -> dict[str, Any]:
        values = {}
        for f in self._fields:
            value = getattr(record, f.attribute, None)
            if value is None:
                continue
            if f.required and isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, date):
                value = value.isoformat()
            values[f.attribute] = value
        return values

    def __call__(self, record: Any) -> list[str]:
        errors = sorted(
            self._validator.iter_errors(self._instance(record)),
            key=lambda e: (str(e.path[0]) if e.path else "", e.message),
        )
        messages = []
        for error in errors:
            if error.path:
                label = self._labels.get(str(error.path[0]), str(error.path[0]))
                messages.append(f"{label}: {error.message}")
            else:
                messages.append(error.message)
        return messages
