from __future__ import annotations

import dataclasses
import keyword
from datetime import date
from decimal import Decimal
from typing import Any

from ..mapping.kinds import CoercionError, FieldType, ValueKind, coerce
from ..mapping.schema import RecordSchema, SchemaError, column
from .loader import ConfigError, FieldConfig, RecordConfig

"""Record types declared in the YAML config.

The ``record`` section becomes a dataclass whose fields carry ``column()``
declarations, so a YAML-declared record is mapped exactly like one written in
Python.
"""

__all__ = [
    "build_record_schema",
]

_PY_TYPES: dict[ValueKind, type] = {
    ValueKind.TEXT: str,
    ValueKind.INTEGER: int,
    ValueKind.FLOAT: float,
    ValueKind.DECIMAL: Decimal,
    ValueKind.BOOLEAN: bool,
    ValueKind.DATE: date,
}


def _declared_default(field_cfg: FieldConfig, field_type: FieldType) -> Any:
    if not field_cfg.has_default or field_cfg.default is None:
        return None
    try:
        return coerce(str(field_cfg.default), field_type)
    except CoercionError as e:
        raise ConfigError(f"record field '{field_cfg.name}': invalid default: {e}") from e


def build_record_schema(record_cfg: RecordConfig) -> RecordSchema[Any]:
    """Create the dataclass described by ``record_cfg`` and return its schema."""
    definitions = []
    for f in record_cfg.fields:
        if keyword.iskeyword(f.name):
            raise ConfigError(f"record field '{f.name}': a Python keyword cannot be a field name")
        field_type = FieldType(ValueKind(f.kind), nullable=f.nullable)
        annotation: Any = _PY_TYPES[field_type.kind]
        if field_type.nullable or field_type.kind in (ValueKind.TEXT, ValueKind.DATE):
            annotation = annotation | None
        extra: dict[str, Any] = {}
        if f.has_default:
            extra["default"] = _declared_default(f, field_type)
        declaration = column(
            field_type,
            f.column,
            required=f.required,
            constraints=f.constraints,
            **extra,
        )
        definitions.append((f.name, annotation, declaration))

    try:
        record_type = dataclasses.make_dataclass(record_cfg.name, definitions)
    except TypeError as e:
        raise ConfigError(f"record '{record_cfg.name}': {e}") from e
    try:
        return RecordSchema.from_dataclass(record_type)
    except SchemaError as e:
        raise ConfigError(f"record '{record_cfg.name}': {e}") from e
