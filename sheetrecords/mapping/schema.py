from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from .kinds import FieldType, ValueKind, default_for
from .validation import InvalidConstraintsError, JsonSchemaValidator, RecordValidator

"""Record schemas: the explicit field descriptor table of a record type.

A record type is registered once; its table tells the mapper which column feeds
which attribute and how the cell text is coerced. Dataclasses declare the table
inline with ``column()``::

    @dataclass
    class Person:
        name: str | None = column(ValueKind.TEXT, "Full Name", required=True)
        age: int | None = column(optional(ValueKind.INTEGER), minimum=0)

Other classes register a ``RecordSchema`` built from ``FieldDescriptor`` objects.
Records are constructed with keyword arguments for the mapped fields only, so
every field needs a default.
"""

__all__ = [
    "FieldDescriptor",
    "RecordSchema",
    "SchemaError",
    "column",
    "register_schema",
    "schema_for",
    "clear_registry",
]

T = TypeVar("T")

FIELD_METADATA_KEY = "sheetrecords"


class SchemaError(Exception):
    """Raised when a record type cannot be turned into a field descriptor table."""


@dataclass(frozen=True)
class FieldDescriptor:
    attribute: str
    field_type: FieldType
    column: str | None = None  # 表示名 (None なら attribute 名)
    required: bool = False
    constraints: Mapping[str, Any] = field(default_factory=dict)

    @property
    def column_name(self) -> str:
        """Logical column name: the explicit column when declared, else the attribute name."""
        return self.column if self.column is not None else self.attribute

    @property
    def is_mappable(self) -> bool:
        return bool(self.column_name.strip())


def _as_field_type(kind: ValueKind | FieldType, nullable: bool) -> FieldType:
    if isinstance(kind, FieldType):
        return FieldType(kind.kind, nullable or kind.nullable)
    return FieldType(kind, nullable)


def column(
    kind: ValueKind | FieldType,
    name: str | None = None,
    *,
    nullable: bool = False,
    required: bool = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
    constraints: Mapping[str, Any] | None = None,
    **keywords: Any,
) -> Any:
    """Declare a mapped dataclass field.

    Args:
        kind: value kind (or ``optional(kind)``) the cell text is coerced to.
        name: column header to read from; defaults to the attribute name.
        nullable: shorthand for ``optional(kind)``.
        required: the validator rejects records where the value is ``None``.
        default / default_factory: value kept when the column is missing or empty.
            Without either, the kind's default is used (``None`` for nullable kinds).
        constraints / **keywords: JSON-Schema keywords checked after construction.
    """
    field_type = _as_field_type(kind, nullable)
    metadata = {
        FIELD_METADATA_KEY: {
            "field_type": field_type,
            "column": name,
            "required": required,
            "constraints": {**(constraints or {}), **keywords},
        }
    }
    if default_factory is not dataclasses.MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    if default is dataclasses.MISSING:
        default = default_for(field_type)
    return field(default=default, metadata=metadata)


class RecordSchema(Generic[T]):
    """Descriptor table plus construction and validation for one record type."""

    def __init__(
        self,
        record_type: type[T],
        fields: Iterable[FieldDescriptor],
        *,
        factory: Callable[..., T] | None = None,
        validators: Sequence[RecordValidator] = (),
    ) -> None:
        self.record_type = record_type
        self.fields: tuple[FieldDescriptor, ...] = tuple(fields)
        self.factory: Callable[..., T] = factory or record_type
        seen: set[str] = set()
        for descriptor in self.fields:
            if descriptor.attribute in seen:
                raise SchemaError(f"{record_type.__name__}: duplicate field '{descriptor.attribute}'")
            seen.add(descriptor.attribute)
        try:
            constraint_validator = JsonSchemaValidator(self.fields)
        except InvalidConstraintsError as e:
            raise SchemaError(f"{record_type.__name__}: {e}") from e
        self.validators: tuple[RecordValidator, ...] = (
            tuple(validators) if constraint_validator.is_trivial else (constraint_validator, *validators)
        )

    @property
    def name(self) -> str:
        return self.record_type.__name__

    @classmethod
    def from_dataclass(cls, record_type: type[T], **kwargs: Any) -> RecordSchema[T]:
        """Read the ``column()`` declarations of a dataclass (fields without one are not mapped)."""
        if not dataclasses.is_dataclass(record_type):
            raise SchemaError(f"{record_type!r} is not a dataclass; register a RecordSchema explicitly")
        descriptors = []
        for f in dataclasses.fields(record_type):
            declared = f.metadata.get(FIELD_METADATA_KEY)
            if declared is None or not f.init:
                continue
            descriptors.append(
                FieldDescriptor(
                    attribute=f.name,
                    field_type=declared["field_type"],
                    column=declared["column"],
                    required=declared["required"],
                    constraints=MappingProxyType(declared["constraints"]),
                )
            )
        return cls(record_type, descriptors, **kwargs)

    def build(self, values: Mapping[str, Any]) -> T:
        """Construct a record from coerced values; absent fields keep their defaults."""
        return self.factory(**values)

    def validate(self, record: T) -> list[str]:
        violations: list[str] = []
        for validator in self.validators:
            violations.extend(validator(record))
        return violations

    def __repr__(self) -> str:
        return f"RecordSchema({self.name}, fields={[d.attribute for d in self.fields]})"


_registry: dict[type, RecordSchema[Any]] = {}
_registry_lock = threading.Lock()


def register_schema(schema: RecordSchema[T]) -> RecordSchema[T]:
    with _registry_lock:
        _registry[schema.record_type] = schema
    return schema


def schema_for(record_type: type[T] | RecordSchema[T]) -> RecordSchema[T]:
    """Return the registered schema of ``record_type``, registering dataclasses on first use."""
    if isinstance(record_type, RecordSchema):
        return record_type
    with _registry_lock:
        schema = _registry.get(record_type)
        if schema is None:
            schema = RecordSchema.from_dataclass(record_type)
            _registry[record_type] = schema
    return schema


def clear_registry() -> None:
    """Forget registered schemas. Mainly for testing purposes."""
    with _registry_lock:
        _registry.clear()
