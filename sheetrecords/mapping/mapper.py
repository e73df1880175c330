from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..excel.cells import CellKind, cell_text
from ..excel.reader import ColumnCatalog, SheetRow
from .kinds import CoercionError, coerce
from .schema import FieldDescriptor, RecordSchema

"""Column-to-field resolution and per-row record construction.

A ``RecordMapper`` binds the field descriptors of one schema to the column
catalog of one sheet. Binding happens once per sheet since header texts never
change during a scan; ``map_row`` then only fetches, coerces and constructs.
"""

__all__ = [
    "FieldBinding",
    "MappingOutcome",
    "RecordMapper",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FieldBinding:
    descriptor: FieldDescriptor
    index: int  # カタログ上の列位置


@dataclass(frozen=True)
class MappingOutcome(Generic[T]):
    """Result of mapping one row: a record, or the coercion errors that prevented it."""
    record: T | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class RecordMapper(Generic[T]):
    def __init__(self, schema: RecordSchema[T], catalog: ColumnCatalog) -> None:
        self.schema = schema
        self.catalog = catalog
        bindings: list[FieldBinding] = []
        unmatched: list[FieldDescriptor] = []
        for descriptor in schema.fields:
            if not descriptor.is_mappable:
                continue
            index = catalog.index_of(descriptor.column_name)
            if index < 0:
                unmatched.append(descriptor)
                continue
            bindings.append(FieldBinding(descriptor, index))
        self.bindings: tuple[FieldBinding, ...] = tuple(bindings)
        self.unmatched: tuple[FieldDescriptor, ...] = tuple(unmatched)
        if unmatched:
            logger.debug(f"{schema.name}: no column for fields {[d.column_name for d in unmatched]}")

    def map_row(self, row: SheetRow) -> MappingOutcome[T]:
        """Coerce the bound cells of ``row`` and construct the record.

        Empty cells leave the field at its default. Every field that fails to parse is
        reported, as is a formula cell the workbook holds no result for; no record is
        built in that case.
        """
        values: dict[str, Any] = {}
        errors: list[str] = []
        for binding in self.bindings:
            descriptor = binding.descriptor
            cell = row.cell(binding.index)
            if cell is not None and cell.kind is CellKind.FORMULA and cell.value is None:
                errors.append(f"column '{descriptor.column_name}': formula has no calculated value")
                continue
            text = cell_text(cell)
            if text is None:
                continue
            try:
                values[descriptor.attribute] = coerce(text, descriptor.field_type)
            except CoercionError as e:
                errors.append(f"column '{descriptor.column_name}': {e}")
        if errors:
            return MappingOutcome(errors=errors)
        return MappingOutcome(record=self.schema.build(values))
