"""`sheetrecords` maps spreadsheet rows onto typed records, one result per row.

Typical use::

    @dataclass
    class Person:
        name: str | None = column(ValueKind.TEXT, "Full Name", required=True)
        age: int | None = column(optional(ValueKind.INTEGER), minimum=0)

    with open("people.xlsx", "rb") as fh:
        for result in read_records(fh, Person, "People"):
            ...
"""

from __future__ import annotations

from .excel.cells import Cell, CellKind
from .excel.frame import FrameWorkbook
from .excel.workbook import WorkbookError
from .mapping import (
    INVALID_MODEL_PREFIX,
    CoercionError,
    FieldDescriptor,
    FieldType,
    RecordSchema,
    SchemaError,
    ValueKind,
    column,
    optional,
    register_schema,
    schema_for,
)
from .models import FailureKind, ImportSummary, RowImportResult
from .services.importer import import_rows, read_records, run_import

__all__ = [
    "read_records",
    "import_rows",
    "run_import",
    "RowImportResult",
    "FailureKind",
    "ImportSummary",
    "WorkbookError",
    "FrameWorkbook",
    "Cell",
    "CellKind",
    "column",
    "optional",
    "ValueKind",
    "FieldType",
    "FieldDescriptor",
    "RecordSchema",
    "SchemaError",
    "CoercionError",
    "INVALID_MODEL_PREFIX",
    "register_schema",
    "schema_for",
]

__version__ = "0.1.0"
