from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Protocol

import openpyxl
import xlrd
from openpyxl.cell.read_only import EmptyCell
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from .cells import Cell, CellKind
from .reader import SheetRow

"""Workbook decoding adapters.

Containers are recognised by their leading bytes:
- zipped XML (.xlsx / .xlsm) -> openpyxl, read-only, ``data_only=True`` so formula
  cells expose the results computed when the workbook was last saved; a formula
  without a stored result is kept as a FORMULA cell with no value
- legacy binary (.xls, OLE2) -> xlrd
- ``.csv`` paths -> pandas (see ``sheetrecords.excel.frame``)

Every adapter satisfies the ``Workbook`` / ``Worksheet`` protocols below. Worksheet
rows are produced one entry per native row position, ``None`` for absent rows.
"""

__all__ = [
    "WorkbookError",
    "Worksheet",
    "Workbook",
    "OpenpyxlWorkbook",
    "XlrdWorkbook",
    "open_workbook",
    "resolve_worksheet",
]

logger = logging.getLogger(__name__)

ZIP_SIGNATURE = b"PK\x03\x04"
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class WorkbookError(Exception):
    """Raised when a workbook cannot be opened or no worksheet can be resolved."""


class Worksheet(Protocol):
    name: str

    def iter_rows(self) -> Iterator[SheetRow | None]:
        ...


class Workbook(Protocol):
    @property
    def sheet_names(self) -> list[str]:
        ...

    def sheet_by_name(self, name: str) -> Worksheet:
        ...

    def sheet_at(self, index: int) -> Worksheet:
        ...

    def has_sheet(self, name: str) -> bool:
        ...

    def close(self) -> None:
        ...


class _IndexedWorkbook:
    """Shared name/index lookup over ``sheet_names``."""

    @property
    def sheet_names(self) -> list[str]:  # pragma: no cover - overridden
        raise NotImplementedError

    def _load_sheet(self, index: int) -> Worksheet:  # pragma: no cover - overridden
        raise NotImplementedError

    def _index_of(self, name: str) -> int:
        """Exact match first, then the first name equal ignoring case (-1 when none)."""
        names = self.sheet_names
        if name in names:
            return names.index(name)
        folded = name.casefold()
        for index, candidate in enumerate(names):
            if candidate.casefold() == folded:
                return index
        return -1

    def has_sheet(self, name: str) -> bool:
        return self._index_of(name) >= 0

    def sheet_by_name(self, name: str) -> Worksheet:
        index = self._index_of(name)
        if index < 0:
            raise WorkbookError(f"worksheet not found: {name!r}")
        return self._load_sheet(index)

    def sheet_at(self, index: int) -> Worksheet:
        if not 0 <= index < len(self.sheet_names):
            raise WorkbookError(f"worksheet index out of range: {index} (workbook has {len(self.sheet_names)} sheets)")
        return self._load_sheet(index)


# --- openpyxl -----------------------------------------------------------------


class OpenpyxlWorksheet:
    """Rows of one xlsx sheet.

    Two read-only views of the same sheet are walked in lockstep: ``values``
    (``data_only=True``, the results Excel stored when saving) and ``formulas``
    (formula text), which tells which cells hold a formula.
    """

    def __init__(self, values: Any, formulas: Any) -> None:
        self._values = values
        self._formulas = formulas
        self.name: str = values.title

    @staticmethod
    def _convert(cell: Any, source: Any) -> Cell | None:
        if isinstance(cell, EmptyCell):
            return None
        if cell.data_type == "e":
            return Cell(CellKind.ERROR, cell.value)
        if source.data_type == "f":
            # 計算結果が保存されていない数式は value=None のまま残す
            return Cell(CellKind.FORMULA, cell.value)
        converted = Cell.from_value(cell.value)
        if converted.kind is CellKind.NUMERIC and not converted.is_date and getattr(cell, "is_date", False):
            return Cell(CellKind.NUMERIC, converted.value, is_date=True)
        return converted

    def iter_rows(self) -> Iterator[SheetRow | None]:
        # 保存済み dimension が不正なファイルがあるため再計算させる
        self._values.reset_dimensions()
        self._formulas.reset_dimensions()
        rows = zip(self._values.iter_rows(), self._formulas.iter_rows())
        for number, (raw, sources) in enumerate(rows, start=1):
            if all(isinstance(c, EmptyCell) for c in raw):
                yield None
                continue
            yield SheetRow(number=number, cells=tuple(self._convert(c, s) for c, s in zip(raw, sources)))


class OpenpyxlWorkbook(_IndexedWorkbook):
    def __init__(self, stream: BinaryIO) -> None:
        content = stream.read()
        try:
            self._book = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True, keep_links=False)
            self._formula_book = openpyxl.load_workbook(io.BytesIO(content), read_only=True, keep_links=False)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise WorkbookError(f"cannot open xlsx workbook: {e}") from e

    @property
    def sheet_names(self) -> list[str]:
        return [ws.title for ws in self._book.worksheets]

    def _load_sheet(self, index: int) -> Worksheet:
        return OpenpyxlWorksheet(self._book.worksheets[index], self._formula_book.worksheets[index])

    def close(self) -> None:
        self._book.close()
        self._formula_book.close()


# --- xlrd ---------------------------------------------------------------------


class XlrdWorksheet:
    def __init__(self, sheet: Any, datemode: int) -> None:
        self._sheet = sheet
        self._datemode = datemode
        self.name: str = sheet.name

    def _convert(self, cell: Any) -> Cell | None:
        ctype = cell.ctype
        if ctype == xlrd.XL_CELL_EMPTY:
            return None
        if ctype == xlrd.XL_CELL_BLANK:
            return Cell(CellKind.BLANK)
        if ctype == xlrd.XL_CELL_TEXT:
            return Cell(CellKind.TEXT, cell.value)
        if ctype == xlrd.XL_CELL_NUMBER:
            return Cell(CellKind.NUMERIC, cell.value)
        if ctype == xlrd.XL_CELL_DATE:
            try:
                value = xlrd.xldate_as_datetime(cell.value, self._datemode)
            except (xlrd.xldate.XLDateError, ValueError, OverflowError):
                return Cell(CellKind.NUMERIC, cell.value)
            return Cell(CellKind.NUMERIC, value, is_date=True)
        if ctype == xlrd.XL_CELL_BOOLEAN:
            return Cell(CellKind.BOOLEAN, bool(cell.value))
        return Cell(CellKind.ERROR, cell.value)

    def iter_rows(self) -> Iterator[SheetRow | None]:
        for index in range(self._sheet.nrows):
            if self._sheet.row_len(index) == 0:
                yield None
                continue
            yield SheetRow(number=index + 1, cells=tuple(self._convert(c) for c in self._sheet.row(index)))


class XlrdWorkbook(_IndexedWorkbook):
    def __init__(self, content: bytes) -> None:
        try:
            self._book = xlrd.open_workbook(file_contents=content, on_demand=True, ragged_rows=True)
        except (xlrd.XLRDError, CompDocError) as e:
            raise WorkbookError(f"cannot open xls workbook: {e}") from e

    @property
    def sheet_names(self) -> list[str]:
        return self._book.sheet_names()

    def _load_sheet(self, index: int) -> Worksheet:
        return XlrdWorksheet(self._book.sheet_by_index(index), self._book.datemode)

    def close(self) -> None:
        self._book.release_resources()


# --- entry points ---------------------------------------------------------------


def _decode(content: bytes) -> Workbook:
    if content.startswith(ZIP_SIGNATURE):
        return OpenpyxlWorkbook(io.BytesIO(content))
    if content.startswith(OLE2_SIGNATURE):
        return XlrdWorkbook(content)
    raise WorkbookError("unrecognized spreadsheet container (expected xlsx or xls content)")


@contextmanager
def open_workbook(source: str | Path | BinaryIO | bytes) -> Iterator[Workbook]:
    """Open a workbook from a path, byte string or binary stream.

    The workbook is closed when the ``with`` block exits, including on error or
    when a generator holding it is closed early.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise WorkbookError(f"source file not found: {path}")
        if path.suffix.lower() == ".csv":
            from .frame import FrameWorkbook

            workbook: Workbook = FrameWorkbook.from_csv(path)
        else:
            try:
                content = path.read_bytes()
            except OSError as e:
                raise WorkbookError(f"cannot read source file: {path}: {e}") from e
            workbook = _decode(content)
    elif isinstance(source, bytes):
        workbook = _decode(source)
    else:
        workbook = _decode(source.read())
    try:
        yield workbook
    finally:
        workbook.close()


def resolve_worksheet(workbook: Workbook, worksheet_name: str | None = None) -> Worksheet:
    """Pick the named worksheet, falling back to the first sheet.

    A blank name or a name the workbook does not contain selects sheet 0.
    """
    if worksheet_name and worksheet_name.strip():
        if workbook.has_sheet(worksheet_name):
            return workbook.sheet_by_name(worksheet_name)
        logger.info(f"worksheet '{worksheet_name}' not found -> using first sheet")
    return workbook.sheet_at(0)
