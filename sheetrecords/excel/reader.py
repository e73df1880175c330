from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .cells import Cell, cell_text

if TYPE_CHECKING:
    from .workbook import Worksheet

"""Sheet reading: header normalization, column catalog and data row iteration.

The first present row of a sheet is the header row. Its texts are normalized
once into a ``ColumnCatalog``; every later present row is a data row.
Structurally absent rows (``None`` entries in the worksheet row sequence) are
skipped, rows that exist but hold no values are still produced.
"""

__all__ = [
    "normalize_header",
    "SheetRow",
    "ColumnCatalog",
    "SheetData",
    "data_rows",
    "read_sheet",
]

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_header(text: str | None, *, compact: bool = False) -> str:
    """Canonical header key: trimmed and upper-cased.

    ``compact=True`` also removes inner whitespace (``"Full  Name"`` == ``"FULLNAME"``).
    """
    key = (text or "").strip().upper()
    if compact:
        key = _WHITESPACE.sub("", key)
    return key


@dataclass(frozen=True)
class SheetRow:
    """One present row of a worksheet.

    number は シート上の 1 始まり行番号 (ヘッダ行を含む物理位置)。
    """
    number: int
    cells: Sequence[Cell | None] = ()

    def cell(self, index: int) -> Cell | None:
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return None

    def texts(self) -> list[str | None]:
        return [cell_text(c) for c in self.cells]


@dataclass(frozen=True)
class ColumnCatalog:
    names: tuple[str, ...] = ()
    compact: bool = False
    _positions: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for position, name in enumerate(self.names):
            # 重複ヘッダは先勝ち
            self._positions.setdefault(name, position)

    @classmethod
    def from_header(cls, header: SheetRow | None, *, compact: bool = False) -> ColumnCatalog:
        if header is None:
            return cls((), compact)
        return cls(tuple(normalize_header(t, compact=compact) for t in header.texts()), compact)

    def index_of(self, column_name: str | None) -> int:
        """Position of ``column_name`` after normalization, ``-1`` when not present."""
        return self._positions.get(normalize_header(column_name, compact=self.compact), -1)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, column_name: object) -> bool:
        return isinstance(column_name, str) and self.index_of(column_name) >= 0


@dataclass(frozen=True)
class SheetData:
    sheet_name: str
    catalog: ColumnCatalog
    rows: Iterator[SheetRow]  # lazy, single pass


def _present(rows: Iterable[SheetRow | None]) -> Iterator[SheetRow]:
    for row in rows:
        if row is not None:
            yield row


def data_rows(rows: Iterable[SheetRow | None]) -> tuple[SheetRow | None, Iterator[SheetRow]]:
    """Split a worksheet row sequence into its header row and a lazy data row iterator."""
    present = _present(rows)
    header = next(present, None)
    return header, present


def read_sheet(worksheet: Worksheet, *, compact: bool = False) -> SheetData:
    """Build the column catalog from the header row and return the remaining data rows."""
    header, rows = data_rows(worksheet.iter_rows())
    catalog = ColumnCatalog.from_header(header, compact=compact)
    if header is None:
        logger.info(f"sheet '{worksheet.name}' has no rows")
    else:
        logger.debug(f"sheet '{worksheet.name}' header row={header.number} columns={list(catalog.names)}")
    return SheetData(sheet_name=worksheet.name, catalog=catalog, rows=rows)
