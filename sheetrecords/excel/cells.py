from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

"""Typed cell model and cell value extraction.

Decoder adapters (openpyxl / xlrd / pandas) convert their native cells into
``Cell`` so that the rest of the engine never touches a workbook library.
``cell_text`` only stringifies; parsing into field types happens later in
``sheetrecords.mapping.kinds``.
"""

__all__ = [
    "CellKind",
    "Cell",
    "cell_text",
    "format_number",
    "format_long_date",
    "DAY_NAMES",
    "MONTH_NAMES",
]

# 固定の英語表記 (ホストのロケールに依存しない)
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class CellKind(Enum):
    """Raw cell type tag exposed by the decoder."""
    BLANK = "blank"
    TEXT = "text"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    FORMULA = "formula"  # value holds the evaluated result
    ERROR = "error"


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    value: Any = None
    is_date: bool = False  # NUMERIC only: number format is a date format

    @classmethod
    def from_value(cls, value: Any) -> Cell:
        """Classify a decoded Python scalar.

        bool is checked before int since bool is an int subclass.
        """
        if value is None:
            return cls(CellKind.BLANK)
        if isinstance(value, bool):
            return cls(CellKind.BOOLEAN, value)
        if isinstance(value, (datetime, date, time)):
            return cls(CellKind.NUMERIC, value, is_date=True)
        if isinstance(value, (int, float, Decimal)):
            return cls(CellKind.NUMERIC, value)
        if isinstance(value, str):
            return cls(CellKind.TEXT, value)
        return cls(CellKind.ERROR, value)


def format_number(value: Any) -> str:
    """Canonical decimal rendering: ``5.0`` -> ``"5"``, ``1234.5`` -> ``"1234.5"``."""
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return str(value.quantize(Decimal(1)))
        return str(value.normalize())
    return str(value)


def format_long_date(value: date | datetime) -> str:
    """Render ``Monday, January 15, 2024``."""
    return f"{DAY_NAMES[value.weekday()]}, {MONTH_NAMES[value.month - 1]} {value.day}, {value.year}"


def _date_text(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return format_long_date(value)
    if isinstance(value, time):
        # 時刻のみの書式
        return value.isoformat()
    return format_number(value)


def _scalar_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (datetime, date, time)):
        return _date_text(value)
    if isinstance(value, (int, float, Decimal)):
        return format_number(value)
    return str(value)


def cell_text(cell: Cell | None) -> str | None:
    """Return the normalized text of a cell, or ``None`` when there is nothing to map."""
    if cell is None:
        return None
    if cell.kind is CellKind.TEXT:
        return cell.value
    if cell.kind is CellKind.NUMERIC:
        if cell.value is None:
            return None
        return _date_text(cell.value) if cell.is_date else format_number(cell.value)
    if cell.kind is CellKind.BOOLEAN:
        return "True" if cell.value else "False"
    if cell.kind is CellKind.FORMULA:
        return _scalar_text(cell.value)
    return None
