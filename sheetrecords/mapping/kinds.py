from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from ..excel.cells import DAY_NAMES, MONTH_NAMES

"""Value kinds and text -> value coercion.

Parsing follows one fixed convention regardless of the host locale:
dot decimal separator, ``True``/``False`` booleans (case-insensitive) and
English long dates (``Monday, January 15, 2024``), ``M/D/YYYY`` or ISO dates.
"""

__all__ = [
    "ValueKind",
    "FieldType",
    "optional",
    "CoercionError",
    "normalize_numeric_text",
    "coerce",
    "default_for",
]


class ValueKind(Enum):
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"


NUMERIC_KINDS = frozenset({ValueKind.INTEGER, ValueKind.FLOAT, ValueKind.DECIMAL})


@dataclass(frozen=True)
class FieldType:
    kind: ValueKind
    nullable: bool = False

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    def __str__(self) -> str:
        return f"{self.kind.value}?" if self.nullable else self.kind.value


def optional(kind: ValueKind | FieldType) -> FieldType:
    """Nullable wrapper of ``kind``."""
    base = kind.kind if isinstance(kind, FieldType) else kind
    return FieldType(base, nullable=True)


class CoercionError(ValueError):
    """Raised when cell text cannot be parsed into the declared field type."""

    def __init__(self, text: str, field_type: FieldType, reason: str | None = None) -> None:
        self.text = text
        self.field_type = field_type
        self.reason = reason
        detail = f" ({reason})" if reason else ""
        super().__init__(f"'{text}' is not a valid {field_type.kind.value}{detail}")


_INTEGER = re.compile(r"[+-]?\d+")
_REAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_WHITESPACE = re.compile(r"\s+")
_LONG_DATE = re.compile(r"(?:(?P<weekday>[A-Za-z]+),\s*)?(?P<month>[A-Za-z]+)\s+(?P<day>\d{1,2}),\s*(?P<year>\d{4})")
_US_DATE = re.compile(r"(?P<month>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{4})")
_MONTHS = {name.upper(): index for index, name in enumerate(MONTH_NAMES, start=1)}
_DAYS = {name.upper() for name in DAY_NAMES}


def normalize_numeric_text(text: str) -> str:
    """Strip whitespace and reduce the separators to a single dot decimal point.

    When both ``,`` and ``.`` occur, the one appearing last is the decimal point and the
    other one is a thousands separator. Otherwise commas are decimal commas.
    ``"1,234.5"``, ``"1234,5"``, ``"1 234,5"`` and ``"1.234,5"`` all become ``"1234.5"``.
    """
    compact = _WHITESPACE.sub("", text)
    if "," in compact and "." in compact:
        if compact.rfind(",") > compact.rfind("."):
            return compact.replace(".", "").replace(",", ".")
        return compact.replace(",", "")
    return compact.replace(",", ".")


def _to_text(text: str, field_type: FieldType) -> str:
    return text


def _to_integer(text: str, field_type: FieldType) -> int:
    if not _INTEGER.fullmatch(text):
        raise CoercionError(text, field_type)
    return int(text)


def _to_float(text: str, field_type: FieldType) -> float:
    if not _REAL.fullmatch(text):
        raise CoercionError(text, field_type)
    value = float(text)
    if value in (float("inf"), float("-inf")):
        raise CoercionError(text, field_type, "out of range")
    return value


def _to_decimal(text: str, field_type: FieldType) -> Decimal:
    if not _REAL.fullmatch(text):
        raise CoercionError(text, field_type)
    try:
        return Decimal(text)
    except InvalidOperation as e:  # pragma: no cover - guarded by the pattern
        raise CoercionError(text, field_type) from e


def _to_boolean(text: str, field_type: FieldType) -> bool:
    folded = text.strip().casefold()
    if folded == "true":
        return True
    if folded == "false":
        return False
    raise CoercionError(text, field_type, "expected True or False")


def _to_date(text: str, field_type: FieldType) -> date:
    stripped = text.strip()
    try:
        if m := _LONG_DATE.fullmatch(stripped):
            weekday = m.group("weekday")
            if weekday is not None and weekday.upper() not in _DAYS:
                raise CoercionError(text, field_type, f"unknown weekday '{weekday}'")
            month = _MONTHS.get(m.group("month").upper())
            if month is None:
                raise CoercionError(text, field_type, f"unknown month '{m.group('month')}'")
            return date(int(m.group("year")), month, int(m.group("day")))
        if m := _US_DATE.fullmatch(stripped):
            return date(int(m.group("year")), int(m.group("month")), int(m.group("day")))
        return datetime.fromisoformat(stripped).date()
    except CoercionError:
        raise
    except ValueError as e:
        raise CoercionError(text, field_type, str(e)) from e


_COERCERS: dict[ValueKind, Callable[[str, FieldType], Any]] = {
    ValueKind.TEXT: _to_text,
    ValueKind.INTEGER: _to_integer,
    ValueKind.FLOAT: _to_float,
    ValueKind.DECIMAL: _to_decimal,
    ValueKind.BOOLEAN: _to_boolean,
    ValueKind.DATE: _to_date,
}

_DEFAULTS: dict[ValueKind, Any] = {
    ValueKind.TEXT: None,
    ValueKind.INTEGER: 0,
    ValueKind.FLOAT: 0.0,
    ValueKind.DECIMAL: Decimal("0"),
    ValueKind.BOOLEAN: False,
    ValueKind.DATE: None,
}


def coerce(text: str, field_type: FieldType) -> Any:
    """Parse ``text`` into the (nullable-unwrapped) kind of ``field_type``.

    Raises:
        CoercionError: when the text does not parse.
    """
    if field_type.is_numeric:
        text = normalize_numeric_text(text)
    return _COERCERS[field_type.kind](text, field_type)


def default_for(field_type: FieldType) -> Any:
    """Value a field keeps when its column is unmatched or its cell is empty."""
    if field_type.nullable:
        return None
    return _DEFAULTS[field_type.kind]
