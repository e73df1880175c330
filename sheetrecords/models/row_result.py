from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

"""Per-row outcome of an import.

A result carries either the constructed record (success) or a human readable
failure message, never both. ``row_number`` is the native 1-based sheet row.
"""

__all__ = [
    "FailureKind",
    "RowImportResult",
]

T = TypeVar("T")


class FailureKind(Enum):
    """Why a row failed. Value doubles as ``error_type`` in the error log."""
    COERCION = "COERCION_ERROR"  # セル文字列が型変換できない
    VALIDATION = "VALIDATION_ERROR"  # 制約違反
    UNEXPECTED = "UNEXPECTED_ERROR"


@dataclass(frozen=True)
class RowImportResult(Generic[T]):
    row_number: int
    record: T | None = None
    success: bool = False
    message: str | None = None
    failure: FailureKind | None = None

    def __post_init__(self) -> None:
        if self.row_number < 1:
            raise ValueError(f"row_number must be positive, got {self.row_number}")

    @classmethod
    def succeeded(cls, row_number: int, record: T) -> RowImportResult[T]:
        return cls(row_number=row_number, record=record, success=True)

    @classmethod
    def failed(cls, row_number: int, message: str, failure: FailureKind) -> RowImportResult[T]:
        return cls(row_number=row_number, message=message, failure=failure)
