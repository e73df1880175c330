from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the import error log.

One JSON Lines record per failed row. ``row=-1`` marks a sheet-level fault
(workbook not openable, no worksheet) where no row applies.

The key set is fixed; see ``sheetrecords/contracts/error_log_schema.json``.
"""

__all__ = [
    "ErrorRecord",
    "SHEET_LEVEL_ROW",
    "SHEET_ERROR",
]

SHEET_LEVEL_ROW = -1
SHEET_ERROR = "SHEET_ERROR"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: source file name
        sheet: worksheet name (empty when it could not be resolved)
        row: 1-based sheet row, -1 for sheet-level faults
        error_type: UPPER_SNAKE classification (``FailureKind`` value or ``SHEET_ERROR``)
        message: human readable failure message
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
