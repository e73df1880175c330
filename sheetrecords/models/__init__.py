"""Result models for the sheet -> typed record importer."""

from .error_record import ErrorRecord
from .import_summary import ImportSummary
from .row_result import FailureKind, RowImportResult

__all__ = [
    # Per-row outcome
    "FailureKind",
    "RowImportResult",
    # Run reporting
    "ErrorRecord",
    "ImportSummary",
]
