from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO, TypeVar

from ..excel.reader import SheetRow, read_sheet
from ..excel.workbook import Worksheet, WorkbookError, open_workbook, resolve_worksheet
from ..logging.error_log import ErrorLogBuffer
from ..mapping.mapper import RecordMapper
from ..mapping.schema import RecordSchema, schema_for
from ..mapping.validation import invalid_model_message
from ..models.error_record import SHEET_ERROR, SHEET_LEVEL_ROW, ErrorRecord
from ..models.import_summary import ImportSummary
from ..models.row_result import FailureKind, RowImportResult
from .progress import ProgressTracker

"""Import orchestration: sheet -> lazy stream of per-row results.

Sheet-level work (open the container, pick the worksheet, read the header) runs
once when the first result is requested; a failure there raises
``WorkbookError`` and ends the import. Row-level faults never escape: each row
becomes a ``RowImportResult``, failed or not, and the scan moves on.

The workbook stays open only while the result generator is alive. It is closed
when the scan completes, raises, or the caller stops iterating and the
generator is closed.
"""

__all__ = [
    "WorkbookError",
    "read_records",
    "import_rows",
    "process_row",
    "run_import",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

Source = str | Path | BinaryIO | bytes


def process_row(mapper: RecordMapper[T], row: SheetRow) -> RowImportResult[T]:
    """Map and validate one data row. Never raises."""
    try:
        outcome = mapper.map_row(row)
        if not outcome.ok:
            return RowImportResult.failed(row.number, ", ".join(outcome.errors), FailureKind.COERCION)
        record = outcome.record
        violations = mapper.schema.validate(record)
        if violations:
            return RowImportResult.failed(row.number, invalid_model_message(violations), FailureKind.VALIDATION)
        return RowImportResult.succeeded(row.number, record)
    except Exception as e:
        # 行単位で隔離: 想定外の例外でもシート走査は継続する
        logger.warning(f"row {row.number}: unexpected {type(e).__name__}: {e}")
        return RowImportResult.failed(row.number, str(e) or type(e).__name__, FailureKind.UNEXPECTED)


def import_rows(
    worksheet: Worksheet,
    record_type: type[T] | RecordSchema[T],
    *,
    compact_headers: bool = False,
) -> Iterator[RowImportResult[T]]:
    """Yield one result per data row of an already opened worksheet."""
    schema = schema_for(record_type)
    sheet = read_sheet(worksheet, compact=compact_headers)
    mapper = RecordMapper(schema, sheet.catalog)
    logger.debug(
        f"sheet '{sheet.sheet_name}': {len(sheet.catalog)} columns, "
        f"{len(mapper.bindings)}/{len(schema.fields)} fields of {schema.name} bound"
    )
    for row in sheet.rows:
        result = process_row(mapper, row)
        if not result.success:
            logger.debug(f"row {result.row_number} failed: {result.message}")
        yield result


def read_records(
    source: Source,
    record_type: type[T] | RecordSchema[T],
    worksheet_name: str | None = "",
    *,
    compact_headers: bool = False,
) -> Iterator[RowImportResult[T]]:
    """Lazily import every data row of a workbook into ``record_type`` records.

    Args:
        source: path, raw bytes or binary stream of an xlsx / xls workbook (or a .csv path)
        record_type: dataclass declared with ``column()`` fields, or a ``RecordSchema``
        worksheet_name: sheet to read; blank or unknown names fall back to the first sheet
        compact_headers: also ignore inner whitespace when matching headers

    Raises:
        WorkbookError: on the first ``next()`` when the workbook cannot be opened or has no sheet.
    """
    schema = schema_for(record_type)
    with open_workbook(source) as workbook:
        worksheet = resolve_worksheet(workbook, worksheet_name)
        yield from import_rows(worksheet, schema, compact_headers=compact_headers)


def _source_label(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return Path(source).name
    name = getattr(source, "name", None)
    return Path(name).name if isinstance(name, str) and name else "<stream>"


def run_import(
    source: Source,
    record_type: type[T] | RecordSchema[T],
    worksheet_name: str | None = "",
    *,
    compact_headers: bool = False,
    error_log: ErrorLogBuffer | None = None,
    on_result: Callable[[RowImportResult[T]], None] | None = None,
) -> ImportSummary:
    """Consume a whole import, recording failures and returning run metrics.

    ``on_result`` is called with each ``RowImportResult`` (e.g. to persist records).
    Sheet-level faults are written to the error log and re-raised.
    """
    start_time = datetime.now(UTC)
    label = _source_label(source)
    error_log = error_log if error_log is not None else ErrorLogBuffer(source=Path(label).stem)
    schema = schema_for(record_type)

    total = success = failed = 0
    sheet_name = ""
    try:
        with open_workbook(source) as workbook, ProgressTracker(description=f"Importing {label}") as progress:
            worksheet = resolve_worksheet(workbook, worksheet_name)
            sheet_name = worksheet.name
            logger.info(f"Reading {label} sheet={sheet_name} record={schema.name}")
            for result in import_rows(worksheet, schema, compact_headers=compact_headers):
                total += 1
                if result.success:
                    success += 1
                else:
                    failed += 1
                    logger.warning(f"row {result.row_number}: {result.message}")
                    error_log.append(
                        ErrorRecord.create(
                            file=label,
                            sheet=sheet_name,
                            row=result.row_number,
                            error_type=result.failure.value if result.failure else FailureKind.UNEXPECTED.value,
                            message=result.message or "",
                        )
                    )
                progress.advance(result.success)
                if on_result is not None:
                    on_result(result)
    except WorkbookError as e:
        error_log.append(ErrorRecord.create(label, sheet_name, SHEET_LEVEL_ROW, SHEET_ERROR, str(e)))
        error_log.flush()
        raise

    error_log_path = error_log.flush()

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput_rps = total / elapsed_seconds if elapsed_seconds > 0 else 0.0

    return ImportSummary(
        source=label,
        sheet=sheet_name,
        total_rows=total,
        success_rows=success,
        failed_rows=failed,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput_rps,
        error_log_path=error_log_path,
    )
