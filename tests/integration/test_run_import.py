from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import pytest

from sheetrecords import ValueKind, WorkbookError, column, run_import
from sheetrecords.logging.error_log import ErrorLogBuffer

"""T010 相当: run_import で部分失敗 -> 成功行は届き、失敗行はエラーログへ。"""


@dataclass
class Person:
    full_name: str | None = column(ValueKind.TEXT, "Full Name", required=True)
    age: int = column(ValueKind.INTEGER, "Age", minimum=0)


def test_run_import_partial_failure(people_xlsx: Path, temp_workdir: Path):
    delivered = []
    summary = run_import(
        people_xlsx,
        Person,
        "People",
        error_log=ErrorLogBuffer(logs_dir=temp_workdir / "logs", source="people"),
        on_result=delivered.append,
    )

    assert summary.source == "people.xlsx"
    assert summary.sheet == "People"
    assert (summary.total_rows, summary.success_rows, summary.failed_rows) == (3, 2, 1)
    assert summary.has_failures
    assert summary.elapsed_seconds >= 0
    assert [r.row_number for r in delivered] == [2, 3, 4]

    lines = summary.error_log_path.read_text(encoding="utf-8").splitlines()
    (entry,) = [json.loads(line) for line in lines]
    assert entry["file"] == "people.xlsx"
    assert entry["row"] == 3
    assert entry["message"] == "column 'Age': 'thirty' is not a valid integer"


def test_run_import_success_writes_no_error_log(make_xlsx, temp_workdir: Path):
    path = make_xlsx({"S": [["Full Name", "Age"], ["A", 1]]}, directory=temp_workdir / "data")
    summary = run_import(path, Person, error_log=ErrorLogBuffer(logs_dir=temp_workdir / "logs"))
    assert not summary.has_failures
    assert summary.error_log_path is None
    assert list((temp_workdir / "logs").iterdir()) == []


def test_run_import_default_error_log_location(people_xlsx: Path, temp_workdir: Path):
    summary = run_import(people_xlsx, Person)
    assert summary.error_log_path.parent == Path("logs")
    assert summary.error_log_path.name.startswith("errors-people-")


def test_run_import_sheet_level_failure(temp_workdir: Path):
    broken = temp_workdir / "data" / "broken.xlsx"
    broken.write_bytes(b"\x00\x01 nothing to see")
    buf = ErrorLogBuffer(logs_dir=temp_workdir / "logs", source="broken")
    with pytest.raises(WorkbookError):
        run_import(broken, Person, error_log=buf)
    (entry,) = [json.loads(line) for line in buf.file_path.read_text(encoding="utf-8").splitlines()]
    assert entry["row"] == -1
    assert entry["error_type"] == "SHEET_ERROR"
    assert entry["sheet"] == ""


def test_run_import_from_bytes(people_xlsx: Path, temp_workdir: Path):
    summary = run_import(people_xlsx.read_bytes(), Person, "People", error_log=ErrorLogBuffer(logs_dir=temp_workdir / "logs"))
    assert summary.source == "<stream>"
    assert summary.total_rows == 3
