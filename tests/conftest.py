# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any

import openpyxl
import pytest
from openpyxl.styles import Font

from sheetrecords.excel.cells import Cell
from sheetrecords.excel.reader import SheetRow
from sheetrecords.logging.init import LOGGER_NAME, reset_logging
from sheetrecords.mapping.schema import clear_registry

Rows = Sequence[Sequence[Any] | None]


class GridSheet:
    """In-memory worksheet: ``None`` rows are absent, lists are present rows (even all-None)."""

    def __init__(self, name: str, rows: Rows) -> None:
        self.name = name
        self._rows = rows
        self.pulled = 0  # iter_rows から取り出された行数

    def iter_rows(self) -> Iterator[SheetRow | None]:
        for number, values in enumerate(self._rows, start=1):
            self.pulled += 1
            if values is None:
                yield None
                continue
            yield SheetRow(number, tuple(None if v is None else Cell.from_value(v) for v in values))


@pytest.fixture()
def make_grid() -> Callable[..., GridSheet]:
    def _make(rows: Rows, name: str = "Sheet1") -> GridSheet:
        return GridSheet(name, rows)
    return _make


def _write_xlsx(path: Path, sheets: dict[str, Rows]) -> Path:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for sheet_name, rows in sheets.items():
        ws = wb.create_sheet(sheet_name)
        for r, values in enumerate(rows, start=1):
            if values is None:
                continue  # 行ごと書かない (構造的に欠落)
            if all(v is None for v in values):
                # 値なしだが存在する行: スタイル付き空セル
                ws.cell(row=r, column=1).font = Font(bold=True)
                continue
            for c, value in enumerate(values, start=1):
                if value is not None:
                    ws.cell(row=r, column=c, value=value)
    wb.save(path)
    return path


@pytest.fixture()
def make_xlsx(tmp_path: Path) -> Callable[..., Path]:
    def _make(sheets: dict[str, Rows], name: str = "book.xlsx", directory: Path | None = None) -> Path:
        return _write_xlsx((directory or tmp_path) / name, sheets)
    return _make


@pytest.fixture(autouse=True)
def _isolated_state() -> Iterator[None]:
    clear_registry()
    reset_logging()
    yield
    clear_registry()
    reset_logging()
    # setup_logging が付けたハンドラ (capsys の stdout を保持) を外す
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture()
def temp_workdir(monkeypatch) -> Iterator[Path]:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        for var in ("SHEETRECORDS_SOURCE", "SHEETRECORDS_WORKSHEET", "SHEETRECORDS_ERROR_LOG_DIR"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source: ./data/people.xlsx
worksheet: People
error_log_dir: ./logs
record:
  name: Person
  fields:
    - name: full_name
      column: Full Name
      kind: text
      required: true
    - name: age
      kind: integer
      nullable: true
      constraints:
        minimum: 0
    - name: salary
      kind: decimal
    - name: active
      kind: boolean
      default: true
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def people_rows() -> list[list[Any] | None]:
    return [
        ["Full Name", "Age", "Salary", "Active"],
        ["Alice", 30, "1,234.5", True],
        ["Bob", "thirty", "1000", False],
        ["Carol", None, "1234,5", None],
    ]


@pytest.fixture()
def people_xlsx(temp_workdir: Path, make_xlsx, people_rows) -> Path:
    return make_xlsx({"People": people_rows}, name="people.xlsx", directory=temp_workdir / "data")
