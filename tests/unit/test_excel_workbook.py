from __future__ import annotations

import io
import logging
from datetime import datetime
from types import SimpleNamespace

import pandas as pd
import pytest
import xlrd

from sheetrecords.excel.cells import Cell, CellKind
from sheetrecords.excel.frame import FrameWorkbook
from sheetrecords.excel.workbook import (
    OpenpyxlWorkbook,
    OpenpyxlWorksheet,
    WorkbookError,
    XlrdWorksheet,
    open_workbook,
    resolve_worksheet,
)


@pytest.fixture()
def two_sheet_book():
    return FrameWorkbook(
        {
            "First": pd.DataFrame([["A"], ["1"]]),
            "Second": pd.DataFrame([["B"], ["2"]]),
        }
    )


def test_resolve_named_sheet(two_sheet_book):
    assert resolve_worksheet(two_sheet_book, "Second").name == "Second"


@pytest.mark.parametrize("name", ["", "   ", None])
def test_resolve_blank_name_uses_first_sheet(two_sheet_book, name):
    assert resolve_worksheet(two_sheet_book, name).name == "First"


def test_resolve_unknown_name_falls_back_to_first_sheet(two_sheet_book, caplog):
    with caplog.at_level(logging.INFO, logger="sheetrecords"):
        sheet = resolve_worksheet(two_sheet_book, "Missing")
    assert sheet.name == "First"
    assert "worksheet 'Missing' not found" in caplog.text


def test_resolve_on_workbook_without_sheets():
    with pytest.raises(WorkbookError, match="index out of range"):
        resolve_worksheet(FrameWorkbook({}), "")


def test_sheet_lookup_ignores_case(two_sheet_book):
    assert two_sheet_book.has_sheet("second")
    assert two_sheet_book.sheet_by_name("SECOND").name == "Second"
    assert resolve_worksheet(two_sheet_book, "second").name == "Second"


def test_sheet_lookup_prefers_exact_name():
    book = FrameWorkbook({"data": pd.DataFrame([["a"]]), "Data": pd.DataFrame([["b"]])})
    assert book.sheet_by_name("Data").name == "Data"
    assert book.sheet_by_name("DATA").name == "data"


def test_sheet_by_name_unknown(two_sheet_book):
    with pytest.raises(WorkbookError, match="worksheet not found"):
        two_sheet_book.sheet_by_name("Nope")


def test_open_workbook_missing_path(tmp_path):
    with pytest.raises(WorkbookError, match="source file not found"):
        with open_workbook(tmp_path / "missing.xlsx"):
            pass


def test_open_workbook_unreadable_path(tmp_path):
    folder = tmp_path / "folder.xlsx"
    folder.mkdir()
    with pytest.raises(WorkbookError, match="cannot read source file"):
        with open_workbook(folder):
            pass


def test_open_workbook_unrecognized_content():
    with pytest.raises(WorkbookError, match="unrecognized spreadsheet container"):
        with open_workbook(b"just some text"):
            pass


def test_open_workbook_corrupt_zip():
    with pytest.raises(WorkbookError, match="cannot open xlsx workbook"):
        with open_workbook(b"PK\x03\x04 truncated"):
            pass


def test_openpyxl_rows_keep_native_numbers_and_types(make_xlsx):
    path = make_xlsx(
        {
            "Data": [
                None,
                ["Name", "Joined", "Active", "Count"],
                ["Alice", datetime(2024, 1, 15), True, 3],
                None,
                [None, None],
                ["Bob", None, False, 2.5],
            ]
        }
    )
    with open_workbook(path) as workbook:
        assert workbook.sheet_names == ["Data"]
        rows = list(resolve_worksheet(workbook, "Data").iter_rows())
    assert rows[0] is None
    assert rows[3] is None
    numbers = [r.number for r in rows if r is not None]
    assert numbers == [2, 3, 5, 6]
    alice = rows[2]
    assert alice.texts() == ["Alice", "Monday, January 15, 2024", "True", "3"]
    # 値なしで存在する行は空セルのみ
    assert all(t is None for t in rows[4].texts())
    bob = rows[5]
    assert bob.cell(1) is None
    assert bob.cell(2) == Cell(CellKind.BOOLEAN, False)


def test_openpyxl_from_stream_and_bytes(make_xlsx):
    path = make_xlsx({"S": [["H"], ["v"]]})
    content = path.read_bytes()
    with open_workbook(io.BytesIO(content)) as workbook:
        assert isinstance(workbook, OpenpyxlWorkbook)
    with open_workbook(content) as workbook:
        assert workbook.sheet_names == ["S"]


def test_open_workbook_closes_on_exit(make_xlsx, monkeypatch):
    closed = []
    monkeypatch.setattr(OpenpyxlWorkbook, "close", lambda self: closed.append(self))
    path = make_xlsx({"S": [["H"]]})
    with pytest.raises(RuntimeError):
        with open_workbook(path):
            raise RuntimeError("consumer failed")
    assert len(closed) == 1


# --- openpyxl adapter (fake read-only sheets) -------------------------------------------


class FakeOpenpyxlSheet:
    title = "Calc"

    def __init__(self, rows):
        self._rows = rows

    def reset_dimensions(self):
        pass

    def iter_rows(self):
        return iter(self._rows)


def _opx(value, data_type="n"):
    return SimpleNamespace(value=value, data_type=data_type, is_date=False)


def test_openpyxl_formula_cells():
    values = FakeOpenpyxlSheet([[_opx("Total"), _opx(42), _opx(None), _opx("#DIV/0!", "e")]])
    formulas = FakeOpenpyxlSheet(
        [[_opx("Total", "s"), _opx("=40+2", "f"), _opx("=A1*2", "f"), _opx("=1/0", "f")]]
    )
    (row,) = OpenpyxlWorksheet(values, formulas).iter_rows()
    assert row.cell(0) == Cell(CellKind.TEXT, "Total")
    assert row.cell(1) == Cell(CellKind.FORMULA, 42)
    assert row.cell(2) == Cell(CellKind.FORMULA, None)
    assert row.cell(3).kind is CellKind.ERROR


# --- xlrd adapter (fake sheet objects) -------------------------------------------------


class FakeXlrdSheet:
    name = "Legacy"

    def __init__(self, rows):
        self._rows = rows
        self.nrows = len(rows)

    def row_len(self, index):
        return len(self._rows[index])

    def row(self, index):
        return self._rows[index]


def _xl(ctype, value=""):
    return SimpleNamespace(ctype=ctype, value=value)


def test_xlrd_rows_and_cell_conversion():
    date_serial = 45306.0  # 2024-01-15 (1900 系)
    sheet = FakeXlrdSheet(
        [
            [_xl(xlrd.XL_CELL_TEXT, "Name"), _xl(xlrd.XL_CELL_TEXT, "Joined")],
            [],
            [
                _xl(xlrd.XL_CELL_TEXT, "Alice"),
                _xl(xlrd.XL_CELL_DATE, date_serial),
                _xl(xlrd.XL_CELL_NUMBER, 5.0),
                _xl(xlrd.XL_CELL_BOOLEAN, 1),
                _xl(xlrd.XL_CELL_BLANK),
                _xl(xlrd.XL_CELL_EMPTY),
                _xl(xlrd.XL_CELL_ERROR, 7),
            ],
        ]
    )
    rows = list(XlrdWorksheet(sheet, datemode=0).iter_rows())
    assert rows[1] is None
    assert [r.number for r in rows if r is not None] == [1, 3]
    assert rows[2].texts() == ["Alice", "Monday, January 15, 2024", "5", "True", None, None, None]
    assert rows[2].cell(4) == Cell(CellKind.BLANK)
    assert rows[2].cell(5) is None
    assert rows[2].cell(6).kind is CellKind.ERROR
