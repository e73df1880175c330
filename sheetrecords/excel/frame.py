from __future__ import annotations

from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from .cells import Cell, CellKind
from .reader import SheetRow
from .workbook import Worksheet, WorkbookError, _IndexedWorkbook

"""pandas-backed worksheets.

Lets already-loaded DataFrames and CSV files go through the same import engine
as workbooks. A frame has no notion of a missing row, so a row whose every value
is null or an empty string is treated as structurally absent. Row numbers are the
1-based frame positions (for CSV: the line number).
"""

__all__ = [
    "FrameWorksheet",
    "FrameWorkbook",
]


def _to_cell(value: Any) -> Cell | None:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    if isinstance(value, np.generic):
        # numpy スカラーは Python 型へ
        value = value.item()
        if isinstance(value, float) and np.isnan(value):
            return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, str) and value == "":
        return Cell(CellKind.BLANK)
    return Cell.from_value(value)


class FrameWorksheet:
    def __init__(self, name: str, frame: pd.DataFrame) -> None:
        self.name = name
        self._frame = frame

    def iter_rows(self) -> Iterator[SheetRow | None]:
        for number, values in enumerate(self._frame.itertuples(index=False, name=None), start=1):
            cells = tuple(_to_cell(v) for v in values)
            if all(c is None or c.kind is CellKind.BLANK for c in cells):
                yield None
                continue
            yield SheetRow(number=number, cells=cells)


class FrameWorkbook(_IndexedWorkbook):
    """Workbook made of named DataFrames laid out like a sheet grid (header in the first row)."""

    def __init__(self, frames: Mapping[str, pd.DataFrame]) -> None:
        self._frames = dict(frames)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, name: str = "Sheet1", *, header_from_columns: bool = True) -> FrameWorkbook:
        """Wrap a DataFrame; its column labels become the header row unless told otherwise."""
        if header_from_columns:
            header = pd.DataFrame([list(map(str, frame.columns))])
            body = pd.DataFrame(frame.to_numpy(dtype=object))
            frame = pd.concat([header, body], ignore_index=True)
        return cls({name: frame})

    @classmethod
    def from_csv(cls, path: Path, **read_csv_kwargs: Any) -> FrameWorkbook:
        try:
            frame = pd.read_csv(
                path,
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                **read_csv_kwargs,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as e:
            raise WorkbookError(f"cannot read csv {path.name}: {e}") from e
        return cls({path.stem: frame})

    @property
    def sheet_names(self) -> list[str]:
        return list(self._frames)

    def _load_sheet(self, index: int) -> Worksheet:
        name = self.sheet_names[index]
        return FrameWorksheet(name, self._frames[name])

    def close(self) -> None:
        self._frames.clear()
