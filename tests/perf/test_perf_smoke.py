from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal

import pandas as pd

from sheetrecords import FrameWorkbook, ValueKind, column, import_rows

"""Perf smoke: 2,000 行の取り込みが数秒以内で終わること (CI 向けの緩い上限)。"""

ROWS = 2000
BUDGET_SEC = 5.0


@dataclass
class Order:
    order_id: int = column(ValueKind.INTEGER, "Order ID", minimum=1)
    customer: str | None = column(ValueKind.TEXT, "Customer", required=True)
    amount: Decimal = column(ValueKind.DECIMAL, "Amount", minimum=0)
    paid: bool = column(ValueKind.BOOLEAN, "Paid")


def test_import_2000_rows_within_budget():
    frame = pd.DataFrame(
        {
            "Order ID": range(1, ROWS + 1),
            "Customer": [f"customer-{i}" for i in range(ROWS)],
            "Amount": [f"{i},50" for i in range(ROWS)],
            "Paid": [i % 2 == 0 for i in range(ROWS)],
        }
    )
    sheet = FrameWorkbook.from_frame(frame, name="Orders").sheet_at(0)

    start = time.perf_counter()
    results = list(import_rows(sheet, Order))
    elapsed = time.perf_counter() - start

    assert len(results) == ROWS
    assert all(r.success for r in results)
    assert results[-1].record.amount == Decimal("1999.50")
    assert elapsed < BUDGET_SEC, f"import took {elapsed:.2f}s"
