from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

"""Aggregated outcome of one import run (feeds the SUMMARY line)."""

__all__ = [
    "ImportSummary",
]


@dataclass(frozen=True)
class ImportSummary:
    source: str  # 入力ファイル名
    sheet: str  # 実際に読んだシート
    total_rows: int  # 処理したデータ行数 (ヘッダ・空行除く)
    success_rows: int
    failed_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    error_log_path: Path | None = None  # 失敗行が無ければ None

    @property
    def has_failures(self) -> bool:
        return self.failed_rows > 0
