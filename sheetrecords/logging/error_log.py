from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Error log buffering.

Failed rows are buffered during the scan and appended as JSON Lines on flush()
to ``<logs_dir>/errors-<source>-YYYYMMDD-HHMMSS.log`` (UTC). The file is only
created when there is something to write.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "format_file_name",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

# Windows でも使えない文字を含める
_INVALID_FILE_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s")


def format_file_name(text: str | None) -> str:
    """Make ``text`` usable as a file name: whitespace -> ``_``, invalid characters dropped."""
    return _INVALID_FILE_NAME_CHARS.sub("", _WHITESPACE.sub("_", text or ""))


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    スレッド安全性不要 (1 import = 1 buffer)
    """

    def __init__(self, logs_dir: Path | None = None, source: str | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self.logs_dir = logs_dir or LOGS_DIR
        self.source = source

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            label = format_file_name(self.source)
            name = f"errors-{label}-{stamp}.log" if label else f"errors-{stamp}.log"
            self._file_path = self.logs_dir / name
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records; returns the log path, or None when nothing was written."""
        if not self._records:
            return self._file_path
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
