from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Row progress display with tqdm (TTY only).

Row totals are not known up front (the sheet is read lazily), so the bar is a
plain counter with success/failed postfix. In non-TTY environments (CI, pipes)
no bar is created to avoid ANSI control sequence spam.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]

# postfix 更新間隔 (行)
POSTFIX_EVERY = 100


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    def __init__(self, *, description: str = "Importing rows") -> None:
        self.description = description
        self.success = 0
        self.failed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=None,
                desc=description,
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    @property
    def rows(self) -> int:
        return self.success + self.failed

    def advance(self, success: bool = True) -> None:
        if success:
            self.success += 1
        else:
            self.failed += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            if not success or self.rows % POSTFIX_EVERY == 0:
                self.pbar.set_postfix(success=self.success, failed=self.failed)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(success=self.success, failed=self.failed)
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
