from __future__ import annotations

from ..models.import_summary import ImportSummary

"""SUMMARY line rendering.

Format::

    SUMMARY rows={total} success={success} failed={failed} elapsed_sec={elapsed} throughput_rps={throughput}
"""

__all__ = [
    "render_summary_line",
    "format_metric",
]


def format_metric(value: float) -> str:
    """Integral values without decimals, tiny values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(summary: ImportSummary) -> str:
    """Render the SUMMARY line of an import run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> summary = ImportSummary(
        ...     source="people.xlsx", sheet="People", total_rows=1000, success_rows=998,
        ...     failed_rows=2, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_rows_per_sec=500.0,
        ... )
        >>> render_summary_line(summary)
        'SUMMARY rows=1000 success=998 failed=2 elapsed_sec=2 throughput_rps=500'
    """
    return (
        f"SUMMARY rows={summary.total_rows} "
        f"success={summary.success_rows} "
        f"failed={summary.failed_rows} "
        f"elapsed_sec={format_metric(summary.elapsed_seconds)} "
        f"throughput_rps={format_metric(summary.throughput_rows_per_sec)}"
    )
