from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from sheetrecords.config.loader import ConfigError, ImportConfig, apply_env_overrides, load_config
from sheetrecords.config.records import build_record_schema
from sheetrecords.excel.reader import read_sheet
from sheetrecords.excel.workbook import WorkbookError, open_workbook, resolve_worksheet
from sheetrecords.logging.error_log import ErrorLogBuffer
from sheetrecords.logging.init import enable_debug, log_summary, setup_logging
from sheetrecords.services.importer import run_import
from sheetrecords.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load ``.env`` (overrides existing environment), then the YAML config
- Build the record type declared in the config
- Import every data row of the source sheet, logging failed rows
- Write the error log and print one SUMMARY line

Exit codes: 0 every row imported, 2 some rows failed, 1 fatal (config / workbook).
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

DEFAULT_CONFIG = Path("config/import.yml")
INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; its values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sheetrecords", description="Spreadsheet rows -> typed records importer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="YAML config path (default: config/import.yml)")
    p.add_argument("--source", help="Override the source workbook path")
    p.add_argument("--worksheet", help="Override the worksheet name")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet header & first rows then exit")
    return p.parse_args(argv)


def _inspect_data(cfg: ImportConfig) -> int:
    try:
        with open_workbook(Path(cfg.source)) as workbook:
            worksheet = resolve_worksheet(workbook, cfg.worksheet)
            sheet = read_sheet(worksheet, compact=cfg.compact_headers)
            print(f"SHEET: {sheet.sheet_name} (available: {workbook.sheet_names})")
            print(f"  columns={list(sheet.catalog.names)}")
            for _, row in zip(range(INSPECT_SAMPLE_ROWS), sheet.rows):
                print(f"  row {row.number}: {row.texts()}")
    except WorkbookError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リスト [] はそのまま使う (None のときのみ sys.argv を読む)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()

    try:
        cfg = apply_env_overrides(load_config(args.config))
        if args.source:
            cfg = replace(cfg, source=args.source)
        if args.worksheet is not None:
            cfg = replace(cfg, worksheet=args.worksheet)
        schema = build_record_schema(cfg.record)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    source = Path(cfg.source)
    if not source.exists():
        logger.error(f"source not found: {source}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    error_log = ErrorLogBuffer(logs_dir=Path(cfg.error_log_dir), source=source.stem)
    try:
        summary = run_import(
            source,
            schema,
            cfg.worksheet,
            compact_headers=cfg.compact_headers,
            error_log=error_log,
        )
    except WorkbookError as e:
        logger.error(f"workbook: {e}")
        return EXIT_FATAL

    if summary.error_log_path is not None:
        logger.info(f"error log: {summary.error_log_path}")

    # render_summary_line は "SUMMARY " 付きなので除去して SUMMARY レベルで出力
    log_summary(render_summary_line(summary).removeprefix("SUMMARY "))

    return EXIT_PARTIAL_FAILURE if summary.has_failures else EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
