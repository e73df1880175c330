from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Import configuration loader.

Responsibilities:
- Load the YAML config (default ``config/import.yml``)
- Validate it against ``sheetrecords/contracts/config_schema.json``
- Apply defaults (first sheet, ``./logs`` error log directory)
- Apply environment overrides (``SHEETRECORDS_*``; ``.env`` is loaded by the CLI first)
"""

__all__ = [
    "ConfigError",
    "FieldConfig",
    "RecordConfig",
    "ImportConfig",
    "SCHEMA_PATH",
    "load_config",
    "apply_env_overrides",
]

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "contracts" / "config_schema.json"

ENV_SOURCE = "SHEETRECORDS_SOURCE"
ENV_WORKSHEET = "SHEETRECORDS_WORKSHEET"
ENV_ERROR_LOG_DIR = "SHEETRECORDS_ERROR_LOG_DIR"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class FieldConfig:
    name: str
    kind: str
    column: str | None = None
    nullable: bool = False
    required: bool = False
    default: Any = None
    has_default: bool = False  # default: null と未指定を区別
    constraints: dict[str, Any] | None = None


@dataclass(frozen=True)
class RecordConfig:
    name: str
    fields: tuple[FieldConfig, ...]


@dataclass(frozen=True)
class ImportConfig:
    source: str
    record: RecordConfig
    worksheet: str = ""  # 空なら先頭シート
    compact_headers: bool = False
    error_log_dir: str = "./logs"


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the packaged JSON schema.

    Raises:
        ConfigError: schema file missing/unreadable, or the data violates it.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        where = f" at '{location}'" if location else ""
        raise ConfigError(f"config validation failed{where}: {e.message}") from e


def _field_config(raw: dict[str, Any]) -> FieldConfig:
    return FieldConfig(
        name=raw["name"],
        kind=raw["kind"],
        column=raw.get("column"),
        nullable=bool(raw.get("nullable", False)),
        required=bool(raw.get("required", False)),
        default=raw.get("default"),
        has_default="default" in raw,
        constraints=raw.get("constraints"),
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    record_raw = data["record"]
    names = [f["name"] for f in record_raw["fields"]]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigError(f"config validation failed: duplicate record fields {duplicates}")

    record = RecordConfig(
        name=record_raw["name"],
        fields=tuple(_field_config(f) for f in record_raw["fields"]),
    )
    return ImportConfig(
        source=data["source"],
        record=record,
        worksheet=data.get("worksheet") or "",
        compact_headers=bool(data.get("compact_headers", False)),
        error_log_dir=data.get("error_log_dir", "./logs"),
    )


def apply_env_overrides(cfg: ImportConfig) -> ImportConfig:
    """Environment variables take precedence over the YAML values."""
    changes: dict[str, Any] = {}
    if source := os.getenv(ENV_SOURCE):
        changes["source"] = source
    if (worksheet := os.getenv(ENV_WORKSHEET)) is not None:
        changes["worksheet"] = worksheet
    if log_dir := os.getenv(ENV_ERROR_LOG_DIR):
        changes["error_log_dir"] = log_dir
    return replace(cfg, **changes) if changes else cfg
