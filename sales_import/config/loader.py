from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..excel.header import DEFAULT_SCAN_LIMIT
from ..excel.keywords import get_schema_definition
from ..models.records import ImportSchema

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against config_schema.json (shipped with the package)
- Apply defaults for every optional key
- Check keyword overrides name real fields of their schema
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "DatabaseConfig",
    "ImportConfig",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Fallback connection settings. Environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    header_scan_limit: int = DEFAULT_SCAN_LIMIT
    imported_by: str = "system"
    stores_file: str | None = None  # CSV store directory for dry runs
    logs_directory: str = "./logs"
    keyword_overrides: dict[ImportSchema, dict[str, list[str]]] = field(default_factory=dict)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def overrides_for(self, schema: ImportSchema) -> dict[str, list[str]] | None:
        return self.keyword_overrides.get(schema)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _keyword_overrides(raw: dict[str, Any]) -> dict[ImportSchema, dict[str, list[str]]]:
    overrides: dict[ImportSchema, dict[str, list[str]]] = {}
    for schema_name, fields in raw.items():
        schema = ImportSchema(schema_name)
        try:
            get_schema_definition(schema, fields)
        except ValueError as e:
            raise ConfigError(f"keyword_overrides.{schema_name}: {e}") from e
        overrides[schema] = {name: list(keywords) for name, keywords in fields.items()}
    return overrides


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        header_scan_limit=data.get("header_scan_limit", DEFAULT_SCAN_LIMIT),
        imported_by=data.get("imported_by", "system"),
        stores_file=data.get("stores_file"),
        logs_directory=data.get("logs_directory", "./logs"),
        keyword_overrides=_keyword_overrides(data.get("keyword_overrides", {})),
        database=db,
    )
