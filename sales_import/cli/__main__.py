from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from sales_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, load_config
from sales_import.db.record_store import InMemoryRecordStore, PostgresRecordStore, RecordStore
from sales_import.db.store_directory import (
    PostgresStoreDirectory,
    StoreDirectory,
    StoreDirectoryError,
    load_stores_csv,
)
from sales_import.excel.reader import WorkbookReadError
from sales_import.logging.error_log import ErrorLogBuffer
from sales_import.logging.init import log_summary, setup_logging
from sales_import.models.import_report import ImportReport
from sales_import.models.records import ImportSchema
from sales_import.normalize.values import is_period_key
from sales_import.services.importer import import_spreadsheet
from sales_import.services.progress import ProgressTracker
from sales_import.services.summary import render_report_line, render_totals_line

"""CLI entrypoint.

    sales-import {performance|product} FILE [FILE ...] --period YYYY-MM

Files are imported one after another; each replaces the periods it contains.
Exit codes:
- 0: every file imported (warnings such as unknown stores allowed)
- 2: at least one file failed
- 1: fatal startup error (config, period, store directory, database)
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Provide a psycopg2 connection.

    Resolution order for connection settings:
        1. DATABASE_URL / PGDSN (whole DSN)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. database section of the config file
    `.env` is loaded with override before this runs, so its values win.
    """
    import psycopg2

    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    try:
        yield conn
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Spreadsheet -> store sales records importer")
    p.add_argument("schema", choices=[s.value for s in ImportSchema], help="Import flow")
    p.add_argument("files", nargs="+", type=Path, help="Workbook files (.xlsx)")
    p.add_argument("--period", required=True, help="Period used when a row has none (YYYY-MM)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--dry-run", action="store_true", help="Use the stores CSV and an in-memory record store")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _run_imports(
    args: argparse.Namespace,
    cfg: ImportConfig,
    directory: StoreDirectory,
    record_store: RecordStore,
    issue_log: ErrorLogBuffer,
) -> list[ImportReport]:
    schema = ImportSchema(args.schema)
    reports: list[ImportReport] = []
    with ProgressTracker(len(args.files)) as progress:
        for path in args.files:
            progress.start_file(path)
            try:
                source: bytes | Path = path.read_bytes()
            except OSError as e:
                report = ImportReport.failed(schema, path.name, WorkbookReadError(f"cannot open {path}: {e}"))
            else:
                report = import_spreadsheet(
                    source,
                    schema,
                    args.period,
                    directory,
                    record_store,
                    imported_by=cfg.imported_by,
                    header_scan_limit=cfg.header_scan_limit,
                    keyword_overrides=cfg.overrides_for(schema),
                    file_name=path.name,
                    issue_log=issue_log,
                )
            reports.append(report)
            log_summary(render_report_line(report).removeprefix("SUMMARY "))
            progress.set_postfix(ok=sum(r.ok for r in reports), failed=sum(not r.ok for r in reports))
            progress.finish_file()
    return reports


def main(argv: list[str] | None = None) -> int:
    # argv=None reads sys.argv; an explicit [] must not fall back to it
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not is_period_key(args.period):
        logger.error(f"period must be YYYY-MM: {args.period}")
        return EXIT_FATAL

    issue_log = ErrorLogBuffer(Path(cfg.logs_directory))
    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"

    if dry_run:
        if not cfg.stores_file:
            logger.error("dry run needs stores_file in config")
            return EXIT_FATAL
        try:
            directory = load_stores_csv(Path(cfg.stores_file))
        except StoreDirectoryError as e:
            logger.error(f"stores: {e}")
            return EXIT_FATAL
        logger.info(f"mode=dry-run stores={len(directory.list_stores())}")
        reports = _run_imports(args, cfg, directory, InMemoryRecordStore(), issue_log)
    else:
        try:
            with _db_connection(cfg) as conn:
                logger.info("mode=live")
                reports = _run_imports(
                    args, cfg, PostgresStoreDirectory(conn), PostgresRecordStore(conn), issue_log
                )
        except StoreDirectoryError as e:
            logger.error(f"stores: {e}")
            return EXIT_FATAL
        except Exception as e:
            logger.error(f"database: {e}")
            return EXIT_FATAL

    log_path = issue_log.flush()
    if log_path is not None:
        logger.info(f"issues written to {log_path}")
    log_summary(render_totals_line(reports).removeprefix("SUMMARY "))

    if any(not r.ok for r in reports):
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
