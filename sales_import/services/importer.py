from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path

from ..db.record_store import RecordStore
from ..db.store_directory import StoreDirectory
from ..excel.columns import map_columns
from ..excel.header import DEFAULT_SCAN_LIMIT, locate_header
from ..excel.keywords import SchemaDefinition, get_schema_definition
from ..excel.reader import read_first_sheet
from ..logging.error_log import ErrorLogBuffer
from ..models.import_report import ImportFailureError, ImportReport
from ..models.records import ImportSchema
from ..models.sheet import RawSheet
from ..normalize.values import ValueDiagnostics, is_period_key
from .reconciliation import apply, plan_deletion
from .record_builder import BuildResult, NoValidRecordsError, build_records
from .store_resolver import StoreResolver

"""Import entry point: workbook bytes -> reconciled records + ImportReport.

Parsing failures (unreadable workbook, header not found, missing columns,
empty sheet, no valid records) abort before any persistence call. A
persistence failure after the period delete leaves that period empty and is
reported as a failure; nothing is retried.
"""

__all__ = [
    "ingest_sheet",
    "import_spreadsheet",
]

logger = logging.getLogger(__name__)


def ingest_sheet(
    sheet: RawSheet,
    definition: SchemaDefinition,
    resolver: StoreResolver,
    fallback_period: str,
    *,
    header_scan_limit: int = DEFAULT_SCAN_LIMIT,
    imported_by: str = "system",
    imported_at: datetime | None = None,
    diagnostics: ValueDiagnostics | None = None,
    issue_log: ErrorLogBuffer | None = None,
    file_name: str = "<upload>",
) -> BuildResult:
    """Header scan, column mapping and record building for one sheet."""
    header = locate_header(
        sheet, definition.header_groups, header_scan_limit, definition.preferred_header_groups
    )
    field_map = map_columns(header, definition)
    logger.debug(
        "file=%s header_row=%d columns=%s",
        file_name,
        header.row_index + 1,
        {k: v for k, v in field_map.indices.items() if v is not None},
    )
    return build_records(
        sheet,
        header,
        field_map,
        definition,
        resolver,
        fallback_period,
        imported_by=imported_by,
        imported_at=imported_at,
        diagnostics=diagnostics,
        issue_log=issue_log,
        file_name=file_name,
    )


def import_spreadsheet(
    file_bytes: bytes | Path,
    schema: ImportSchema | str,
    fallback_period: str,
    store_directory: StoreDirectory,
    record_store: RecordStore,
    *,
    imported_by: str = "system",
    header_scan_limit: int = DEFAULT_SCAN_LIMIT,
    keyword_overrides: Mapping[str, Sequence[str]] | None = None,
    file_name: str = "<upload>",
    issue_log: ErrorLogBuffer | None = None,
) -> ImportReport:
    """Import the first worksheet of a workbook and replace its periods.

    Returns an ImportReport for every outcome in the import failure taxonomy.

    Raises:
        ValueError: fallback_period is not YYYY-MM, or keyword_overrides name unknown fields
    """
    if not is_period_key(fallback_period):
        raise ValueError(f"fallback period must be YYYY-MM: {fallback_period!r}")
    schema = ImportSchema(schema)
    definition = get_schema_definition(schema, keyword_overrides)
    diagnostics = ValueDiagnostics()

    def _failed(error: ImportFailureError, unknown: int = 0, rows: int = 0) -> ImportReport:
        logger.error("file=%s schema=%s %s: %s", file_name, schema.value, error.reason.value, error)
        if issue_log is not None:
            issue_log.add(file=file_name, row=-1, issue_type=error.reason.name, detail=str(error))
        return ImportReport.failed(
            schema,
            file_name,
            error,
            unknown_store_count=unknown,
            total_rows_processed=rows,
            zero_fallback_cells=diagnostics.zero_fallback_cells,
            period_fallback_cells=diagnostics.period_fallback_cells,
        )

    resolver = StoreResolver(store_directory.list_stores())
    try:
        sheet = read_first_sheet(file_bytes)
        result = ingest_sheet(
            sheet,
            definition,
            resolver,
            fallback_period,
            header_scan_limit=header_scan_limit,
            imported_by=imported_by,
            diagnostics=diagnostics,
            issue_log=issue_log,
            file_name=file_name,
        )
    except NoValidRecordsError as e:
        return _failed(e, e.unknown_store_count, e.total_rows_processed)
    except ImportFailureError as e:
        return _failed(e)

    scope = plan_deletion(schema, result.records)
    logger.info(
        "file=%s schema=%s replacing periods=%s with %d records",
        file_name,
        schema.value,
        ",".join(scope.periods),
        result.success_count,
    )
    try:
        apply(scope, result.records, record_store)
    except ImportFailureError as e:
        return _failed(e, result.unknown_store_count, result.total_rows_processed)

    if result.unknown_store_count:
        logger.warning(
            "file=%s %d rows skipped: store not in directory", file_name, result.unknown_store_count
        )
    if diagnostics.zero_fallback_cells:
        logger.warning(
            "file=%s %d non-empty numeric cells could not be parsed and count as 0",
            file_name,
            diagnostics.zero_fallback_cells,
        )
    return ImportReport.completed(
        schema,
        file_name,
        success_count=result.success_count,
        unknown_store_count=result.unknown_store_count,
        total_rows_processed=result.total_rows_processed,
        periods=scope.periods,
        zero_fallback_cells=diagnostics.zero_fallback_cells,
        period_fallback_cells=diagnostics.period_fallback_cells,
    )
