from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from ..excel.columns import FieldMap
from ..excel.keywords import (
    BRAND,
    CATEGORY,
    DELINQUENCY,
    PERIOD,
    REVENUE,
    SALES_COUNT,
    STORE,
    TARGET,
    UNITS,
    SchemaDefinition,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.import_report import FailureReason, ImportFailureError
from ..models.records import CanonicalRecord, ImportSchema, PerformanceActual, ProductPerformance
from ..models.sheet import HeaderMatch, RawSheet
from ..models.store import StoreDirectoryEntry
from ..normalize.values import ValueDiagnostics, normalize_store_token, parse_amount, parse_period_key
from .store_resolver import StoreResolver

"""Record builder: data rows below the header -> canonical records.

Per row: skip when the store cell is empty, count and skip when the store is
unknown, normalize numbers, pick the period (row column first, import
period otherwise), derive ratios, and keep the record only when its primary
magnitude is positive. Performance rows are keyed by store+period and the
last row wins; product rows are all kept.
"""

__all__ = [
    "DEFAULT_LABEL",
    "BuildResult",
    "EmptySheetError",
    "NoValidRecordsError",
    "build_records",
]

logger = logging.getLogger(__name__)

# Brand/category label used when the cell is blank
DEFAULT_LABEL = "Geral"


class EmptySheetError(ImportFailureError):
    """Raised when no non-blank row follows the header row."""
    reason = FailureReason.EMPTY_SHEET


class NoValidRecordsError(ImportFailureError):
    """Raised when data rows existed but none produced a record."""
    reason = FailureReason.NO_VALID_RECORDS

    def __init__(self, message: str, *, unknown_store_count: int, total_rows_processed: int) -> None:
        super().__init__(message)
        self.unknown_store_count = unknown_store_count
        self.total_rows_processed = total_rows_processed


@dataclass(frozen=True)
class BuildResult:
    records: tuple[CanonicalRecord, ...]
    unknown_store_count: int
    total_rows_processed: int  # non-blank rows below the header
    blank_store_rows: int = 0
    zero_magnitude_rows: int = 0

    @property
    def success_count(self) -> int:
        return len(self.records)

    @property
    def periods(self) -> tuple[str, ...]:
        return tuple(sorted({r.period for r in self.records}))


@dataclass(frozen=True)
class _RowContext:
    sheet: RawSheet
    row_index: int
    field_map: FieldMap
    store: StoreDirectoryEntry
    period: str
    diagnostics: ValueDiagnostics

    def amount(self, name: str) -> float:
        """Parsed non-negative amount of a field; 0 when the column is absent."""
        index = self.field_map.index(name)
        if index is None:
            return 0.0
        return max(0.0, parse_amount(self.sheet.cell(self.row_index, index), self.diagnostics))

    def label(self, name: str) -> str:
        text = self.sheet.cell(self.row_index, self.field_map.index(name)).as_text().strip()
        return text or DEFAULT_LABEL


def _build_performance(ctx: _RowContext, imported_by: str, imported_at: datetime) -> PerformanceActual | None:
    revenue = ctx.amount(REVENUE)
    if revenue <= 0:
        return None
    units = ctx.amount(UNITS)
    # missing or zero sales count falls back to one sale
    sales_count = max(1.0, ctx.amount(SALES_COUNT))
    target = ctx.amount(TARGET)
    return PerformanceActual(
        store_id=ctx.store.id,
        period=ctx.period,
        revenue_actual=revenue,
        items_actual=units,
        sales_count=sales_count,
        items_per_sale=units / sales_count,
        unit_price=revenue / units if units > 0 else 0.0,
        average_ticket=revenue / sales_count,
        imported_by=imported_by,
        imported_at=imported_at,
        revenue_target=target,
        percent_of_target=(revenue / target) * 100 if target > 0 else 0.0,
        delinquency_rate=ctx.amount(DELINQUENCY),
    )


def _build_product(ctx: _RowContext, imported_by: str, imported_at: datetime) -> ProductPerformance | None:
    units = ctx.amount(UNITS)
    revenue = ctx.amount(REVENUE)
    if units <= 0 and revenue <= 0:
        return None
    return ProductPerformance(
        id=str(uuid.uuid4()),
        store_id=ctx.store.id,
        period=ctx.period,
        brand=ctx.label(BRAND),
        category=ctx.label(CATEGORY),
        units_sold=units,
        revenue=revenue,
    )


_BUILDERS: dict[ImportSchema, Callable[[_RowContext, str, datetime], CanonicalRecord | None]] = {
    ImportSchema.PERFORMANCE: _build_performance,
    ImportSchema.PRODUCT: _build_product,
}


def _row_period(
    sheet: RawSheet,
    row_index: int,
    field_map: FieldMap,
    fallback_period: str,
    diagnostics: ValueDiagnostics,
) -> str:
    cell = sheet.cell(row_index, field_map.index(PERIOD))
    if cell.is_empty:
        return fallback_period
    key = parse_period_key(cell)
    if key is None:
        diagnostics.record_period_fallback()
        return fallback_period
    return key


def build_records(
    sheet: RawSheet,
    header: HeaderMatch,
    field_map: FieldMap,
    definition: SchemaDefinition,
    resolver: StoreResolver,
    fallback_period: str,
    *,
    imported_by: str = "system",
    imported_at: datetime | None = None,
    diagnostics: ValueDiagnostics | None = None,
    issue_log: ErrorLogBuffer | None = None,
    file_name: str = "<upload>",
) -> BuildResult:
    """Turn every data row below the header into at most one canonical record.

    Raises:
        EmptySheetError: nothing but blank rows below the header
        NoValidRecordsError: rows existed but none materialized
    """
    build = _BUILDERS[definition.schema]
    diagnostics = diagnostics if diagnostics is not None else ValueDiagnostics()
    imported_at = imported_at or datetime.now(UTC)

    performance: dict[tuple[str, str], PerformanceActual] = {}
    products: list[ProductPerformance] = []
    rows_processed = 0
    unknown_stores = 0
    blank_store_rows = 0
    zero_rows = 0

    for row_index in range(header.row_index + 1, len(sheet)):
        if sheet.row_is_blank(row_index):
            continue
        rows_processed += 1

        store_cell = sheet.cell(row_index, field_map.index(STORE))
        token = normalize_store_token(store_cell)
        if not token:
            # separator, subtotal or note row
            blank_store_rows += 1
            continue
        store = resolver.resolve(token)
        if store is None:
            unknown_stores += 1
            logger.debug("row=%d unknown store token=%r", row_index + 1, store_cell.as_text())
            if issue_log is not None:
                issue_log.add(
                    file=file_name,
                    row=row_index + 1,
                    issue_type="UNKNOWN_STORE",
                    detail=f"store '{store_cell.as_text()}' (number {token}) not in store directory",
                )
            continue

        ctx = _RowContext(
            sheet=sheet,
            row_index=row_index,
            field_map=field_map,
            store=store,
            period=_row_period(sheet, row_index, field_map, fallback_period, diagnostics),
            diagnostics=diagnostics,
        )
        record = build(ctx, imported_by, imported_at)
        if record is None:
            zero_rows += 1
            continue

        if isinstance(record, PerformanceActual):
            if record.key in performance:
                logger.debug("row=%d replaces earlier row for store=%s period=%s", row_index + 1, *record.key)
            performance[record.key] = record
        else:
            products.append(record)

    if rows_processed == 0:
        raise EmptySheetError(f"sheet '{sheet.name}' has no data rows below header row {header.row_index + 1}")

    records: tuple[CanonicalRecord, ...] = tuple(performance.values()) or tuple(products)
    if not records:
        raise NoValidRecordsError(
            f"sheet '{sheet.name}': {rows_processed} rows read, none produced a record "
            f"(unknown_stores={unknown_stores} zero_rows={zero_rows} no_store_rows={blank_store_rows})",
            unknown_store_count=unknown_stores,
            total_rows_processed=rows_processed,
        )

    logger.debug(
        "schema=%s records=%d rows=%d unknown_stores=%d zero_rows=%d no_store_rows=%d",
        definition.schema.value,
        len(records),
        rows_processed,
        unknown_stores,
        zero_rows,
        blank_store_rows,
    )
    return BuildResult(
        records=records,
        unknown_store_count=unknown_stores,
        total_rows_processed=rows_processed,
        blank_store_rows=blank_store_rows,
        zero_magnitude_rows=zero_rows,
    )
