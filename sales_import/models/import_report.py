from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from .records import ImportSchema

"""Import report model: counters plus a terminal outcome for one import run.

The failure taxonomy lives here as well. Every fatal condition raised by the
pipeline derives from ImportFailureError and carries the FailureReason that
ends up in the report.
"""

__all__ = [
    "FailureReason",
    "ImportOutcome",
    "ImportFailureError",
    "ImportReport",
]


class FailureReason(Enum):
    """Fatal import failure reasons (declaration order = report priority)."""
    UNREADABLE_WORKBOOK = "unreadable_workbook"
    HEADER_NOT_FOUND = "header_not_found"
    MISSING_REQUIRED_COLUMNS = "missing_required_columns"
    EMPTY_SHEET = "empty_sheet"
    NO_VALID_RECORDS = "no_valid_records"
    PERSISTENCE_ERROR = "persistence_error"


class ImportOutcome(Enum):
    SUCCESS = "success"
    SUCCESS_WITH_WARNINGS = "success_with_warnings"
    FAILURE = "failure"


class ImportFailureError(Exception):
    """Base class for conditions that abort an import."""
    reason: FailureReason = FailureReason.NO_VALID_RECORDS


@dataclass(frozen=True)
class ImportReport:
    schema: ImportSchema
    file_name: str
    outcome: ImportOutcome
    success_count: int = 0
    unknown_store_count: int = 0
    total_rows_processed: int = 0
    zero_fallback_cells: int = 0  # non-empty numeric cells that could not be parsed
    period_fallback_cells: int = 0  # non-empty period cells that could not be parsed
    periods: tuple[str, ...] = ()
    failure: FailureReason | None = None
    missing_fields: tuple[str, ...] = field(default_factory=tuple)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is not ImportOutcome.FAILURE

    @staticmethod
    def completed(
        schema: ImportSchema,
        file_name: str,
        *,
        success_count: int,
        unknown_store_count: int,
        total_rows_processed: int,
        periods: Sequence[str],
        zero_fallback_cells: int = 0,
        period_fallback_cells: int = 0,
    ) -> ImportReport:
        """Successful run; unknown stores downgrade the outcome to a warning."""
        if unknown_store_count > 0:
            outcome = ImportOutcome.SUCCESS_WITH_WARNINGS
            message = (
                f"{success_count} records imported; "
                f"{unknown_store_count} rows skipped (unknown store)"
            )
        else:
            outcome = ImportOutcome.SUCCESS
            message = f"{success_count} records imported"
        return ImportReport(
            schema=schema,
            file_name=file_name,
            outcome=outcome,
            success_count=success_count,
            unknown_store_count=unknown_store_count,
            total_rows_processed=total_rows_processed,
            zero_fallback_cells=zero_fallback_cells,
            period_fallback_cells=period_fallback_cells,
            periods=tuple(periods),
            message=message,
        )

    @staticmethod
    def failed(
        schema: ImportSchema,
        file_name: str,
        error: ImportFailureError,
        *,
        unknown_store_count: int = 0,
        total_rows_processed: int = 0,
        zero_fallback_cells: int = 0,
        period_fallback_cells: int = 0,
    ) -> ImportReport:
        return ImportReport(
            schema=schema,
            file_name=file_name,
            outcome=ImportOutcome.FAILURE,
            unknown_store_count=unknown_store_count,
            total_rows_processed=total_rows_processed,
            zero_fallback_cells=zero_fallback_cells,
            period_fallback_cells=period_fallback_cells,
            failure=error.reason,
            missing_fields=tuple(getattr(error, "missing_fields", ())),
            message=str(error),
        )
