from __future__ import annotations

from collections.abc import Sequence

from ..models.import_report import ImportOutcome, ImportReport

"""SUMMARY line rendering for import reports.

Per file:
SUMMARY file={name} schema={schema} outcome={outcome} records={n} unknown_stores={n}
rows={n} zero_fallback_cells={n} periods={p1,p2|-} [reason={reason}]

Per run:
SUMMARY files={n} success={n} warnings={n} failed={n} records={n} unknown_stores={n}
"""

__all__ = [
    "render_report_line",
    "render_totals_line",
]


def render_report_line(report: ImportReport) -> str:
    """Render one file's report.

    Examples:
        >>> from sales_import.models.records import ImportSchema
        >>> report = ImportReport.completed(
        ...     ImportSchema.PRODUCT, "marcas.xlsx", success_count=3,
        ...     unknown_store_count=0, total_rows_processed=3, periods=["2024-05"],
        ... )
        >>> render_report_line(report)  # doctest: +ELLIPSIS
        'SUMMARY file=marcas.xlsx schema=product outcome=success records=3 ...'
    """
    name = "_".join(report.file_name.split()) or "-"
    line = (
        f"SUMMARY file={name} "
        f"schema={report.schema.value} "
        f"outcome={report.outcome.value} "
        f"records={report.success_count} "
        f"unknown_stores={report.unknown_store_count} "
        f"rows={report.total_rows_processed} "
        f"zero_fallback_cells={report.zero_fallback_cells} "
        f"periods={','.join(report.periods) or '-'}"
    )
    if report.failure is not None:
        line += f" reason={report.failure.value}"
    return line


def render_totals_line(reports: Sequence[ImportReport]) -> str:
    success = sum(1 for r in reports if r.outcome is ImportOutcome.SUCCESS)
    warnings = sum(1 for r in reports if r.outcome is ImportOutcome.SUCCESS_WITH_WARNINGS)
    failed = sum(1 for r in reports if r.outcome is ImportOutcome.FAILURE)
    return (
        f"SUMMARY files={len(reports)} "
        f"success={success} "
        f"warnings={warnings} "
        f"failed={failed} "
        f"records={sum(r.success_count for r in reports)} "
        f"unknown_stores={sum(r.unknown_store_count for r in reports)}"
    )
