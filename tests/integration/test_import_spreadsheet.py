from __future__ import annotations

from pathlib import Path

import pytest

from sales_import.db.record_store import InMemoryRecordStore, PersistenceError
from sales_import.logging.error_log import ErrorLogBuffer
from sales_import.models.import_report import FailureReason, ImportOutcome
from sales_import.models.records import ImportSchema
from sales_import.services.importer import import_spreadsheet


def _snapshot(store: InMemoryRecordStore, schema: ImportSchema = ImportSchema.PERFORMANCE):
    """Comparable view of stored records (import timestamps excluded)."""
    return sorted(
        (r.store_id, r.period, r.revenue_actual, r.items_actual, r.sales_count) for r in store.records(schema)
    )


class FailingInsertStore(InMemoryRecordStore):
    fail_insert = False

    def insert_batch(self, schema, records):
        if self.fail_insert:
            raise PersistenceError("connection reset during insert")
        super().insert_batch(schema, records)


def test_performance_import_success(workbook, performance_rows, store_directory):
    store = InMemoryRecordStore()
    report = import_spreadsheet(
        workbook(performance_rows), "performance", "2024-05", store_directory, store,
        imported_by="operator", file_name="maio.xlsx",
    )
    assert report.outcome is ImportOutcome.SUCCESS
    assert report.success_count == 3
    assert report.total_rows_processed == 3
    assert report.periods == ("2024-05",)
    assert report.file_name == "maio.xlsx"
    assert len(store.records(ImportSchema.PERFORMANCE)) == 3
    assert {r.imported_by for r in store.records(ImportSchema.PERFORMANCE)} == {"operator"}


def test_import_is_idempotent(workbook, performance_rows, store_directory):
    data = workbook(performance_rows)
    store = InMemoryRecordStore()
    import_spreadsheet(data, ImportSchema.PERFORMANCE, "2024-05", store_directory, store)
    first = _snapshot(store)
    import_spreadsheet(data, ImportSchema.PERFORMANCE, "2024-05", store_directory, store)
    assert _snapshot(store) == first
    assert len(first) == 3


def test_later_file_supersedes_period(workbook, performance_rows, store_directory):
    store = InMemoryRecordStore()
    import_spreadsheet(workbook(performance_rows), "performance", "2024-05", store_directory, store)
    corrected = [["Loja", "Valor"], ["1", "9.999,00"], ["2", "1,00"]]
    report = import_spreadsheet(workbook(corrected), "performance", "2024-05", store_directory, store)
    assert report.ok
    # store 42 is absent from the corrected file, so it has no record for the period
    assert _snapshot(store) == [("st-001", "2024-05", 9999.0, 0.0, 1.0), ("st-002", "2024-05", 1.0, 0.0, 1.0)]


def test_other_periods_are_untouched(workbook, store_directory):
    store = InMemoryRecordStore()
    import_spreadsheet(workbook([["Loja", "Valor"], ["1", 10]]), "performance", "2024-04", store_directory, store)
    import_spreadsheet(workbook([["Loja", "Valor"], ["2", 20]]), "performance", "2024-05", store_directory, store)
    assert [(s, p) for s, p, *_ in _snapshot(store)] == [("st-001", "2024-04"), ("st-002", "2024-05")]


def test_missing_required_columns_persists_nothing(workbook, store_directory):
    store = InMemoryRecordStore()
    rows = [["Loja", "Cidade"], ["1", "Porto Alegre"]]
    report = import_spreadsheet(workbook(rows), "performance", "2024-05", store_directory, store)
    assert report.outcome is ImportOutcome.FAILURE
    assert report.failure is FailureReason.MISSING_REQUIRED_COLUMNS
    assert report.missing_fields == ("revenue",)
    assert store.records(ImportSchema.PERFORMANCE) == []


def test_title_row_above_header_imports(workbook, store_directory):
    rows = [["Vendas por Loja - Maio/2024", None], [None, None], ["Loja", "Valor"], ["1", "1.000,00"]]
    store = InMemoryRecordStore()
    report = import_spreadsheet(workbook(rows), "performance", "2024-05", store_directory, store)
    assert report.outcome is ImportOutcome.SUCCESS
    assert _snapshot(store) == [("st-001", "2024-05", 1000.0, 0.0, 1.0)]


def test_month_scoped_columns_do_not_replace_operator_period(workbook, store_directory):
    rows = [["Loja", "Meta Mês", "Realizado Mês", "Itens"], ["Loja 01", 120000, 150000, 300]]
    store = InMemoryRecordStore()
    report = import_spreadsheet(workbook(rows), "performance", "2024-05", store_directory, store)
    assert report.ok
    assert report.periods == ("2024-05",)
    assert _snapshot(store) == [("st-001", "2024-05", 150000.0, 300.0, 1.0)]


def test_failure_keeps_previous_period_data(workbook, performance_rows, store_directory):
    store = InMemoryRecordStore()
    import_spreadsheet(workbook(performance_rows), "performance", "2024-05", store_directory, store)
    before = _snapshot(store)
    report = import_spreadsheet(workbook([["sem cabeçalho"]]), "performance", "2024-05", store_directory, store)
    assert report.failure is FailureReason.HEADER_NOT_FOUND
    assert _snapshot(store) == before


def test_header_scan_limit_is_configurable(workbook, store_directory):
    rows = [[f"nota {i}", None] for i in range(3)] + [["Loja", "Valor"], ["1", 10]]
    report = import_spreadsheet(
        workbook(rows), "performance", "2024-05", store_directory, InMemoryRecordStore(), header_scan_limit=3
    )
    assert report.failure is FailureReason.HEADER_NOT_FOUND
    report = import_spreadsheet(
        workbook(rows), "performance", "2024-05", store_directory, InMemoryRecordStore(), header_scan_limit=4
    )
    assert report.ok


def test_unknown_store_is_a_warning(workbook, store_directory, tmp_path: Path):
    issues = ErrorLogBuffer(tmp_path)
    rows = [["Loja", "Valor"], ["1", 10], ["Loja 77", 20]]
    store = InMemoryRecordStore()
    report = import_spreadsheet(
        workbook(rows), "performance", "2024-05", store_directory, store, file_name="a.xlsx", issue_log=issues
    )
    assert report.outcome is ImportOutcome.SUCCESS_WITH_WARNINGS
    assert report.unknown_store_count == 1
    assert report.success_count == 1
    assert [i.issue_type for i in issues.records] == ["UNKNOWN_STORE"]


def test_product_import(workbook, product_rows, store_directory):
    store = InMemoryRecordStore()
    report = import_spreadsheet(
        workbook(product_rows), ImportSchema.PRODUCT, "2024-05", store_directory, store,
        keyword_overrides={"units": ["pares", "qtde", "unidades"]},
    )
    assert report.outcome is ImportOutcome.SUCCESS_WITH_WARNINGS
    assert report.success_count == 2
    assert report.unknown_store_count == 1
    brands = sorted(r.brand for r in store.records(ImportSchema.PRODUCT))
    assert brands == ["Geral", "Nike"]
    assert store.records(ImportSchema.PERFORMANCE) == []


def test_empty_sheet_and_no_valid_records(workbook, store_directory):
    store = InMemoryRecordStore()
    empty = import_spreadsheet(workbook([["Loja", "Valor"]]), "performance", "2024-05", store_directory, store)
    assert empty.failure is FailureReason.EMPTY_SHEET

    none_valid = import_spreadsheet(
        workbook([["Loja", "Valor"], ["99", 10], ["1", 0]]), "performance", "2024-05", store_directory, store
    )
    assert none_valid.failure is FailureReason.NO_VALID_RECORDS
    assert none_valid.unknown_store_count == 1
    assert none_valid.total_rows_processed == 2


def test_unreadable_workbook_report(store_directory, tmp_path: Path):
    issues = ErrorLogBuffer(tmp_path)
    report = import_spreadsheet(
        b"%PDF-1.4", "product", "2024-05", store_directory, InMemoryRecordStore(),
        file_name="scan.pdf", issue_log=issues,
    )
    assert report.failure is FailureReason.UNREADABLE_WORKBOOK
    (issue,) = issues.records
    assert (issue.issue_type, issue.row, issue.file) == ("UNREADABLE_WORKBOOK", -1, "scan.pdf")


def test_persistence_failure_after_delete(workbook, performance_rows, store_directory):
    data = workbook(performance_rows)
    store = FailingInsertStore()
    assert import_spreadsheet(data, "performance", "2024-05", store_directory, store).ok
    store.fail_insert = True
    report = import_spreadsheet(data, "performance", "2024-05", store_directory, store)
    assert report.outcome is ImportOutcome.FAILURE
    assert report.failure is FailureReason.PERSISTENCE_ERROR
    assert report.success_count == 0
    assert report.total_rows_processed == 3
    assert store.records(ImportSchema.PERFORMANCE) == []


def test_invalid_fallback_period_raises(workbook, performance_rows, store_directory):
    with pytest.raises(ValueError):
        import_spreadsheet(workbook(performance_rows), "performance", "05/2024", store_directory, InMemoryRecordStore())
