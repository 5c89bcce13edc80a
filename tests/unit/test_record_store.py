from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest

from sales_import.db.record_store import PersistenceError, PostgresRecordStore
from sales_import.models.import_report import FailureReason
from sales_import.models.records import ImportSchema, PerformanceActual, ProductPerformance


class DummyCursor:
    def __init__(self, conn: "DummyConnection") -> None:
        self.conn = conn
        self.rowcount = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        if self.conn.fail_execute:
            raise RuntimeError("server closed the connection")
        self.conn.executed.append((sql, params))
        self.rowcount = 4


class DummyConnection:
    """Mimics psycopg2: `with conn` commits on success and rolls back on error."""

    def __init__(self, fail_execute: bool = False) -> None:
        self.executed: list[tuple[str, object]] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_execute = fail_execute

    def cursor(self):
        return DummyCursor(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commits += 1
        else:
            self.rollbacks += 1
        return False


@pytest.fixture()
def inserted(monkeypatch):
    import sales_import.db.batch_insert as bi
    calls: list[tuple[str, list]] = []

    def fake_execute_values(cursor, sql, rows, page_size=1000):
        calls.append((sql, rows))
    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return calls


def _perf() -> PerformanceActual:
    return PerformanceActual(
        store_id="st-001",
        period="2024-05",
        revenue_actual=100.0,
        items_actual=4.0,
        sales_count=2.0,
        items_per_sale=2.0,
        unit_price=25.0,
        average_ticket=50.0,
        imported_by="tester",
        imported_at=datetime(2024, 6, 1, tzinfo=UTC),
    )


def test_delete_by_period_commits_own_transaction():
    conn = DummyConnection()
    PostgresRecordStore(conn).delete_by_period(ImportSchema.PERFORMANCE, "2024-05")
    assert conn.executed == [('DELETE FROM "monthly_performance" WHERE "month" = %s', ("2024-05",))]
    assert conn.commits == 1


def test_delete_failure_becomes_persistence_error():
    conn = DummyConnection(fail_execute=True)
    with pytest.raises(PersistenceError) as e:
        PostgresRecordStore(conn).delete_by_period(ImportSchema.PRODUCT, "2024-05")
    assert e.value.reason is FailureReason.PERSISTENCE_ERROR
    assert conn.rollbacks == 1


def test_insert_batch_maps_record_columns(inserted):
    conn = DummyConnection()
    PostgresRecordStore(conn, page_size=50).insert_batch(ImportSchema.PERFORMANCE, [_perf()])
    ((sql, rows),) = inserted
    assert sql.startswith('INSERT INTO "monthly_performance" ("store_id","month","revenue_actual"')
    assert '"items_per_ticket"' in sql and '"percent_meta"' in sql
    assert rows[0][:3] == ["st-001", "2024-05", 100.0]
    assert conn.commits == 1


def test_insert_batch_logs_inserted_rows(inserted, caplog):
    conn = DummyConnection()
    with caplog.at_level(logging.DEBUG, logger="sales_import.db.record_store"):
        PostgresRecordStore(conn).insert_batch(ImportSchema.PERFORMANCE, [_perf(), _perf()])
    assert "table=monthly_performance inserted_rows=2" in caplog.text


def test_insert_product_rows(inserted):
    conn = DummyConnection()
    product = ProductPerformance(
        id="p-1", store_id="st-001", period="2024-05", brand="Geral", category="Geral", units_sold=3, revenue=0
    )
    PostgresRecordStore(conn).insert_batch(ImportSchema.PRODUCT, [product])
    ((sql, rows),) = inserted
    assert sql == (
        'INSERT INTO "product_performance" ("id","store_id","month","brand","category","pairs_sold","revenue") '
        "VALUES %s"
    )
    assert rows == [["p-1", "st-001", "2024-05", "Geral", "Geral", 3, 0]]


def test_insert_empty_batch_is_noop(inserted):
    conn = DummyConnection()
    PostgresRecordStore(conn).insert_batch(ImportSchema.PRODUCT, [])
    assert inserted == []
    assert conn.commits == 0


def test_insert_failure_becomes_persistence_error(monkeypatch):
    import sales_import.db.batch_insert as bi

    def boom(cursor, sql, rows, page_size=1000):
        raise RuntimeError("value too long for type")
    monkeypatch.setattr(bi, "execute_values", boom)
    conn = DummyConnection()
    with pytest.raises(PersistenceError, match="value too long"):
        PostgresRecordStore(conn).insert_batch(ImportSchema.PERFORMANCE, [_perf()])
    assert conn.rollbacks == 1
