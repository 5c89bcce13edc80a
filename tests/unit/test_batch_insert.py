from __future__ import annotations

import pytest

from sales_import.db.batch_insert import BatchInsertError, BatchMetrics, InsertResult, batch_insert


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.rows: list[list] = []
        self.page_size: int | None = None

# execute_values is monkeypatched inside the module so the logic can be tested
# without a database


@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import sales_import.db.batch_insert as bi

    def fake_execute_values(cursor, sql, rows, page_size=1000):
        cursor.queries.append(sql)
        cursor.rows.extend(rows)
        cursor.page_size = page_size
    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return fake_execute_values


def test_batch_insert_basic():
    cur = DummyCursor()
    res = batch_insert(
        cur,
        table="monthly_performance",
        columns=["store_id", "month"],
        rows=[["st-001", "2024-05"], ["st-002", "2024-05"]],
    )
    assert isinstance(res, InsertResult)
    assert res.inserted_rows == 2
    assert cur.queries == ['INSERT INTO "monthly_performance" ("store_id","month") VALUES %s']
    assert cur.page_size == 1000


def test_batch_insert_accepts_generators_and_page_size():
    cur = DummyCursor()
    res = batch_insert(cur, table="t", columns=["c"], rows=([i] for i in range(5)), page_size=2)
    assert res.inserted_rows == 5
    assert cur.rows == [[0], [1], [2], [3], [4]]
    assert cur.page_size == 2


def test_batch_insert_empty_rows():
    cur = DummyCursor()
    calls = []
    res = batch_insert(cur, table="t", columns=["c"], rows=[], metrics_callback=calls.append)
    assert res.inserted_rows == 0
    assert cur.queries == []
    assert calls == []


def test_batch_insert_missing_driver(monkeypatch):
    import sales_import.db.batch_insert as bi
    monkeypatch.setattr(bi, "execute_values", None)
    with pytest.raises(BatchInsertError):
        batch_insert(DummyCursor(), table="t", columns=["c"], rows=[[1]])


def test_batch_insert_metrics_callback():
    captured: list[BatchMetrics] = []
    batch_insert(DummyCursor(), table="t", columns=["c"], rows=[[1], [2], [3]], metrics_callback=captured.append)
    assert len(captured) == 1
    m = captured[0]
    assert m.batch_size == 3
    assert m.elapsed_seconds >= 0
    assert m.end_time >= m.start_time


def test_batch_insert_driver_error_wrapped_and_metrics_still_reported(monkeypatch):
    import sales_import.db.batch_insert as bi

    def boom(cursor, sql, rows, page_size=1000):
        raise RuntimeError("duplicate key value")
    monkeypatch.setattr(bi, "execute_values", boom)
    captured: list[BatchMetrics] = []
    with pytest.raises(BatchInsertError, match="duplicate key"):
        batch_insert(DummyCursor(), table="t", columns=["c"], rows=[[1]], metrics_callback=captured.append)
    assert len(captured) == 1
