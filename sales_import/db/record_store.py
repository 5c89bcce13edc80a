from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from ..excel.keywords import get_schema_definition
from ..models.import_report import FailureReason, ImportFailureError
from ..models.records import CanonicalRecord, ImportSchema
from .batch_insert import BatchInsertError, BatchMetrics, batch_insert

"""Canonical record stores (persistence collaborator).

The importer only needs two calls: delete every record of a period, and
insert a batch. Each call is its own unit of work; there is no transaction
spanning both.
"""

__all__ = [
    "PERIOD_COLUMN",
    "PersistenceError",
    "RecordStore",
    "InMemoryRecordStore",
    "PostgresRecordStore",
]

logger = logging.getLogger(__name__)

PERIOD_COLUMN = "month"


class PersistenceError(ImportFailureError):
    """Raised when the record store rejects a delete or insert."""
    reason = FailureReason.PERSISTENCE_ERROR


class RecordStore(Protocol):
    def delete_by_period(self, schema: ImportSchema, period: str) -> None: ...

    def insert_batch(self, schema: ImportSchema, records: Sequence[CanonicalRecord]) -> None: ...


class InMemoryRecordStore:
    """Dict-backed record store used by dry runs and tests."""

    def __init__(self) -> None:
        self._tables: dict[ImportSchema, list[CanonicalRecord]] = {s: [] for s in ImportSchema}

    def records(self, schema: ImportSchema) -> list[CanonicalRecord]:
        return list(self._tables[schema])

    def delete_by_period(self, schema: ImportSchema, period: str) -> None:
        self._tables[schema] = [r for r in self._tables[schema] if r.period != period]

    def insert_batch(self, schema: ImportSchema, records: Sequence[CanonicalRecord]) -> None:
        self._tables[schema].extend(records)


class PostgresRecordStore:
    """psycopg2-backed store. Every call commits (or rolls back) on its own."""

    def __init__(self, connection: Any, page_size: int = 1000) -> None:
        self._conn = connection
        self._page_size = page_size

    def delete_by_period(self, schema: ImportSchema, period: str) -> None:
        table = get_schema_definition(schema).table
        try:
            # psycopg2: `with conn` commits on success, rolls back on error
            with self._conn:
                with self._conn.cursor() as cur:
                    cur.execute(f'DELETE FROM "{table}" WHERE "{PERIOD_COLUMN}" = %s', (period,))
                    deleted = cur.rowcount
        except Exception as e:
            raise PersistenceError(f"delete from {table} for period {period} failed: {e}") from e
        logger.debug("table=%s period=%s deleted_rows=%s", table, period, deleted)

    def insert_batch(self, schema: ImportSchema, records: Sequence[CanonicalRecord]) -> None:
        if not records:
            return
        table = get_schema_definition(schema).table
        rows = [r.to_row() for r in records]
        columns = list(rows[0])

        def _log_metrics(m: BatchMetrics) -> None:
            logger.debug("table=%s batch_size=%d elapsed_sec=%.3f", table, m.batch_size, m.elapsed_seconds)

        try:
            with self._conn:
                with self._conn.cursor() as cur:
                    result = batch_insert(
                        cur,
                        table=table,
                        columns=columns,
                        rows=([row[c] for c in columns] for row in rows),
                        page_size=self._page_size,
                        metrics_callback=_log_metrics,
                    )
        except BatchInsertError as e:
            raise PersistenceError(f"insert into {table} failed: {e}") from e
        except Exception as e:
            raise PersistenceError(f"insert into {table} aborted: {e}") from e
        logger.debug("table=%s inserted_rows=%d", table, result.inserted_rows)
