from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..db.record_store import PersistenceError, RecordStore
from ..models.records import CanonicalRecord, ImportSchema

"""Whole-period replacement of canonical records.

A new batch supersedes everything stored for the periods it contains, for
all stores: rows missing from a corrected file disappear, and importing the
same file twice leaves the same state as importing it once.

The two calls (delete, then insert) are issued in sequence with no
rollback: if the insert fails after the delete, the period stays empty until
the import is re-run. Concurrent imports of the same period are not
coordinated; the last one to finish wins.
"""

__all__ = [
    "ReplacementScope",
    "plan_deletion",
    "apply",
    "reconcile",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplacementScope:
    schema: ImportSchema
    periods: tuple[str, ...]  # sorted, unique


def plan_deletion(schema: ImportSchema, batch: Sequence[CanonicalRecord]) -> ReplacementScope:
    """Periods whose stored records the batch replaces."""
    return ReplacementScope(schema=schema, periods=tuple(sorted({r.period for r in batch})))


def apply(scope: ReplacementScope, batch: Sequence[CanonicalRecord], store: RecordStore) -> int:
    """Delete every period in scope, then insert the batch.

    Returns:
        number of inserted records

    Raises:
        PersistenceError: either call failed (no retry, no compensation)
    """
    stray = {r.period for r in batch} - set(scope.periods)
    if stray:
        raise ValueError(f"batch has periods outside the replacement scope: {sorted(stray)}")

    for period in scope.periods:
        try:
            store.delete_by_period(scope.schema, period)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"delete of period {period} failed: {e}") from e
        logger.debug("schema=%s period=%s cleared", scope.schema.value, period)

    try:
        store.insert_batch(scope.schema, batch)
    except Exception as e:
        logger.error(
            "schema=%s periods=%s were cleared but insert failed; re-run the import: %s",
            scope.schema.value,
            ",".join(scope.periods),
            e,
        )
        if isinstance(e, PersistenceError):
            raise
        raise PersistenceError(f"insert of {len(batch)} records failed: {e}") from e
    return len(batch)


def reconcile(schema: ImportSchema, batch: Sequence[CanonicalRecord], store: RecordStore) -> int:
    """plan_deletion + apply."""
    return apply(plan_deletion(schema, batch), batch, store)
