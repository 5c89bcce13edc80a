from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Protocol

import pandas as pd

from ..models.store import StoreDirectoryEntry, StoreStatus

"""Store directory collaborators (read only)."""

__all__ = [
    "StoreDirectory",
    "StaticStoreDirectory",
    "PostgresStoreDirectory",
    "StoreDirectoryError",
    "load_stores_csv",
]

STORE_COLUMNS = ("id", "number", "name", "city", "status")


class StoreDirectoryError(Exception):
    pass


class StoreDirectory(Protocol):
    def list_stores(self) -> Sequence[StoreDirectoryEntry]: ...


def _entry(raw: dict[str, Any]) -> StoreDirectoryEntry:
    return StoreDirectoryEntry(
        id=str(raw["id"]),
        number=str(raw.get("number") or ""),
        name=str(raw.get("name") or ""),
        city=str(raw.get("city") or ""),
        status=StoreStatus.parse(raw.get("status")),
    )


class StaticStoreDirectory:
    def __init__(self, entries: Iterable[StoreDirectoryEntry]) -> None:
        self._entries = tuple(entries)

    def list_stores(self) -> Sequence[StoreDirectoryEntry]:
        return self._entries


class PostgresStoreDirectory:
    """Reads the `stores` table through a psycopg2 connection."""

    def __init__(self, connection: Any, table: str = "stores") -> None:
        self._conn = connection
        self._table = table

    def list_stores(self) -> Sequence[StoreDirectoryEntry]:
        cols_sql = ",".join(f'"{c}"' for c in STORE_COLUMNS)
        try:
            with self._conn.cursor() as cur:
                cur.execute(f'SELECT {cols_sql} FROM "{self._table}"')
                fetched = cur.fetchall()
        except Exception as e:
            raise StoreDirectoryError(f"could not read {self._table}: {e}") from e
        return [_entry(dict(zip(STORE_COLUMNS, row, strict=False))) for row in fetched]


def load_stores_csv(path: Path) -> StaticStoreDirectory:
    """Load a store directory export (columns id, number, name[, city, status])."""
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, ValueError) as e:
        raise StoreDirectoryError(f"could not read stores file {path}: {e}") from e
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = {"id", "number"} - set(df.columns)
    if missing:
        raise StoreDirectoryError(f"stores file {path} missing columns: {sorted(missing)}")
    if "status" not in df.columns:
        df["status"] = StoreStatus.ACTIVE.value
    return StaticStoreDirectory(_entry(raw) for raw in df.to_dict(orient="records"))
