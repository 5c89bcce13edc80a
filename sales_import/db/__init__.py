from .record_store import InMemoryRecordStore, PersistenceError, PostgresRecordStore, RecordStore
from .store_directory import (
    PostgresStoreDirectory,
    StaticStoreDirectory,
    StoreDirectory,
    StoreDirectoryError,
    load_stores_csv,
)

__all__ = [
    "InMemoryRecordStore",
    "PersistenceError",
    "PostgresRecordStore",
    "PostgresStoreDirectory",
    "RecordStore",
    "StaticStoreDirectory",
    "StoreDirectory",
    "StoreDirectoryError",
    "load_stores_csv",
]
