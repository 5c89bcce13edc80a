"""Domain models for the store sales spreadsheet importer."""

from .import_report import FailureReason, ImportFailureError, ImportOutcome, ImportReport
from .issue_record import IssueRecord
from .records import CanonicalRecord, ImportSchema, PerformanceActual, ProductPerformance
from .sheet import Cell, CellKind, HeaderMatch, RawSheet
from .store import StoreDirectoryEntry, StoreStatus

__all__ = [
    # Worksheet
    "Cell",
    "CellKind",
    "HeaderMatch",
    "RawSheet",
    # Store directory
    "StoreDirectoryEntry",
    "StoreStatus",
    # Canonical records
    "CanonicalRecord",
    "ImportSchema",
    "PerformanceActual",
    "ProductPerformance",
    # Reporting
    "FailureReason",
    "ImportFailureError",
    "ImportOutcome",
    "ImportReport",
    "IssueRecord",
]
