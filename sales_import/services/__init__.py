from .importer import import_spreadsheet, ingest_sheet
from .reconciliation import ReplacementScope, apply, plan_deletion, reconcile
from .store_resolver import StoreResolver, active_stores

__all__ = [
    "ReplacementScope",
    "StoreResolver",
    "active_stores",
    "apply",
    "import_spreadsheet",
    "ingest_sheet",
    "plan_deletion",
    "reconcile",
]
