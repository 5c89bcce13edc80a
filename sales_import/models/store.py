from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Store directory entry model.

Entries are owned by the external store directory; the importer only reads
them to resolve spreadsheet store tokens.
"""

__all__ = [
    "StoreStatus",
    "StoreDirectoryEntry",
]


class StoreStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def parse(cls, raw: object) -> StoreStatus:
        """Anything other than an explicit 'active' (pending, blank...) counts as inactive."""
        if str(raw or "").strip().lower() == cls.ACTIVE.value:
            return cls.ACTIVE
        return cls.INACTIVE


@dataclass(frozen=True)
class StoreDirectoryEntry:
    id: str
    number: str  # canonical digit string, e.g. "42"
    name: str
    city: str = ""
    status: StoreStatus = StoreStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is StoreStatus.ACTIVE
