from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from ..models.store import StoreDirectoryEntry
from ..normalize.values import normalize_store_token

"""Store resolution: spreadsheet store token -> store directory entry.

Resolution is by normalized number only ("Loja 007" == "7"). Names are never
used, so a renamed store still resolves and two stores with similar names
never collide.
"""

__all__ = [
    "StoreResolver",
    "active_stores",
]

logger = logging.getLogger(__name__)


class StoreResolver:
    """Index over a store directory snapshot, keyed by normalized number."""

    def __init__(self, entries: Iterable[StoreDirectoryEntry]) -> None:
        self._by_number: dict[str, StoreDirectoryEntry] = {}
        for entry in entries:
            number = normalize_store_token(entry.number)
            if not number:
                logger.warning("store id=%s has no usable number (%r); ignored", entry.id, entry.number)
                continue
            if number in self._by_number:
                logger.warning(
                    "duplicate store number=%s (ids %s, %s); keeping first",
                    number,
                    self._by_number[number].id,
                    entry.id,
                )
                continue
            self._by_number[number] = entry

    def __len__(self) -> int:
        return len(self._by_number)

    def resolve(self, token: Any) -> StoreDirectoryEntry | None:
        number = normalize_store_token(token)
        if not number:
            return None
        return self._by_number.get(number)


def active_stores(entries: Iterable[StoreDirectoryEntry]) -> list[StoreDirectoryEntry]:
    """Entries with status active, as consumed by ranking/reporting views."""
    return [e for e in entries if e.is_active]
