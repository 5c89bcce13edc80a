from __future__ import annotations

import numbers
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Raw worksheet models for the spreadsheet importer.

A worksheet is read once into a RawSheet: an immutable matrix of tagged
cells. Every downstream step (header scan, column mapping, row building)
reads cells through resolved column indices only.
"""

__all__ = [
    "CellKind",
    "Cell",
    "RawSheet",
    "HeaderMatch",
]


class CellKind(Enum):
    """Tag for a worksheet cell value."""
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    value: float | str | None = None

    @staticmethod
    def empty() -> Cell:
        return _EMPTY

    @staticmethod
    def number(value: float) -> Cell:
        return Cell(CellKind.NUMBER, value)

    @staticmethod
    def text(value: str) -> Cell:
        # Whitespace-only text carries no information
        if not value.strip():
            return _EMPTY
        return Cell(CellKind.TEXT, value)

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    def as_text(self) -> str:
        """Text form used for header matching and identifiers."""
        if self.kind is CellKind.EMPTY:
            return ""
        if self.kind is CellKind.NUMBER and float(self.value).is_integer():  # type: ignore[arg-type]
            return str(int(self.value))  # type: ignore[arg-type]
        return str(self.value)


_EMPTY = Cell(CellKind.EMPTY, None)


@dataclass(frozen=True)
class RawSheet:
    """Immutable worksheet matrix. All rows share the same width."""
    name: str
    rows: tuple[tuple[Cell, ...], ...]

    @staticmethod
    def from_rows(name: str, rows: Iterable[Sequence[Cell]]) -> RawSheet:
        materialized = [tuple(r) for r in rows]
        width = max((len(r) for r in materialized), default=0)
        padded = tuple(r + (Cell.empty(),) * (width - len(r)) for r in materialized)
        return RawSheet(name=name, rows=padded)

    @staticmethod
    def from_values(name: str, rows: Iterable[Sequence[Any]]) -> RawSheet:
        """Build a sheet from plain Python values (None/number/str)."""
        return RawSheet.from_rows(name, ([to_cell(v) for v in row] for row in rows))

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def __len__(self) -> int:
        return len(self.rows)

    def cell(self, row_index: int, column_index: int | None) -> Cell:
        if column_index is None or column_index >= self.width:
            return Cell.empty()
        return self.rows[row_index][column_index]

    def row_is_blank(self, row_index: int) -> bool:
        return all(c.is_empty for c in self.rows[row_index])


@dataclass(frozen=True)
class HeaderMatch:
    row_index: int  # 0-based index of the header row in the sheet
    normalized_headers: tuple[str, ...]  # lowercased, trimmed header texts


def to_cell(value: Any) -> Cell:
    """Tag a plain Python value. bool is treated as text, not as a number."""
    if value is None:
        return Cell.empty()
    if isinstance(value, bool):
        return Cell.text(str(value))
    if isinstance(value, numbers.Real):
        if value != value:  # NaN
            return Cell.empty()
        return Cell.number(float(value))
    return Cell.text(str(value))
