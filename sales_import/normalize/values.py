from __future__ import annotations

import numbers
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from ..models.sheet import Cell, CellKind

"""Cell value normalization: amounts, period keys and store tokens.

All functions accept either a tagged Cell or a plain Python value and never
raise. Unparseable amounts become 0 and unparseable periods become None, so
callers cannot tell a malformed cell from a genuine zero. ValueDiagnostics
counts those fallbacks without changing any computed value.
"""

__all__ = [
    "ValueDiagnostics",
    "parse_amount",
    "parse_period_key",
    "normalize_store_token",
    "is_period_key",
    "EXCEL_EPOCH",
]

# Spreadsheet serial day 0. Serial 1 is 1899-12-31, serial 45292 is 2024-01-01.
EXCEL_EPOCH = date(1899, 12, 30)
_MAX_SERIAL = (date(9999, 12, 31) - EXCEL_EPOCH).days

# Everything except digits, separators and sign: currency symbols, %, spaces, NBSP
_AMOUNT_NOISE = re.compile(r"[^\d,.\-]")
_PLACEHOLDERS = {"", "-"}

_PERIOD_ISO = re.compile(r"^(\d{4})-(\d{2})$")
_PERIOD_MONTH_YEAR = re.compile(r"^(\d{1,2})[/-](\d{4})$")


@dataclass
class ValueDiagnostics:
    """Counts of non-empty cells that silently fell back to a default."""
    zero_fallback_cells: int = 0
    period_fallback_cells: int = 0

    def record_zero_fallback(self) -> None:
        self.zero_fallback_cells += 1

    def record_period_fallback(self) -> None:
        self.period_fallback_cells += 1


def _unwrap(raw: Any) -> Any:
    if isinstance(raw, Cell):
        return None if raw.kind is CellKind.EMPTY else raw.value
    return raw


def parse_amount(raw: Any, diagnostics: ValueDiagnostics | None = None) -> float:
    """Parse a locale-formatted amount.

    "1.234,56", "1234,56", "1234.56", "R$ 1.234,56" and 1234.56 all give 1234.56.
    When both '.' and ',' occur, '.' is the thousands separator. A lone ','
    is the decimal separator. Empty or non-numeric input gives 0.
    """
    value = _unwrap(raw)
    if value is None:
        return 0.0
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        if value != value:  # NaN
            return 0.0
        return float(value)

    text = str(value).replace("\xa0", " ").strip()
    clean = _AMOUNT_NOISE.sub("", text)
    if clean in _PLACEHOLDERS:
        if text not in _PLACEHOLDERS and diagnostics is not None:
            diagnostics.record_zero_fallback()
        return 0.0
    if "," in clean and "." in clean:
        clean = clean.replace(".", "").replace(",", ".")
    elif "," in clean:
        clean = clean.replace(",", ".")
    try:
        return float(clean)
    except ValueError:
        if diagnostics is not None:
            diagnostics.record_zero_fallback()
        return 0.0


def _month_key(year: int, month: int) -> str | None:
    if not 1 <= month <= 12 or year < 1:
        return None
    return f"{year:04d}-{month:02d}"


def parse_period_key(raw: Any) -> str | None:
    """Convert a cell to a YYYY-MM period key, or None when the shape is unknown.

    Numbers are spreadsheet serial dates. Strings may be YYYY-MM (kept),
    MM/YYYY or MM-YYYY (rewritten).
    """
    value = _unwrap(raw)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, date):
        return _month_key(value.year, value.month)
    if isinstance(value, numbers.Real):
        if value != value or not 1 <= value <= _MAX_SERIAL:
            return None
        day = EXCEL_EPOCH + timedelta(days=int(value))
        return _month_key(day.year, day.month)

    text = str(value).strip()
    m = _PERIOD_ISO.match(text)
    if m:
        return _month_key(int(m.group(1)), int(m.group(2)))
    m = _PERIOD_MONTH_YEAR.match(text)
    if m:
        return _month_key(int(m.group(2)), int(m.group(1)))
    return None


def is_period_key(value: str) -> bool:
    m = _PERIOD_ISO.match(value or "")
    return bool(m) and 1 <= int(m.group(2)) <= 12


def normalize_store_token(raw: Any) -> str:
    """Reduce a store reference to its canonical number: "Loja 0042" -> "42".

    An empty result means the cell carries no store reference.
    """
    value = _unwrap(raw)
    if value is None:
        return ""
    if isinstance(value, float) and value == value and value.is_integer():
        value = int(value)
    digits = "".join(ch for ch in str(value) if ch in "0123456789")
    return digits.lstrip("0")
