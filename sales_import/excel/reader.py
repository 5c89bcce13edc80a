from __future__ import annotations

from datetime import date, datetime, time
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.import_report import FailureReason, ImportFailureError
from ..models.sheet import Cell, RawSheet, to_cell
from ..normalize.values import EXCEL_EPOCH

"""Workbook reader: uploaded bytes -> RawSheet of the first worksheet.

The sheet is read raw (no header, object dtype, no NA string conversion) so
that header detection sees exactly what the operator typed. Date-formatted
cells are turned back into spreadsheet serial numbers.
"""

__all__ = [
    "WorkbookReadError",
    "read_first_sheet",
    "dataframe_to_sheet",
]


class WorkbookReadError(ImportFailureError):
    """Raised when the uploaded bytes cannot be opened as a workbook."""
    reason = FailureReason.UNREADABLE_WORKBOOK


def _to_serial(value: date) -> float:
    if isinstance(value, datetime):
        value = value.date()
    return float((value - EXCEL_EPOCH).days)


def _cell_from_raw(value: Any) -> Cell:
    if value is pd.NaT:
        return Cell.empty()
    # pd.Timestamp is a datetime subclass
    if isinstance(value, date):
        return Cell.number(_to_serial(value))
    if isinstance(value, time):
        return Cell.text(value.isoformat())
    return to_cell(value)


def dataframe_to_sheet(df: pd.DataFrame, sheet_name: str) -> RawSheet:
    rows = ([_cell_from_raw(v) for v in raw] for raw in df.itertuples(index=False, name=None))
    return RawSheet.from_rows(sheet_name, rows)


def read_first_sheet(source: bytes | Path) -> RawSheet:
    """Read the first worksheet of a workbook given as bytes or a path.

    Raises:
        WorkbookReadError: the source is not a readable workbook
    """
    handle: Any = BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        with pd.ExcelFile(handle) as xls:
            name = xls.sheet_names[0]
            df = xls.parse(name, header=None, dtype=object, keep_default_na=False, na_values=[])
    except Exception as e:
        raise WorkbookReadError(f"could not read workbook: {e}") from e
    return dataframe_to_sheet(df, str(name))
