from __future__ import annotations

from collections.abc import Sequence

from ..models.import_report import FailureReason, ImportFailureError
from ..models.sheet import HeaderMatch, RawSheet

"""Header row detection.

Operator spreadsheets carry title and metadata rows above the real header,
so the header row is searched for instead of assumed. Only the first
`scan_limit` rows are inspected. A row that also carries a value-column
keyword is preferred over an earlier row carrying only the store keyword.
"""

__all__ = [
    "DEFAULT_SCAN_LIMIT",
    "HeaderNotFoundError",
    "locate_header",
    "row_text",
]

DEFAULT_SCAN_LIMIT = 20


class HeaderNotFoundError(ImportFailureError):
    """Raised when no row in the scan window contains the schema keywords."""
    reason = FailureReason.HEADER_NOT_FOUND


def row_text(sheet: RawSheet, row_index: int) -> str:
    """Lowercased, pipe-joined text of one row."""
    return "|".join(c.as_text().strip().lower() for c in sheet.rows[row_index])


def _normalized_headers(sheet: RawSheet, row_index: int) -> tuple[str, ...]:
    return tuple(c.as_text().strip().lower() for c in sheet.rows[row_index])


def _header_match(sheet: RawSheet, row_index: int) -> HeaderMatch:
    return HeaderMatch(row_index=row_index, normalized_headers=_normalized_headers(sheet, row_index))


def _matches(text: str, groups: Sequence[Sequence[str]]) -> bool:
    return all(any(k in text for k in group) for group in groups)


def locate_header(
    sheet: RawSheet,
    required_keyword_groups: Sequence[Sequence[str]],
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    preferred_keyword_groups: Sequence[Sequence[str]] = (),
) -> HeaderMatch:
    """Find the header row: the first row holding a keyword from every group.

    With `preferred_keyword_groups`, the first row that also matches those
    groups wins; the first row matching only the required groups is used
    when no such row is in the window. A title like "Vendas por Loja" thus
    does not shadow the real header below it.

    Raises:
        HeaderNotFoundError: no qualifying row in rows 0..scan_limit-1
    """
    if scan_limit < 1:
        raise ValueError(f"scan_limit must be positive: {scan_limit}")
    groups = [[k.lower() for k in group] for group in required_keyword_groups]
    preferred = [[k.lower() for k in group] for group in preferred_keyword_groups]
    fallback: int | None = None
    for row_index in range(min(scan_limit, len(sheet))):
        text = row_text(sheet, row_index)
        if not _matches(text, groups):
            continue
        if _matches(text, preferred):
            return _header_match(sheet, row_index)
        if fallback is None:
            fallback = row_index
    if fallback is not None:
        return _header_match(sheet, fallback)
    expected = " + ".join("/".join(g) for g in groups)
    raise HeaderNotFoundError(
        f"sheet '{sheet.name}': no header row with [{expected}] in first {scan_limit} rows"
    )
