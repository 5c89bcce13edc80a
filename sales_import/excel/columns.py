from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass

from ..models.import_report import FailureReason, ImportFailureError
from ..models.sheet import HeaderMatch
from .keywords import SchemaDefinition

"""Column mapping: semantic field -> column index.

For every field of a schema the first header cell, scanning left to right,
that contains any of the field's keywords is taken. Fields without a match
are absent (None).
"""

__all__ = [
    "FieldMap",
    "MissingRequiredColumnsError",
    "find_column",
    "map_columns",
]


class MissingRequiredColumnsError(ImportFailureError):
    """Raised when fields required by the schema have no matching column."""
    reason = FailureReason.MISSING_REQUIRED_COLUMNS

    def __init__(self, missing_fields: Sequence[str], headers: Sequence[str] = ()) -> None:
        self.missing_fields = tuple(missing_fields)
        shown = [h for h in headers if h]
        super().__init__(
            f"missing required columns: {', '.join(self.missing_fields)} (header: {shown})"
        )


@dataclass(frozen=True)
class FieldMap:
    indices: Mapping[str, int | None]

    def index(self, name: str) -> int | None:
        return self.indices.get(name)

    def has(self, name: str) -> bool:
        return self.indices.get(name) is not None

    def missing(self, definition: SchemaDefinition) -> list[str]:
        """Required fields (and unsatisfied any-of groups) that did not resolve."""
        missing = [name for name in definition.required if not self.has(name)]
        for group in definition.required_any:
            if not any(self.has(name) for name in group):
                missing.extend(name for name in group if name not in missing)
        return missing


def find_column(
    headers: Sequence[str],
    keywords: Sequence[str],
    exclude_keywords: Sequence[str] = (),
    taken: Collection[int] = (),
) -> int | None:
    for i, header in enumerate(headers):
        if not header or i in taken:
            continue
        if any(k in header for k in exclude_keywords):
            continue
        if any(k in header for k in keywords):
            return i
    return None


def map_columns(header: HeaderMatch, definition: SchemaDefinition) -> FieldMap:
    """Resolve every schema field against the located header row.

    Fields with exclusions are resolved after the others and never take a
    column already mapped to, or named like, an excluded field. "Meta Mês"
    stays a target column and is not read as the period.

    Raises:
        MissingRequiredColumnsError: a required field did not resolve
    """
    headers = header.normalized_headers
    indices: dict[str, int | None] = {}
    for name, keywords in definition.field_keywords.items():
        if name not in definition.field_excludes:
            indices[name] = find_column(headers, keywords)
    for name, keywords in definition.field_keywords.items():
        if name in definition.field_excludes:
            taken = {
                indices[other]
                for other in definition.field_excludes[name]
                if indices.get(other) is not None
            }
            indices[name] = find_column(headers, keywords, definition.excluded_keywords(name), taken)
    field_map = FieldMap(indices={name: indices[name] for name in definition.field_keywords})
    missing = field_map.missing(definition)
    if missing:
        raise MissingRequiredColumnsError(missing, headers)
    return field_map
