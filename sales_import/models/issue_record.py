from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""IssueRecord model for the import issue log.

One record per row-level or file-level problem found during an import
(unknown store, header not found, persistence failure...). Serialized as
JSON Lines with a fixed key set.
"""

__all__ = [
    "IssueRecord",
]


@dataclass(frozen=True)
class IssueRecord:
    """Structured issue record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Spreadsheet file name being imported
        row: Worksheet row number (1-based). -1 for file-level issues
        issue_type: Issue classification in UPPER_SNAKE_CASE
        detail: Human readable description
    """
    timestamp: str
    file: str
    row: int
    issue_type: str
    detail: str

    @staticmethod
    def create(file: str, row: int, issue_type: str, detail: str) -> IssueRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return IssueRecord(timestamp=ts, file=file, row=row, issue_type=issue_type, detail=detail)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
