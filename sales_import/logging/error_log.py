from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.issue_record import IssueRecord

"""Issue log buffering.

Row-level and file-level import issues are collected in memory during a run
and written once as JSON Lines to `<logs_dir>/issues-YYYYMMDD-HHMMSS.log`
(UTC). Nothing is written when no issue was recorded.
"""

__all__ = [
    "IssueRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer of IssueRecords. flush() appends them as JSON Lines.

    Single import process, serial use only.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[IssueRecord] = []
        self._logs_dir = logs_dir or LOGS_DIR
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"issues-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[IssueRecord]:
        return list(self._records)

    def append(self, record: IssueRecord) -> None:
        self._records.append(record)

    def add(self, file: str, row: int, issue_type: str, detail: str) -> None:
        self.append(IssueRecord.create(file=file, row=row, issue_type=issue_type, detail=detail))

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records. Returns the log path, or None when empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
