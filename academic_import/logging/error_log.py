from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.candidate_row import CandidateRow
from ..models.error_record import ErrorRecord

"""Error log generation & buffering module.

- JSON Lines with a fixed key set (no extra keys)
- One ``<dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC) per run, created on first flush
- Records are buffered and written in one go at flush time
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "COMMIT_ERROR",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

COMMIT_ERROR = "COMMIT_ERROR"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    - flush() appends all buffered records to the file (created if needed)
    - The file path is decided on first access
    - Not thread-safe (imports run serially)
    """
    def __init__(self, directory: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._directory = directory if directory is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._directory.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._directory / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def append_row_issues(self, file: str, row: CandidateRow) -> None:
        """Buffer one record per issue of ``row``, in issue order."""
        for issue in row.issues:
            self.append(ErrorRecord.create(
                file=file,
                row=row.row_number,
                error_type=issue.category.value,
                message=issue.message,
            ))

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records. Returns the log path, or None when nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
