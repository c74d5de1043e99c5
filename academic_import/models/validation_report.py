from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .candidate_row import CandidateRow
from .reference import PendingSemester

"""Validation report model for the course bulk import.

Aggregated result of the validation pass: every candidate row in spreadsheet
order plus the semesters the import would create. Surfaced to the user before
the commit is confirmed.
"""

__all__ = [
    "ValidationReport",
]


@dataclass
class ValidationReport:
    source_name: str  # workbook file name or caller label
    rows: list[CandidateRow]  # spreadsheet order
    pending_semesters: list[PendingSemester] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def valid_rows(self) -> list[CandidateRow]:
        return [r for r in self.rows if r.is_valid]

    @property
    def invalid_rows(self) -> list[CandidateRow]:
        return [r for r in self.rows if not r.is_valid]

    @property
    def all_valid(self) -> bool:
        return bool(self.rows) and all(r.is_valid for r in self.rows)

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()
