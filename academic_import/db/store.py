from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from ..models.reference import (
    Batch,
    CoursePayload,
    DuplicateCheck,
    DuplicateCheckResult,
    Faculty,
    OrgUnit,
    PendingSemester,
    Semester,
)

"""Academic store protocol.

The import engine talks to persistence only through this interface:
bulk reference listings (unpaginated), one batched duplicate check and two
bulk creation calls. ``PostgresAcademicStore`` and ``InMemoryAcademicStore``
implement it.
"""

__all__ = [
    "StoreError",
    "AcademicStore",
]


class StoreError(Exception):
    """Raised when a store query or mutation fails."""


class AcademicStore(Protocol):
    def list_semesters(self) -> list[Semester]: ...

    def list_batches(self) -> list[Batch]: ...

    def list_faculty(self) -> list[Faculty]: ...

    def list_org_units(self) -> list[OrgUnit]: ...

    def check_duplicate_courses(
        self, candidates: Sequence[DuplicateCheck]
    ) -> list[DuplicateCheckResult]:
        """Return one result per candidate, in candidate order."""
        ...

    def create_semesters(self, entries: Sequence[PendingSemester]) -> None:
        """Create all entries or none."""
        ...

    def create_courses(self, entries: Sequence[CoursePayload]) -> int:
        """Create all courses with their batch/instructor links; returns the count."""
        ...
