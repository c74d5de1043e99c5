from __future__ import annotations

from dataclasses import dataclass, field

from .candidate_row import CourseType

"""Reference entities and store payloads for the course bulk import.

These mirror what the academic store returns (semesters, batches, faculty,
org units) and what it accepts (duplicate checks, semester and course
creation payloads). Ids are opaque strings (UUID text in PostgreSQL).
"""

__all__ = [
    "FACULTY_ROLE",
    "Semester",
    "Batch",
    "Faculty",
    "OrgUnit",
    "PendingSemester",
    "DuplicateCheck",
    "DuplicateCheckResult",
    "CoursePayload",
]

FACULTY_ROLE = "FACULTY"


@dataclass(frozen=True)
class Semester:
    id: str
    name: str  # e.g. S2-AID-2024
    year: int
    org_unit_id: str


@dataclass(frozen=True)
class Batch:
    id: str
    name: str  # e.g. 2025AIDA


@dataclass(frozen=True)
class Faculty:
    id: str
    profile_id: str  # human-chosen handle used in the template
    name: str = ""
    role: str = FACULTY_ROLE


@dataclass(frozen=True)
class OrgUnit:
    """Department or administrative unit; its code is derived from the name."""
    id: str
    name: str

    @property
    def code(self) -> str:
        return self.name[:3].upper()


@dataclass(frozen=True)
class PendingSemester:
    """Semester creation entry, deduplicated by (lower name, org unit id)."""
    name: str
    year: int
    org_unit_id: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.name.lower(), self.org_unit_id)


@dataclass(frozen=True)
class DuplicateCheck:
    semester_id: str
    code: str
    batch_ids: list[str] = field(default_factory=list)
    instructor_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DuplicateCheckResult:
    is_duplicate: bool
    code: str
    existing_course_name: str | None = None


@dataclass(frozen=True)
class CoursePayload:
    name: str
    code: str
    type: CourseType
    semester_id: str
    description: str | None = None
    instructor_ids: list[str] = field(default_factory=list)
    batch_ids: list[str] = field(default_factory=list)
