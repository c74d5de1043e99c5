from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""CandidateRow domain model for the course bulk import.

A CandidateRow is born from one spreadsheet row, enriched in place by the
validation stages (field checks, semester/reference resolution, duplicate
detection) and finally either discarded or turned into one course payload.

Semester references are a tagged variant: ``PersistedSemester`` carries a real
store id, ``PendingSemesterRef`` stands for a semester this import still has to
create. Only ``PersistedSemester`` exposes an ``id``.
"""

__all__ = [
    "CourseType",
    "IssueCategory",
    "RowIssue",
    "PersistedSemester",
    "PendingSemesterRef",
    "SemesterRef",
    "CandidateRow",
]

PENDING_PREFIX = "new-"


class CourseType(Enum):
    """Course type literals accepted in the template (exact match, upper-case)."""
    CORE = "CORE"
    ELECTIVE = "ELECTIVE"
    MICRO_CREDENTIAL = "MICRO_CREDENTIAL"

    @classmethod
    def parse(cls, literal: str) -> CourseType | None:
        try:
            return cls(literal)
        except ValueError:
            return None


class IssueCategory(Enum):
    """Row-level issue taxonomy. Each maps to an UPPER_SNAKE error_type."""
    FIELD = "FIELD_ERROR"
    REFERENCE = "REFERENCE_ERROR"
    RANGE = "RANGE_ERROR"
    DUPLICATE = "DUPLICATE_ERROR"


@dataclass(frozen=True)
class RowIssue:
    category: IssueCategory
    message: str


@dataclass(frozen=True)
class PersistedSemester:
    """Semester that already exists in the store."""
    id: str

    @property
    def key_text(self) -> str:
        return self.id


@dataclass(frozen=True)
class PendingSemesterRef:
    """Semester that must be created before courses can reference it.

    Keyed by (lower-cased name, org unit id), the same key used to deduplicate
    pending semesters across rows.
    """
    name_key: str  # lower-cased semester name
    org_unit_id: str

    @property
    def key_text(self) -> str:
        return f"{PENDING_PREFIX}{self.name_key}-{self.org_unit_id}"


SemesterRef = PersistedSemester | PendingSemesterRef


@dataclass
class CandidateRow:
    """One spreadsheet row under validation."""
    row_number: int  # 1-based spreadsheet row (header row offset applied)
    semester_name: str = ""
    course_name: str = ""
    course_code: str = ""
    course_description: str | None = None
    course_type_raw: str = ""  # upper-cased literal as typed
    course_type: CourseType | None = None
    instructor_refs: list[str] = field(default_factory=list)  # faculty profile ids
    batch_refs: list[str] = field(default_factory=list)  # batch names
    # Resolved fields
    semester_ref: SemesterRef | None = None
    instructor_ids: list[str] = field(default_factory=list)
    batch_ids: list[str] = field(default_factory=list)
    org_unit_id: str | None = None
    sequence_number: int | None = None
    org_unit_code: str | None = None
    year: int | None = None
    needs_semester_creation: bool = False
    issues: list[RowIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def add_issue(self, category: IssueCategory, message: str) -> None:
        self.issues.append(RowIssue(category, message))

    @property
    def semester_id(self) -> str | None:
        """Real semester id, or None while the semester is pending/unresolved."""
        if isinstance(self.semester_ref, PersistedSemester):
            return self.semester_ref.id
        return None
