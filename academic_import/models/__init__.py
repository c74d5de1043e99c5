"""Domain models for the course bulk import tool.

This package contains the domain model classes used throughout the application:
configuration, candidate rows, reference entities, the validation report and
the commit outcome.
"""

from .candidate_row import (
    CandidateRow,
    CourseType,
    IssueCategory,
    PendingSemesterRef,
    PersistedSemester,
    RowIssue,
    SemesterRef,
)
from .commit_outcome import CommitOutcome, CommitState
from .config_models import DatabaseConfig, ImportConfig
from .error_record import ErrorRecord
from .reference import (
    Batch,
    CoursePayload,
    DuplicateCheck,
    DuplicateCheckResult,
    Faculty,
    OrgUnit,
    PendingSemester,
    Semester,
)
from .validation_report import ValidationReport

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Row models
    "CandidateRow",
    "CourseType",
    "IssueCategory",
    "RowIssue",
    "PersistedSemester",
    "PendingSemesterRef",
    "SemesterRef",
    # Reference entities and payloads
    "Semester",
    "Batch",
    "Faculty",
    "OrgUnit",
    "PendingSemester",
    "DuplicateCheck",
    "DuplicateCheckResult",
    "CoursePayload",
    # Results
    "ValidationReport",
    "CommitOutcome",
    "CommitState",
    "ErrorRecord",
]
