from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .reference import PendingSemester

"""Commit outcome model and CommitState enum for the two-phase commit.

State transitions: creating_semesters → creating_courses → completed.
Either creating state may end in failed; ``failed_stage`` records which one.
"""

__all__ = [
    "CommitState",
    "CommitOutcome",
]


class CommitState(Enum):
    """Lifecycle of an import commit.

    - CREATING_SEMESTERS: pending semesters are being created
    - CREATING_COURSES: courses are being created against resolved semesters
    - COMPLETED: both steps succeeded
    - FAILED: a store call failed; see CommitOutcome.failed_stage
    """
    CREATING_SEMESTERS = "creating_semesters"
    CREATING_COURSES = "creating_courses"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CommitOutcome:
    state: CommitState
    semesters_created: int = 0
    courses_created: int = 0
    failed_stage: CommitState | None = None  # stage active when the failure happened
    error: str | None = None
    # Semesters committed in step 1 although course creation later failed
    orphaned_semesters: list[PendingSemester] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is CommitState.COMPLETED
