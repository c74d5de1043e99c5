from __future__ import annotations

import logging
from collections.abc import Sequence

from ..db.store import AcademicStore, StoreError
from ..models.candidate_row import CandidateRow, CourseType, PendingSemesterRef, PersistedSemester
from ..models.commit_outcome import CommitOutcome, CommitState
from ..models.reference import CoursePayload, PendingSemester, Semester
from ..models.validation_report import ValidationReport

"""Two-phase commit of a validated import.

1. Create every pending semester of the valid rows in one call
   (deduplicated by lower-cased name + org unit). Failure aborts the import.
2. Re-fetch semesters and swap each pending reference for the real id.
3. Create one course per valid row in one call.

Semester and course creation are separate store calls. When step 3 fails the
semesters from step 1 stay committed; the outcome lists them as
``orphaned_semesters`` and no compensating delete is attempted.
"""

__all__ = [
    "CommitError",
    "collect_pending_semesters",
    "build_semester_id_map",
    "apply_semester_ids",
    "build_course_payload",
    "commit_import",
]

logger = logging.getLogger(__name__)


class CommitError(Exception):
    """Raised when resolved semester ids can not be applied to the rows."""


def collect_pending_semesters(rows: Sequence[CandidateRow]) -> list[PendingSemester]:
    """One PendingSemester per (lower name, org unit) among valid rows, first row first."""
    pending: dict[tuple[str, str], PendingSemester] = {}
    for row in rows:
        if not row.is_valid or not isinstance(row.semester_ref, PendingSemesterRef) or row.year is None:
            continue
        entry = PendingSemester(
            name=row.semester_name, year=row.year, org_unit_id=row.semester_ref.org_unit_id
        )
        pending.setdefault(entry.key, entry)
    return list(pending.values())


def build_semester_id_map(semesters: Sequence[Semester]) -> dict[tuple[str, str], str]:
    """Map (lower name, org unit id) -> semester id."""
    return {(s.name.lower(), s.org_unit_id): s.id for s in semesters}


def apply_semester_ids(
    rows: Sequence[CandidateRow], id_map: dict[tuple[str, str], str]
) -> None:
    """Replace pending semester references with persisted ones.

    Raises CommitError naming every semester that is still unknown.
    """
    missing: list[str] = []
    for row in rows:
        ref = row.semester_ref
        if not isinstance(ref, PendingSemesterRef):
            continue
        real_id = id_map.get((ref.name_key, ref.org_unit_id))
        if real_id is None:
            missing.append(row.semester_name)
            continue
        row.semester_ref = PersistedSemester(real_id)
        row.needs_semester_creation = False
    if missing:
        names = ", ".join(dict.fromkeys(missing))
        raise CommitError(f"semesters not found after creation: {names}")


def build_course_payload(row: CandidateRow) -> CoursePayload:
    semester_id = row.semester_id
    if semester_id is None:
        raise CommitError(f"row {row.row_number} has no persisted semester id")
    course_type = row.course_type
    if course_type is None:
        # Kept CORE fallback; only reachable for rows that failed the type check.
        logger.warning(
            "row=%d course type %r missing, falling back to CORE",
            row.row_number, row.course_type_raw,
        )
        course_type = CourseType.CORE
    return CoursePayload(
        name=row.course_name,
        code=row.course_code,
        description=row.course_description,
        type=course_type,
        semester_id=semester_id,
        instructor_ids=list(row.instructor_ids),
        batch_ids=list(row.batch_ids),
    )


def commit_import(report: ValidationReport, store: AcademicStore) -> CommitOutcome:
    """Commit the valid rows of ``report``. Never raises for store failures."""
    valid_rows = report.valid_rows
    if not valid_rows:
        logger.error("commit: no valid rows to process")
        return CommitOutcome(
            state=CommitState.FAILED,
            failed_stage=CommitState.CREATING_SEMESTERS,
            error="No valid rows to process",
        )

    # Phase 1: semesters
    state = CommitState.CREATING_SEMESTERS
    pending = collect_pending_semesters(valid_rows)
    if pending:
        logger.info("commit: creating %d semester(s)", len(pending))
        try:
            store.create_semesters(pending)
        except StoreError as e:
            logger.error("commit: semester creation failed: %s", e)
            return CommitOutcome(state=CommitState.FAILED, failed_stage=state, error=str(e))
        try:
            apply_semester_ids(valid_rows, build_semester_id_map(store.list_semesters()))
        except (StoreError, CommitError) as e:
            logger.error("commit: semester refresh failed: %s", e)
            return CommitOutcome(
                state=CommitState.FAILED,
                semesters_created=len(pending),
                failed_stage=state,
                error=str(e),
                orphaned_semesters=list(pending),
            )

    # Phase 2: courses
    state = CommitState.CREATING_COURSES
    try:
        payloads = [build_course_payload(r) for r in valid_rows]
        logger.info("commit: creating %d course(s)", len(payloads))
        created = store.create_courses(payloads)
    except (StoreError, CommitError) as e:
        logger.error("commit: course creation failed: %s", e)
        if pending:
            logger.warning(
                "commit: %d semester(s) were created before the failure and remain: %s",
                len(pending), ", ".join(p.name for p in pending),
            )
        return CommitOutcome(
            state=CommitState.FAILED,
            semesters_created=len(pending),
            failed_stage=state,
            error=str(e),
            orphaned_semesters=list(pending),
        )

    return CommitOutcome(
        state=CommitState.COMPLETED,
        semesters_created=len(pending),
        courses_created=created,
    )
