from __future__ import annotations

import logging
from collections.abc import Sequence

from ..db.store import AcademicStore, StoreError
from ..models.candidate_row import CandidateRow, IssueCategory, PersistedSemester
from ..models.reference import DuplicateCheck

"""Duplicate detection for candidate course rows.

Two rows (or a row and a stored course) are exact duplicates when semester,
course code, batch set and instructor set all match. The duplicate key sorts
the id lists so spreadsheet entry order does not matter.

- IntraBatchDuplicateDetector: rows of the same upload, first occurrence wins
- check_persisted_duplicates: one batched store query for rows with a real
  semester id (rows whose semester is still pending can not collide)
"""

__all__ = [
    "duplicate_key",
    "row_duplicate_key",
    "IntraBatchDuplicateDetector",
    "check_persisted_duplicates",
]

logger = logging.getLogger(__name__)


def duplicate_key(
    semester_key: str, course_code: str, batch_ids: Sequence[str], instructor_ids: Sequence[str]
) -> str:
    batches = ",".join(sorted(batch_ids))
    instructors = ",".join(sorted(instructor_ids))
    return f"{semester_key}-{course_code}-{batches}-{instructors}".lower()


def row_duplicate_key(row: CandidateRow) -> str | None:
    """Key from resolved ids only.

    None while the semester or course code is missing, or while any instructor
    or batch reference is unresolved: a partial id list must not collide with a
    row whose references all resolved.
    """
    if row.semester_ref is None or not row.course_code:
        return None
    if len(row.instructor_ids) != len(row.instructor_refs) or len(row.batch_ids) != len(row.batch_refs):
        return None
    return duplicate_key(
        row.semester_ref.key_text, row.course_code, row.batch_ids, row.instructor_ids
    )


class IntraBatchDuplicateDetector:
    """Flags rows repeating an earlier row of the same upload.

    Rows must be fed in spreadsheet order. Only rows that are error-free when
    checked register their key; later rows with the same key get an issue
    naming the first row, which itself is left untouched.
    """

    def __init__(self) -> None:
        self._first_seen: dict[str, int] = {}

    def check(self, row: CandidateRow) -> None:
        key = row_duplicate_key(row)
        if key is None:
            return
        first = self._first_seen.get(key)
        if first is not None:
            row.add_issue(
                IssueCategory.DUPLICATE,
                "Exact duplicate found: This course with the same code, batches, "
                f"and instructors already appears in row {first}",
            )
        elif row.is_valid:
            self._first_seen[key] = row.row_number


def _passed_resolution(row: CandidateRow) -> bool:
    return all(issue.category is IssueCategory.DUPLICATE for issue in row.issues)


def check_persisted_duplicates(rows: Sequence[CandidateRow], store: AcademicStore) -> int:
    """Flag rows that duplicate an already stored course. Returns the number flagged.

    Candidates are rows with a persisted semester id whose only issues, if any,
    are intra-batch duplicates; such rows may end up with both duplicate issues.
    The store is queried once for all candidates and not at all when there are none.
    """
    candidates = [
        r for r in rows
        if _passed_resolution(r) and r.course_code and isinstance(r.semester_ref, PersistedSemester)
    ]
    if not candidates:
        return 0

    checks = [
        DuplicateCheck(
            semester_id=r.semester_ref.id,  # type: ignore[union-attr]
            code=r.course_code,
            batch_ids=list(r.batch_ids),
            instructor_ids=list(r.instructor_ids),
        )
        for r in candidates
    ]
    results = store.check_duplicate_courses(checks)
    if len(results) != len(checks):
        raise StoreError(
            f"duplicate check returned {len(results)} results for {len(checks)} courses"
        )

    flagged = 0
    for row, result in zip(candidates, results, strict=True):
        if result.is_duplicate:
            row.add_issue(
                IssueCategory.DUPLICATE,
                f'Exact duplicate: A course "{result.code}" with the same batches and '
                f"instructors already exists in this semester ({result.existing_course_name})",
            )
            flagged += 1
    logger.debug("persisted duplicate check candidates=%d flagged=%d", len(checks), flagged)
    return flagged
