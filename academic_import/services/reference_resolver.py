from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..db.store import AcademicStore
from ..models.candidate_row import (
    CandidateRow,
    IssueCategory,
    PendingSemesterRef,
    PersistedSemester,
)
from ..models.reference import FACULTY_ROLE, Batch, Faculty, OrgUnit, Semester
from .semester_name import parse_semester_name

"""Reference resolver: human-entered names -> persisted ids.

The LookupIndex is built once per import from four bulk store queries and is
never mutated afterwards, so resolving one row can not affect another.
Faculty lookup is global (not scoped to the semester's org unit).
"""

__all__ = [
    "LookupIndex",
    "build_lookup_index",
    "resolve_row",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupIndex:
    """Case-insensitive lookup tables keyed by lower-cased name / upper-cased code."""
    semesters: dict[str, Semester]  # lower(name) -> Semester
    batches: dict[str, Batch]  # lower(name) -> Batch
    faculty: dict[str, Faculty]  # lower(profile_id) -> Faculty (FACULTY role only)
    org_units: dict[str, OrgUnit]  # first 3 letters of name, upper -> OrgUnit

    @classmethod
    def from_entities(
        cls,
        semesters: Iterable[Semester],
        batches: Iterable[Batch],
        faculty: Iterable[Faculty],
        org_units: Iterable[OrgUnit],
    ) -> LookupIndex:
        org_map: dict[str, OrgUnit] = {}
        for unit in org_units:
            code = unit.code
            # first org unit wins when two names share a 3-letter prefix
            if code in org_map:
                logger.warning(
                    "org unit code collision code=%s kept=%s ignored=%s",
                    code, org_map[code].name, unit.name,
                )
                continue
            org_map[code] = unit
        return cls(
            semesters={s.name.lower(): s for s in semesters},
            batches={b.name.lower(): b for b in batches},
            faculty={
                f.profile_id.lower(): f for f in faculty if f.role.upper() == FACULTY_ROLE
            },
            org_units=org_map,
        )

    def semester(self, name: str) -> Semester | None:
        return self.semesters.get(name.lower())

    def batch(self, name: str) -> Batch | None:
        return self.batches.get(name.lower())

    def faculty_member(self, profile_id: str) -> Faculty | None:
        return self.faculty.get(profile_id.lower())

    def org_unit(self, code: str) -> OrgUnit | None:
        return self.org_units.get(code.upper())


def build_lookup_index(store: AcademicStore) -> LookupIndex:
    index = LookupIndex.from_entities(
        store.list_semesters(),
        store.list_batches(),
        store.list_faculty(),
        store.list_org_units(),
    )
    logger.debug(
        "lookup index semesters=%d batches=%d faculty=%d org_units=%d",
        len(index.semesters), len(index.batches), len(index.faculty), len(index.org_units),
    )
    return index


def _resolve_semester(row: CandidateRow, index: LookupIndex, current_year: int | None) -> None:
    parsed = parse_semester_name(row.semester_name, current_year=current_year)
    row.sequence_number = parsed.sequence_number
    row.org_unit_code = parsed.org_unit_code
    row.year = parsed.year
    if not parsed.valid:
        category = IssueCategory.RANGE if parsed.format_ok else IssueCategory.FIELD
        for message in parsed.errors:
            row.add_issue(category, message)
        return

    unit = index.org_unit(parsed.org_unit_code or "")
    if unit is None:
        row.add_issue(
            IssueCategory.REFERENCE,
            f'Department "{parsed.org_unit_code}" not found. '
            "Please ensure the department exists in the system.",
        )
        return
    row.org_unit_id = unit.id

    semester = index.semester(row.semester_name)
    if semester is not None:
        row.semester_ref = PersistedSemester(semester.id)
        if semester.org_unit_id != unit.id:
            row.add_issue(
                IssueCategory.REFERENCE,
                f'Semester "{row.semester_name}" exists but belongs to a different department',
            )
        return

    row.needs_semester_creation = True
    row.semester_ref = PendingSemesterRef(row.semester_name.lower(), unit.id)


def resolve_row(row: CandidateRow, index: LookupIndex, current_year: int | None = None) -> None:
    """Resolve semester, org unit, instructors and batches of ``row`` in place.

    Order: semester name -> org unit -> semester -> instructors -> batches.
    Misses are reported once per reference kind, naming every unknown value.
    """
    if row.semester_name:
        _resolve_semester(row, index, current_year)

    missing_instructors: list[str] = []
    for profile_id in row.instructor_refs:
        member = index.faculty_member(profile_id)
        if member is None:
            missing_instructors.append(profile_id)
        else:
            row.instructor_ids.append(member.id)
    if missing_instructors:
        row.add_issue(
            IssueCategory.REFERENCE,
            f"Invalid or non-faculty instructors: {', '.join(missing_instructors)}",
        )

    missing_batches: list[str] = []
    for name in row.batch_refs:
        batch = index.batch(name)
        if batch is None:
            missing_batches.append(name)
        else:
            row.batch_ids.append(batch.id)
    if missing_batches:
        row.add_issue(IssueCategory.REFERENCE, f"Invalid batches: {', '.join(missing_batches)}")
