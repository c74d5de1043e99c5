from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..db.store import AcademicStore
from ..models.reference import OrgUnit, PendingSemester
from .reference_resolver import LookupIndex
from .semester_name import MAX_SEQUENCE, format_semester_name

"""Semester planning for a batch's study years.

Given a batch running from ``batch_start_year`` to ``batch_end_year``, list the
odd (S1, S3, ...) or even (S2, S4, ...) semesters, newest year first, with
2-digit-year names such as ``S3-AID-23``. The same plan is repeated for every
selected department and created in one store call.

Year bounds, relative to the current (or configured reference) year:
- start year: at most 10 years back, not in the future
- end year: not before the start year, at most 1 year ahead
- end year - start year: at most 5
"""

__all__ = [
    "MAX_PAST_START_YEARS",
    "MAX_FUTURE_END_YEARS",
    "MAX_YEAR_GAP",
    "SemesterPlanError",
    "SemesterParity",
    "PlannedSemester",
    "check_batch_years",
    "plan_semesters",
    "pending_semesters_for",
    "plan_for_departments",
    "create_planned_semesters",
]

MAX_PAST_START_YEARS = 10
MAX_FUTURE_END_YEARS = 1
MAX_YEAR_GAP = 5

logger = logging.getLogger(__name__)


class SemesterPlanError(ValueError):
    """Raised with every problem that prevents a semester plan."""

    def __init__(self, problems: Sequence[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class SemesterParity(Enum):
    ODD = "ODD"
    EVEN = "EVEN"


@dataclass(frozen=True)
class PlannedSemester:
    name: str
    year: int
    sequence_number: int


def check_batch_years(
    batch_start_year: int, batch_end_year: int, current_year: int | None = None
) -> list[str]:
    """Problems with a batch year range; empty when it can be planned."""
    now = current_year if current_year is not None else datetime.now().year
    problems: list[str] = []

    if batch_start_year < now - MAX_PAST_START_YEARS:
        problems.append(
            f"Batch start year cannot be more than {MAX_PAST_START_YEARS} years in the past"
        )
    elif batch_start_year > now:
        problems.append("Batch start year cannot be in the future")

    # one end-year message; the gap check wins over the others
    end_problem = None
    if batch_end_year < batch_start_year:
        end_problem = "Batch end year cannot be before batch start year"
    elif batch_end_year > now + MAX_FUTURE_END_YEARS:
        end_problem = (
            f"Batch end year cannot be more than {MAX_FUTURE_END_YEARS} year in the future"
        )
    if batch_end_year - batch_start_year > MAX_YEAR_GAP:
        end_problem = (
            f"Maximum gap between batch start year and end year is {MAX_YEAR_GAP} years"
        )
    if end_problem:
        problems.append(end_problem)
    return problems


def plan_semesters(
    org_unit_code: str,
    batch_start_year: int,
    batch_end_year: int,
    parity: SemesterParity,
    current_year: int | None = None,
) -> list[PlannedSemester]:
    problems = check_batch_years(batch_start_year, batch_end_year, current_year)
    if problems:
        raise SemesterPlanError(problems)
    first = 1 if parity is SemesterParity.ODD else 2
    planned: list[PlannedSemester] = []
    for offset in range(batch_end_year - batch_start_year + 1):
        sequence = first + offset * 2
        if sequence > MAX_SEQUENCE:
            break
        year = batch_end_year - offset
        planned.append(PlannedSemester(
            name=format_semester_name(sequence, org_unit_code, year, short_year=True),
            year=year,
            sequence_number=sequence,
        ))
    return planned


def pending_semesters_for(
    org_unit: OrgUnit,
    batch_start_year: int,
    batch_end_year: int,
    parity: SemesterParity,
    current_year: int | None = None,
) -> list[PendingSemester]:
    """Creation entries for ``plan_semesters`` of one org unit."""
    return [
        PendingSemester(name=p.name, year=p.year, org_unit_id=org_unit.id)
        for p in plan_semesters(
            org_unit.code, batch_start_year, batch_end_year, parity, current_year
        )
    ]


def plan_for_departments(
    store: AcademicStore,
    department_codes: Sequence[str],
    batch_start_year: int,
    batch_end_year: int,
    parity: SemesterParity,
    current_year: int | None = None,
) -> list[PendingSemester]:
    """Creation entries for every department code, in the order given.

    Codes are the 3-letter department prefixes used in semester names and are
    matched case-insensitively. Raises SemesterPlanError listing every problem.
    """
    codes = list(dict.fromkeys(c.strip().upper() for c in department_codes if c.strip()))
    problems: list[str] = []
    if not codes:
        problems.append("Please select at least one department")
    problems.extend(check_batch_years(batch_start_year, batch_end_year, current_year))

    index = LookupIndex.from_entities((), (), (), store.list_org_units())
    units: list[OrgUnit] = []
    for code in codes:
        unit = index.org_unit(code)
        if unit is None:
            problems.append(f'Department "{code}" not found')
        else:
            units.append(unit)
    if problems:
        raise SemesterPlanError(problems)

    entries: list[PendingSemester] = []
    for unit in units:
        entries.extend(pending_semesters_for(
            unit, batch_start_year, batch_end_year, parity, current_year
        ))
    if not entries:
        raise SemesterPlanError(["No semesters will be created with current settings"])
    return entries


def create_planned_semesters(store: AcademicStore, entries: Sequence[PendingSemester]) -> int:
    """Create the planned semesters in one store call; StoreError propagates."""
    store.create_semesters(entries)
    logger.info("created %d planned semester(s)", len(entries))
    return len(entries)
