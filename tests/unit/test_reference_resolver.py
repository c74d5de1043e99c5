from __future__ import annotations

import logging

import pytest

from academic_import.models.candidate_row import (
    IssueCategory,
    PendingSemesterRef,
    PersistedSemester,
)
from academic_import.models.reference import OrgUnit, Semester
from academic_import.services.reference_resolver import (
    LookupIndex,
    build_lookup_index,
    resolve_row,
)
from academic_import.services.row_parser import parse_row
from conftest import REFERENCE_YEAR, raw_row


@pytest.fixture()
def index(store):
    return build_lookup_index(store)


def _resolve(index, **kwargs):
    row = parse_row(raw_row(**kwargs), 2)
    resolve_row(row, index, current_year=REFERENCE_YEAR)
    return row


def test_build_lookup_index_uses_four_store_reads(store):
    build_lookup_index(store)
    assert sorted(store.calls) == ["list_batches", "list_faculty", "list_org_units", "list_semesters"]


def test_existing_semester_resolves_to_persisted_id(index):
    row = _resolve(index, instructors="RAMKUMAR|anu.s", batches="2025aida|2025AIDB")
    assert row.is_valid
    assert row.semester_ref == PersistedSemester("sem-aid-2")
    assert row.semester_id == "sem-aid-2"
    assert row.org_unit_id == "dept-aid"
    assert row.instructor_ids == ["fac-ram", "fac-anu"]
    assert row.batch_ids == ["batch-a", "batch-b"]
    assert not row.needs_semester_creation


def test_semester_name_match_is_case_insensitive(index):
    row = _resolve(index, semester="s2-aid-2024")
    assert row.semester_id == "sem-aid-2"


def test_unknown_semester_becomes_pending(index):
    row = _resolve(index, semester="S4-AID-2025")
    assert row.is_valid
    assert row.needs_semester_creation
    assert row.semester_ref == PendingSemesterRef("s4-aid-2025", "dept-aid")
    assert row.semester_ref.key_text == "new-s4-aid-2025-dept-aid"
    assert row.semester_id is None
    assert (row.sequence_number, row.org_unit_code, row.year) == (4, "AID", 2025)


def test_short_year_name_is_a_different_semester(index):
    # S2-AID-24 and S2-AID-2024 parse alike but are distinct semester names
    row = _resolve(index, semester="S2-AID-24")
    assert isinstance(row.semester_ref, PendingSemesterRef)


def test_unknown_org_unit_short_circuits_semester(index):
    row = _resolve(index, semester="S2-ZZZ-2024")
    assert row.errors == [
        'Department "ZZZ" not found. Please ensure the department exists in the system.'
    ]
    assert row.semester_ref is None
    assert row.org_unit_id is None
    assert not row.needs_semester_creation
    # instructors and batches still resolve
    assert row.instructor_ids == ["fac-ram"]


def test_semester_belonging_to_other_department(store):
    store.semesters[0] = Semester(
        id="sem-aid-2", name="S2-AID-2024", year=2024, org_unit_id="dept-cse"
    )
    row = _resolve(build_lookup_index(store))
    assert row.errors == ['Semester "S2-AID-2024" exists but belongs to a different department']
    assert row.issues[0].category is IssueCategory.REFERENCE


def test_bad_semester_format_is_field_error(index):
    row = _resolve(index, semester="Semester 2")
    assert [i.category for i in row.issues] == [IssueCategory.FIELD]
    assert row.semester_ref is None


def test_out_of_range_semester_is_range_error(index):
    row = _resolve(index, semester="S11-AID-2024")
    assert [i.category for i in row.issues] == [IssueCategory.RANGE]
    assert row.semester_ref is None


def test_missing_instructors_reported_once(index):
    row = _resolve(index, instructors="ramkumar|ghost|nobody")
    assert row.errors == ["Invalid or non-faculty instructors: ghost, nobody"]
    assert row.instructor_ids == ["fac-ram"]


def test_student_role_is_not_an_instructor(index):
    row = _resolve(index, instructors="student1")
    assert row.errors == ["Invalid or non-faculty instructors: student1"]


def test_missing_batches_reported_once(index):
    row = _resolve(index, batches="2025AIDA|2099X|2099Y")
    assert row.errors == ["Invalid batches: 2099X, 2099Y"]
    assert row.batch_ids == ["batch-a"]


def test_empty_semester_name_skips_semester_resolution(index):
    row = _resolve(index, semester="")
    assert row.semester_ref is None
    assert row.issues == []


def test_resolution_order_of_issues(index):
    row = _resolve(index, semester="S2-ZZZ-2024", instructors="ghost", batches="nope")
    assert [e.split()[0] for e in row.errors] == ["Department", "Invalid", "Invalid"]
    assert "instructors" in row.errors[1]
    assert "batches" in row.errors[2]


def test_org_code_collision_keeps_first(caplog):
    with caplog.at_level(logging.WARNING, logger="academic_import"):
        index = LookupIndex.from_entities(
            [], [], [],
            [OrgUnit(id="a", name="Civil Engineering"), OrgUnit(id="b", name="Civics")],
        )
    assert index.org_unit("civ").id == "a"
    assert "collision" in caplog.text
