from __future__ import annotations

import pytest

from academic_import.db.postgres_store import PostgresAcademicStore
from academic_import.db.store import StoreError
from academic_import.models.candidate_row import CourseType
from academic_import.models.reference import CoursePayload, DuplicateCheck, PendingSemester


class FakeCursor:
    """Records executed SQL; ``results`` is consumed by fetchall in order."""

    def __init__(self, results=None, fail_on=None) -> None:
        self.executed: list[tuple[str, tuple]] = []
        self.results = list(results or [])
        self.fail_on = fail_on

    def execute(self, sql, params=()):
        if self.fail_on and self.fail_on in sql:
            raise RuntimeError(f"failed: {sql}")
        self.executed.append((sql, params))

    def fetchall(self):
        return self.results.pop(0)

    @property
    def statements(self) -> list[str]:
        return [sql.split()[0] for sql, _ in self.executed]


@pytest.fixture()
def inserts(monkeypatch):
    """Patch execute_values in both db modules; returns the recorded calls."""
    import academic_import.db.batch_insert as bi
    import academic_import.db.postgres_store as ps

    calls: list[tuple[str, list]] = []
    duplicate_rows: list[tuple] = []

    def fake_execute_values(cursor, sql, rows, page_size=1000, fetch=False):
        rows = list(rows)
        calls.append((sql, rows))
        if sql.lstrip().startswith("SELECT"):
            return list(duplicate_rows)
        if fetch:
            return [(f"course-{i}",) for i, _ in enumerate(rows)]
        return None

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    monkeypatch.setattr(ps, "execute_values", fake_execute_values)
    fake_execute_values.calls = calls
    fake_execute_values.duplicate_rows = duplicate_rows
    return fake_execute_values


def test_list_queries_map_rows():
    cur = FakeCursor(results=[
        [("s1", "S2-AID-2024", 2024, "d1")],
        [("b1", "2025AIDA")],
        [("f1", "ramkumar", None, "FACULTY")],
        [("d1", "AIDS Dept")],
    ])
    store = PostgresAcademicStore(cur)
    assert store.list_semesters()[0].org_unit_id == "d1"
    assert store.list_batches()[0].name == "2025AIDA"
    faculty = store.list_faculty()[0]
    assert faculty.name == ""
    assert cur.executed[2][1] == ("FACULTY",)
    assert store.list_org_units()[0].code == "AID"


def test_query_failure_becomes_store_error():
    store = PostgresAcademicStore(FakeCursor(fail_on="FROM batches"))
    with pytest.raises(StoreError, match="query failed"):
        store.list_batches()


def test_duplicate_check_compares_sorted_sets(inserts):
    inserts.duplicate_rows.append(("s1", "AID301", "Machine Learning", ["b2", "b1"], ["f1"]))
    store = PostgresAcademicStore(FakeCursor())
    results = store.check_duplicate_courses([
        DuplicateCheck("s1", "AID301", ["b1", "b2"], ["f1"]),
        DuplicateCheck("s1", "AID301", ["b1"], ["f1"]),
        DuplicateCheck("s1", "AID999", ["b1", "b2"], ["f1"]),
    ])
    assert [r.is_duplicate for r in results] == [True, False, False]
    assert results[0].existing_course_name == "Machine Learning"
    # one query; (semester, code) pairs deduplicated
    assert len(inserts.calls) == 1
    assert inserts.calls[0][1] == [("s1", "AID301"), ("s1", "AID999")]


def test_duplicate_check_empty_makes_no_query(inserts):
    assert PostgresAcademicStore(FakeCursor()).check_duplicate_courses([]) == []
    assert inserts.calls == []


def test_create_semesters_in_transaction(inserts):
    cur = FakeCursor()
    PostgresAcademicStore(cur).create_semesters([PendingSemester("S4-AID-2025", 2025, "d1")])
    assert cur.statements == ["BEGIN", "COMMIT"]
    sql, rows = inserts.calls[0]
    assert "INSERT INTO semesters" in sql
    assert rows == [("S4-AID-2025", 2025, "d1", "ACTIVE")]


def test_create_semesters_rejects_empty_list():
    with pytest.raises(StoreError, match="No semesters provided for creation"):
        PostgresAcademicStore(FakeCursor()).create_semesters([])


def test_create_courses_inserts_links(inserts):
    cur = FakeCursor()
    created = PostgresAcademicStore(cur).create_courses([
        CoursePayload("Data Structures", "AID203", CourseType.CORE, "s1",
                      instructor_ids=["f1", "f2"], batch_ids=["b1"]),
        CoursePayload("Networks", "AID204", CourseType.ELECTIVE, "s1",
                      instructor_ids=["f1"], batch_ids=["b1", "b1"]),
    ])
    assert created == 2
    tables = [sql.split()[2] for sql, _ in inserts.calls]
    assert tables == ["courses", "course_instructors", "course_batches"]
    assert inserts.calls[1][1] == [("course-0", "f1"), ("course-0", "f2"), ("course-1", "f1")]
    assert inserts.calls[2][1] == [("course-0", "b1"), ("course-1", "b1")]
    assert cur.statements == ["BEGIN", "COMMIT"]


def test_create_courses_rolls_back_on_failure(monkeypatch):
    import academic_import.db.batch_insert as bi

    def boom(*args, **kwargs):
        raise RuntimeError("fk violation")
    monkeypatch.setattr(bi, "execute_values", boom)
    cur = FakeCursor()
    with pytest.raises(StoreError, match="create courses failed"):
        PostgresAcademicStore(cur).create_courses([
            CoursePayload("Networks", "AID204", CourseType.CORE, "s1"),
        ])
    assert cur.statements == ["BEGIN", "ROLLBACK"]
