from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from psycopg2.extras import execute_values

from ..models.reference import (
    Batch,
    CoursePayload,
    DuplicateCheck,
    DuplicateCheckResult,
    Faculty,
    OrgUnit,
    PendingSemester,
    Semester,
)
from .batch_insert import BatchInsertError, batch_insert
from .store import StoreError

"""PostgreSQL implementation of the academic store.

Tables (ids are UUIDs generated by the database):
- departments(id, name)
- semesters(id, name, year, department_id, is_active)
- batches(id, name)
- users(id, profile_id, name, role)
- courses(id, name, code, description, type, semester_id, is_active)
- course_batches(course_id, batch_id), course_instructors(course_id, instructor_id)

Each creation call runs in its own transaction: BEGIN, inserts, COMMIT, and
ROLLBACK on any failure so a call creates all of its entries or none.
"""

__all__ = [
    "PostgresAcademicStore",
]

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"

_DUPLICATE_SQL = """
SELECT c.semester_id::text, c.code, c.name,
       ARRAY(SELECT cb.batch_id::text FROM course_batches cb WHERE cb.course_id = c.id),
       ARRAY(SELECT ci.instructor_id::text FROM course_instructors ci WHERE ci.course_id = c.id)
FROM courses c
JOIN (VALUES %s) AS v(semester_id, code)
  ON c.semester_id::text = v.semester_id AND c.code = v.code
"""


class PostgresAcademicStore:
    """AcademicStore over a psycopg2 cursor of an autocommit connection."""

    def __init__(self, cursor: Any, page_size: int = 1000) -> None:
        self.cursor = cursor
        self.page_size = page_size

    def _fetch(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        try:
            self.cursor.execute(sql, params)
            return list(self.cursor.fetchall())
        except Exception as e:
            raise StoreError(f"query failed: {e}") from e

    def list_semesters(self) -> list[Semester]:
        rows = self._fetch(
            "SELECT id::text, name, year, department_id::text FROM semesters"
        )
        return [Semester(id=r[0], name=r[1], year=r[2], org_unit_id=r[3]) for r in rows]

    def list_batches(self) -> list[Batch]:
        rows = self._fetch("SELECT id::text, name FROM batches")
        return [Batch(id=r[0], name=r[1]) for r in rows]

    def list_faculty(self) -> list[Faculty]:
        rows = self._fetch(
            "SELECT id::text, profile_id, name, role FROM users WHERE role = %s",
            ("FACULTY",),
        )
        return [Faculty(id=r[0], profile_id=r[1], name=r[2] or "", role=r[3]) for r in rows]

    def list_org_units(self) -> list[OrgUnit]:
        rows = self._fetch("SELECT id::text, name FROM departments")
        return [OrgUnit(id=r[0], name=r[1]) for r in rows]

    def check_duplicate_courses(
        self, candidates: Sequence[DuplicateCheck]
    ) -> list[DuplicateCheckResult]:
        if not candidates:
            return []
        pairs = list(dict.fromkeys((c.semester_id, c.code) for c in candidates))
        try:
            found = execute_values(
                self.cursor, _DUPLICATE_SQL, pairs, page_size=self.page_size, fetch=True
            )
        except Exception as e:
            raise StoreError(f"duplicate check failed: {e}") from e

        existing: dict[tuple[str, str], list[tuple[str, list[str], list[str]]]] = {}
        for semester_id, code, name, batch_ids, instructor_ids in found:
            existing.setdefault((semester_id, code), []).append(
                (name, sorted(batch_ids or []), sorted(instructor_ids or []))
            )

        results: list[DuplicateCheckResult] = []
        for c in candidates:
            match = next(
                (
                    name
                    for name, batch_ids, instructor_ids in existing.get((c.semester_id, c.code), [])
                    if batch_ids == sorted(c.batch_ids) and instructor_ids == sorted(c.instructor_ids)
                ),
                None,
            )
            results.append(DuplicateCheckResult(
                is_duplicate=match is not None, code=c.code, existing_course_name=match
            ))
        return results

    def _in_transaction(self, label: str, work: Any) -> Any:
        try:
            self.cursor.execute("BEGIN")
            result = work()
            self.cursor.execute("COMMIT")
            return result
        except Exception as e:
            try:
                self.cursor.execute("ROLLBACK")
            except Exception as rollback_e:
                logger.error("%s: rollback failed: %s", label, rollback_e)
            if isinstance(e, StoreError):
                raise
            raise StoreError(f"{label} failed: {e}") from e

    def create_semesters(self, entries: Sequence[PendingSemester]) -> None:
        if not entries:
            raise StoreError("No semesters provided for creation")
        rows = [(e.name, e.year, e.org_unit_id, ACTIVE) for e in entries]

        def work() -> None:
            batch_insert(
                self.cursor,
                "semesters",
                ["name", "year", "department_id", "is_active"],
                rows,
                page_size=self.page_size,
            )

        self._in_transaction("create semesters", work)

    def create_courses(self, entries: Sequence[CoursePayload]) -> int:
        if not entries:
            return 0

        def work() -> int:
            result = batch_insert(
                self.cursor,
                "courses",
                ["name", "code", "description", "type", "semester_id", "is_active"],
                [
                    (e.name, e.code, e.description, e.type.value, e.semester_id, ACTIVE)
                    for e in entries
                ],
                returning=["id"],
                page_size=self.page_size,
            )
            course_ids = [r[0] for r in result.returned_values or []]
            if len(course_ids) != len(entries):
                raise BatchInsertError(
                    f"expected {len(entries)} course ids, got {len(course_ids)}"
                )
            instructor_links = [
                (course_id, instructor_id)
                for course_id, e in zip(course_ids, entries, strict=True)
                for instructor_id in dict.fromkeys(e.instructor_ids)
            ]
            batch_links = [
                (course_id, batch_id)
                for course_id, e in zip(course_ids, entries, strict=True)
                for batch_id in dict.fromkeys(e.batch_ids)
            ]
            batch_insert(
                self.cursor, "course_instructors", ["course_id", "instructor_id"],
                instructor_links, page_size=self.page_size,
            )
            batch_insert(
                self.cursor, "course_batches", ["course_id", "batch_id"],
                batch_links, page_size=self.page_size,
            )
            return result.inserted_rows

        return self._in_transaction("create courses", work)
