from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

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
from .store import StoreError

"""In-memory academic store.

Backs offline validation (``--snapshot`` on the CLI) and tests. A snapshot is a
YAML document with ``org_units``, ``semesters``, ``batches``, ``faculty`` and
``courses`` lists; see ``load_snapshot``.
"""

__all__ = [
    "StoredCourse",
    "InMemoryAcademicStore",
    "load_snapshot",
]


@dataclass(frozen=True)
class StoredCourse:
    id: str
    name: str
    code: str
    semester_id: str
    batch_ids: list[str] = field(default_factory=list)
    instructor_ids: list[str] = field(default_factory=list)
    type: str = "CORE"
    description: str | None = None


class InMemoryAcademicStore:
    """AcademicStore kept in Python lists; creation calls are all-or-nothing."""

    def __init__(
        self,
        *,
        semesters: Sequence[Semester] = (),
        batches: Sequence[Batch] = (),
        faculty: Sequence[Faculty] = (),
        org_units: Sequence[OrgUnit] = (),
        courses: Sequence[StoredCourse] = (),
    ) -> None:
        self.semesters = list(semesters)
        self.batches = list(batches)
        self.faculty = list(faculty)
        self.org_units = list(org_units)
        self.courses = list(courses)
        self.calls: list[str] = []  # store method names in call order

    def list_semesters(self) -> list[Semester]:
        self.calls.append("list_semesters")
        return list(self.semesters)

    def list_batches(self) -> list[Batch]:
        self.calls.append("list_batches")
        return list(self.batches)

    def list_faculty(self) -> list[Faculty]:
        self.calls.append("list_faculty")
        return list(self.faculty)

    def list_org_units(self) -> list[OrgUnit]:
        self.calls.append("list_org_units")
        return list(self.org_units)

    def check_duplicate_courses(
        self, candidates: Sequence[DuplicateCheck]
    ) -> list[DuplicateCheckResult]:
        self.calls.append("check_duplicate_courses")
        results = []
        for c in candidates:
            match = next(
                (
                    course for course in self.courses
                    if course.semester_id == c.semester_id
                    and course.code == c.code
                    and sorted(course.batch_ids) == sorted(c.batch_ids)
                    and sorted(course.instructor_ids) == sorted(c.instructor_ids)
                ),
                None,
            )
            results.append(DuplicateCheckResult(
                is_duplicate=match is not None,
                code=c.code,
                existing_course_name=match.name if match else None,
            ))
        return results

    def create_semesters(self, entries: Sequence[PendingSemester]) -> None:
        self.calls.append("create_semesters")
        if not entries:
            raise StoreError("No semesters provided for creation")
        names = [e.name for e in entries]
        if len(set(names)) != len(names):
            raise StoreError("Duplicate semester names detected in the batch")
        known_units = {u.id for u in self.org_units}
        if any(e.org_unit_id not in known_units for e in entries):
            raise StoreError("One or more selected departments do not exist")
        existing = sorted({s.name for s in self.semesters} & set(names))
        if existing:
            raise StoreError(f"The following semesters already exist: {', '.join(existing)}")
        self.semesters.extend(
            Semester(id=str(uuid.uuid4()), name=e.name, year=e.year, org_unit_id=e.org_unit_id)
            for e in entries
        )

    def create_courses(self, entries: Sequence[CoursePayload]) -> int:
        self.calls.append("create_courses")
        known_semesters = {s.id for s in self.semesters}
        unknown = [e.code for e in entries if e.semester_id not in known_semesters]
        if unknown:
            raise StoreError(f"Unknown semester for courses: {', '.join(unknown)}")
        self.courses.extend(
            StoredCourse(
                id=str(uuid.uuid4()),
                name=e.name,
                code=e.code,
                semester_id=e.semester_id,
                batch_ids=list(e.batch_ids),
                instructor_ids=list(e.instructor_ids),
                type=e.type.value,
                description=e.description,
            )
            for e in entries
        )
        return len(entries)


def _records(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise StoreError(f"snapshot key '{key}' must be a list of mappings")
    return value


def load_snapshot(path: Path) -> InMemoryAcademicStore:
    """Build an InMemoryAcademicStore from a YAML snapshot of reference data."""
    if not path.exists():
        raise StoreError(f"snapshot file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise StoreError(f"invalid snapshot yaml: {e}") from e
    if not isinstance(data, dict):
        raise StoreError("snapshot root must be a mapping")
    try:
        return InMemoryAcademicStore(
            org_units=[OrgUnit(id=str(r["id"]), name=r["name"]) for r in _records(data, "org_units")],
            semesters=[
                Semester(
                    id=str(r["id"]), name=r["name"], year=int(r["year"]),
                    org_unit_id=str(r["org_unit_id"]),
                )
                for r in _records(data, "semesters")
            ],
            batches=[Batch(id=str(r["id"]), name=r["name"]) for r in _records(data, "batches")],
            faculty=[
                Faculty(
                    id=str(r["id"]), profile_id=r["profile_id"], name=r.get("name", ""),
                    role=r.get("role", "FACULTY"),
                )
                for r in _records(data, "faculty")
            ],
            courses=[
                StoredCourse(
                    id=str(r["id"]), name=r["name"], code=r["code"],
                    semester_id=str(r["semester_id"]),
                    batch_ids=[str(b) for b in r.get("batch_ids", [])],
                    instructor_ids=[str(i) for i in r.get("instructor_ids", [])],
                )
                for r in _records(data, "courses")
            ],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"invalid snapshot record: {e}") from e
