# Shared pytest fixtures
from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from academic_import.db.memory_store import InMemoryAcademicStore, StoredCourse
from academic_import.logging.init import reset_logging
from academic_import.models.reference import Batch, Faculty, OrgUnit, Semester

REFERENCE_YEAR = 2025

HEADERS = [
    "Semester Name",
    "Course Name",
    "Course Code",
    "Course Description",
    'Course Type ["CORE", "ELECTIVE", "MICRO_CREDENTIAL"]',
    "Instructors (Pipe Separated)",
    "Batches (Pipe Separated)",
]


def raw_row(
    semester: str = "S2-AID-2024",
    name: str = "data structures",
    code: str = "aid203",
    course_type: str = "core",
    instructors: str = "ramkumar",
    batches: str = "2025AIDA",
    description: str | None = None,
) -> dict[str, object]:
    return {
        "Semester Name": semester,
        "Course Name": name,
        "Course Code": code,
        "Course Description": description,
        'Course Type ["CORE", "ELECTIVE", "MICRO_CREDENTIAL"]': course_type,
        "Instructors (Pipe Separated)": instructors,
        "Batches (Pipe Separated)": batches,
    }


def numbered(*rows: dict[str, object]) -> list[tuple[int, dict[str, object]]]:
    """Attach spreadsheet row numbers (header on row 1)."""
    return [(i + 2, r) for i, r in enumerate(rows)]


@pytest.fixture(autouse=True)
def _reset_app_logging():
    """Each test starts with an unconfigured, propagating package logger."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch, tmp_path: Path) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "data").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def store() -> InMemoryAcademicStore:
    return InMemoryAcademicStore(
        org_units=[
            OrgUnit(id="dept-aid", name="AIDS Artificial Intelligence and Data Science"),
            OrgUnit(id="dept-cse", name="CSE Computer Science"),
        ],
        semesters=[
            Semester(id="sem-aid-2", name="S2-AID-2024", year=2024, org_unit_id="dept-aid"),
            Semester(id="sem-cse-4", name="S4-CSE-2024", year=2024, org_unit_id="dept-cse"),
        ],
        batches=[
            Batch(id="batch-a", name="2025AIDA"),
            Batch(id="batch-b", name="2025AIDB"),
        ],
        faculty=[
            Faculty(id="fac-ram", profile_id="ramkumar", name="Ram Kumar"),
            Faculty(id="fac-anu", profile_id="Anu.S", name="Anu S"),
            Faculty(id="stu-1", profile_id="student1", name="Student One", role="STUDENT"),
        ],
        courses=[
            StoredCourse(
                id="course-1", name="Machine Learning", code="AID301",
                semester_id="sem-aid-2", batch_ids=["batch-b", "batch-a"],
                instructor_ids=["fac-ram"],
            ),
        ],
    )


@pytest.fixture()
def sample_config_yaml() -> str:
    return f"""header_row: 1
reference_year: {REFERENCE_YEAR}
error_log_dir: logs
page_size: 500
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def write_workbook(path: Path, rows: list[dict[str, object]], headers: list[str] | None = None) -> Path:
    cols = headers or HEADERS
    frame = pd.DataFrame([[r.get(c) for c in cols] for r in rows], columns=cols)
    frame.to_excel(path, index=False, sheet_name="Courses")
    return path


@pytest.fixture()
def snapshot_yaml(temp_workdir: Path) -> Path:
    p = temp_workdir / "data" / "snapshot.yml"
    p.write_text(
        """org_units:
  - {id: dept-aid, name: AIDS Artificial Intelligence and Data Science}
semesters:
  - {id: sem-aid-2, name: S2-AID-2024, year: 2024, org_unit_id: dept-aid}
batches:
  - {id: batch-a, name: 2025AIDA}
faculty:
  - {id: fac-ram, profile_id: ramkumar, name: Ram Kumar, role: FACULTY}
courses: []
""",
        encoding="utf-8",
    )
    return p
