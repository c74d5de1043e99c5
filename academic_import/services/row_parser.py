from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

from ..models.candidate_row import CandidateRow, CourseType, IssueCategory

"""Row parser for the course bulk import template.

Turns one raw spreadsheet record (header -> cell value) into a CandidateRow:
strings trimmed, course code upper-cased, course name capitalized, course type
upper-cased, pipe-separated lists split. Parsing never fails; missing cells
become empty strings/lists and are reported by ``check_fields``.
"""

__all__ = [
    "COL_SEMESTER_NAME",
    "COL_COURSE_NAME",
    "COL_COURSE_CODE",
    "COL_COURSE_DESCRIPTION",
    "COL_COURSE_TYPE",
    "COL_INSTRUCTORS",
    "COL_BATCHES",
    "TEMPLATE_COLUMNS",
    "capitalize_name",
    "parse_pipe_separated",
    "find_course_type_column",
    "parse_row",
    "check_fields",
]

COL_SEMESTER_NAME = "Semester Name"
COL_COURSE_NAME = "Course Name"
COL_COURSE_CODE = "Course Code"
COL_COURSE_DESCRIPTION = "Course Description"
COL_COURSE_TYPE = "Course Type"  # template header carries the allowed literals as a suffix
COL_INSTRUCTORS = "Instructors (Pipe Separated)"
COL_BATCHES = "Batches (Pipe Separated)"

TEMPLATE_COLUMNS = (
    COL_SEMESTER_NAME,
    COL_COURSE_NAME,
    COL_COURSE_CODE,
    COL_COURSE_DESCRIPTION,
    COL_COURSE_TYPE,
    COL_INSTRUCTORS,
    COL_BATCHES,
)

_WHITESPACE = re.compile(r"\s+")


def _cell_text(value: Any) -> str:
    """Stringify a cell value; None/NaN -> "" and integral floats lose the ".0"."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def capitalize_name(name: str) -> str:
    """Capitalize every word: first letter upper, rest lower, single spaces."""
    words = _WHITESPACE.split(name.strip())
    return " ".join(w[:1].upper() + w[1:].lower() for w in words if w)


def parse_pipe_separated(value: Any) -> list[str]:
    text = _cell_text(value)
    if not text:
        return []
    return [item.strip() for item in text.split("|") if item.strip()]


def find_course_type_column(headers: Any) -> str | None:
    """Return the course type header: exact ``Course Type`` first, else any ``Course Type…``."""
    names = [str(h) for h in headers]
    if COL_COURSE_TYPE in names:
        return COL_COURSE_TYPE
    for name in names:
        if name.strip().startswith(COL_COURSE_TYPE):
            return name
    return None


def parse_row(raw: Mapping[str, Any], row_number: int) -> CandidateRow:
    type_col = find_course_type_column(raw.keys())
    course_type_raw = _cell_text(raw.get(type_col)).upper() if type_col else ""
    description = _cell_text(raw.get(COL_COURSE_DESCRIPTION))
    return CandidateRow(
        row_number=row_number,
        semester_name=_cell_text(raw.get(COL_SEMESTER_NAME)),
        course_name=capitalize_name(_cell_text(raw.get(COL_COURSE_NAME))),
        course_code=_cell_text(raw.get(COL_COURSE_CODE)).upper(),
        course_description=description or None,
        course_type_raw=course_type_raw,
        course_type=CourseType.parse(course_type_raw),
        instructor_refs=parse_pipe_separated(raw.get(COL_INSTRUCTORS)),
        batch_refs=parse_pipe_separated(raw.get(COL_BATCHES)),
    )


def check_fields(row: CandidateRow) -> None:
    """Add field issues: required values and the exact course type literal."""
    if not row.semester_name:
        row.add_issue(IssueCategory.FIELD, "Semester name is required")
    if not row.course_name:
        row.add_issue(IssueCategory.FIELD, "Course name is required")
    if not row.course_code:
        row.add_issue(IssueCategory.FIELD, "Course code is required")
    if row.course_type is None:
        allowed = ", ".join(t.value for t in CourseType)
        row.add_issue(
            IssueCategory.FIELD,
            f'Course type must be exactly one of: {allowed}. Got: "{row.course_type_raw}"',
        )
