from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..models.validation_report import ValidationReport

"""Validation report rendering and export.

The report lists every row in spreadsheet order with its status and its
errors in the order the validation stages produced them.
"""

__all__ = [
    "REPORT_COLUMNS",
    "report_lines",
    "to_frame",
    "write_report",
]

REPORT_COLUMNS = [
    "row",
    "semester",
    "course_code",
    "course_name",
    "course_type",
    "new_semester",
    "status",
    "errors",
]


def report_lines(report: ValidationReport) -> list[str]:
    """Human-readable lines, one per error: ``Row 5: <message>``."""
    lines: list[str] = []
    for row in report.rows:
        for message in row.errors:
            lines.append(f"Row {row.row_number}: {message}")
    return lines


def to_frame(report: ValidationReport) -> pd.DataFrame:
    records = [
        {
            "row": row.row_number,
            "semester": row.semester_name,
            "course_code": row.course_code,
            "course_name": row.course_name,
            "course_type": row.course_type.value if row.course_type else row.course_type_raw,
            "new_semester": row.needs_semester_creation,
            "status": "valid" if row.is_valid else "invalid",
            "errors": "; ".join(row.errors),
        }
        for row in report.rows
    ]
    return pd.DataFrame.from_records(records, columns=REPORT_COLUMNS)


def write_report(report: ValidationReport, path: Path) -> Path:
    """Write the report as .csv or .xlsx depending on the suffix."""
    frame = to_frame(report)
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        frame.to_csv(path, index=False)
    elif suffix == ".xlsx":
        frame.to_excel(path, index=False, sheet_name="Validation")
    else:
        raise ValueError(f"unsupported report format: {path.suffix!r} (use .csv or .xlsx)")
    return path
