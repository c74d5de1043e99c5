from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..services.row_parser import (
    COL_COURSE_CODE,
    COL_COURSE_NAME,
    COL_SEMESTER_NAME,
    find_course_type_column,
)

"""Workbook reader for the course bulk template.

- The configured header row (default: row 1) holds the column headers
- Following rows are data rows; fully blank rows are skipped
- Row numbers are the visible spreadsheet rows (first data row = header row + 1)
- Only empty cells become None: literal strings such as "NA" are kept as typed
"""

__all__ = [
    "SheetHeaderError",
    "MissingColumnsError",
    "SheetData",
    "REQUIRED_COLUMNS",
    "read_course_sheet",
    "normalize_sheet",
]

REQUIRED_COLUMNS = (COL_SEMESTER_NAME, COL_COURSE_NAME, COL_COURSE_CODE)


class SheetHeaderError(Exception):
    """Raised when the header row is missing or the sheet can not be read."""


class MissingColumnsError(Exception):
    """Raised when required template columns are missing in the header."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[tuple[int, dict[str, Any]]]  # (spreadsheet row number, header -> value)


def normalize_sheet(df: pd.DataFrame, sheet_name: str, header_row: int = 1) -> SheetData:
    """Split a header-less DataFrame into header and numbered data rows."""
    header_index = header_row - 1
    if df.shape[0] <= header_index:
        raise SheetHeaderError(f"sheet '{sheet_name}' lacks header row {header_row}")
    columns = [
        "" if pd.isna(c) else str(c).strip() for c in df.iloc[header_index].tolist()
    ]

    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if find_course_type_column(columns) is None:
        missing.append("Course Type")
    if missing:
        raise MissingColumnsError(f"sheet '{sheet_name}' missing columns: {missing}")

    rows: list[tuple[int, dict[str, Any]]] = []
    for offset, (_, raw) in enumerate(df.iloc[header_index + 1:].iterrows()):
        if raw.isna().all():
            continue
        row_number = header_row + 1 + offset
        row_dict: dict[str, Any] = {}
        for col, val in zip(columns, raw.tolist(), strict=False):
            if not col:
                continue  # unnamed trailing column
            row_dict[col] = None if pd.isna(val) else val
        rows.append((row_number, row_dict))
    return SheetData(sheet_name=sheet_name, columns=[c for c in columns if c], rows=rows)


def read_course_sheet(path: Path, sheet_name: str | None = None, header_row: int = 1) -> SheetData:
    """Read one sheet (default: the first) of an .xlsx workbook."""
    try:
        xls = pd.ExcelFile(path)
    except Exception as e:
        raise SheetHeaderError(f"cannot read workbook {path.name}: {e}") from e
    if not xls.sheet_names:
        raise SheetHeaderError(f"workbook {path.name} has no sheets")
    name = sheet_name if sheet_name is not None else str(xls.sheet_names[0])
    if name not in [str(s) for s in xls.sheet_names]:
        raise SheetHeaderError(f"sheet '{name}' not found in {path.name}")
    df = xls.parse(name, header=None, dtype=object, keep_default_na=False, na_values=[""])
    return normalize_sheet(df, name, header_row=header_row)
