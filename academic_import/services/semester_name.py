from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime

"""Semester name resolver.

Semester names follow ``S<sequence>-<ORG>-<year>``, e.g. ``S2-AID-2024`` or
``S2-AID-24``. Parsing accumulates errors instead of raising so that a row
report can cite every problem with the name at once.
"""

__all__ = [
    "MIN_SEQUENCE",
    "MAX_SEQUENCE",
    "YEARS_BACK",
    "YEARS_AHEAD",
    "SemesterNameResult",
    "parse_semester_name",
    "format_semester_name",
]

MIN_SEQUENCE = 1
MAX_SEQUENCE = 10
YEARS_BACK = 10
YEARS_AHEAD = 5

_PATTERN = re.compile(r"^S(\d+)-([A-Z]+)-(\d{2}|\d{4})$", re.IGNORECASE)

FORMAT_ERROR = (
    "Invalid semester name format. Expected format: S(number)-(DEPT)-(year). "
    "Example: S2-AID-2024 or S2-AID-24"
)


@dataclass(frozen=True)
class SemesterNameResult:
    valid: bool
    sequence_number: int | None = None
    org_unit_code: str | None = None
    year: int | None = None  # normalized 4-digit year
    errors: list[str] = field(default_factory=list)
    format_ok: bool = True  # False when the shape itself did not match


def parse_semester_name(text: str, current_year: int | None = None) -> SemesterNameResult:
    """Parse ``text`` into (sequence number, org unit code, year).

    Out-of-range sequence numbers and years are reported as errors while the
    parsed parts are still returned.
    """
    match = _PATTERN.match(text.strip())
    if not match:
        return SemesterNameResult(valid=False, errors=[FORMAT_ERROR], format_ok=False)

    errors: list[str] = []
    sequence = int(match.group(1))
    code = match.group(2).upper()
    year = int(match.group(3))

    if sequence < MIN_SEQUENCE or sequence > MAX_SEQUENCE:
        errors.append(
            f"Semester number must be between {MIN_SEQUENCE} and {MAX_SEQUENCE}. Found: S{sequence}"
        )

    if year < 100:
        year += 2000

    now = current_year if current_year is not None else datetime.now().year
    if year < now - YEARS_BACK:
        errors.append(f"Year {year} is too far in the past")
    elif year > now + YEARS_AHEAD:
        errors.append(f"Year {year} is too far in the future")

    return SemesterNameResult(
        valid=not errors,
        sequence_number=sequence,
        org_unit_code=code,
        year=year,
        errors=errors,
    )


def format_semester_name(
    sequence_number: int, org_unit_code: str, year: int, *, short_year: bool = False
) -> str:
    """Canonical semester name; ``short_year`` renders 2024 as 24."""
    year_text = f"{year % 100:02d}" if short_year else str(year)
    return f"S{sequence_number}-{org_unit_code.upper()}-{year_text}"
