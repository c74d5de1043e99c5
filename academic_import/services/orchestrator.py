from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.store import AcademicStore, StoreError
from ..excel.reader import MissingColumnsError, SheetHeaderError, read_course_sheet
from ..logging.error_log import COMMIT_ERROR, ErrorLogBuffer, ErrorRecord
from ..models.candidate_row import CandidateRow
from ..models.commit_outcome import CommitOutcome
from ..models.config_models import ImportConfig
from ..models.validation_report import ValidationReport
from .commit import collect_pending_semesters, commit_import
from .duplicates import IntraBatchDuplicateDetector, check_persisted_duplicates
from .progress import ProgressTracker
from .reference_resolver import LookupIndex, build_lookup_index, resolve_row
from .row_parser import check_fields, parse_row

"""Service orchestration for the course bulk import.

Pipeline per import (single pass, rows in spreadsheet order):
1. parse each raw row and check its fields
2. resolve semester / org unit / instructors / batches against the LookupIndex
3. flag duplicates within the upload
4. flag duplicates of stored courses (one batched store query)
5. hand the report to the caller's confirmation callback
6. commit semesters, then courses (see services.commit)

Bad rows never abort the import; only store failures do.
"""

__all__ = [
    "ProcessingError",
    "ImportResult",
    "validate_rows",
    "validate_import",
    "run_import",
]

logger = logging.getLogger(__name__)

RawRows = Iterable[tuple[int, Mapping[str, Any]]]


class ProcessingError(Exception):
    """Fatal error that prevents an import from being validated."""


class ImportResult:
    """Validation report plus the commit outcome (None when not committed)."""

    def __init__(self, report: ValidationReport, outcome: CommitOutcome | None = None) -> None:
        self.report = report
        self.outcome = outcome

    @property
    def committed(self) -> bool:
        return self.outcome is not None and self.outcome.succeeded


def validate_rows(
    raw_rows: RawRows,
    index: LookupIndex,
    *,
    current_year: int | None = None,
) -> list[CandidateRow]:
    """Parse, resolve and de-duplicate rows within the upload (no store access)."""
    materialized = list(raw_rows)
    detector = IntraBatchDuplicateDetector()
    rows: list[CandidateRow] = []
    invalid = 0
    with ProgressTracker(len(materialized), description="Validating rows") as progress:
        for row_number, raw in materialized:
            row = parse_row(raw, row_number)
            check_fields(row)
            resolve_row(row, index, current_year=current_year)
            detector.check(row)
            rows.append(row)
            invalid += 0 if row.is_valid else 1
            progress.advance()
            progress.set_postfix(invalid=invalid)
    return rows


def validate_import(
    raw_rows: RawRows,
    store: AcademicStore,
    *,
    source_name: str = "<rows>",
    current_year: int | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ValidationReport:
    """Run the full validation pass and build the report.

    ``raw_rows`` yields (spreadsheet row number, header -> value) pairs.
    Raises ProcessingError when the store can not be queried.
    """
    start_time = datetime.now(UTC)
    try:
        index = build_lookup_index(store)
        rows = validate_rows(raw_rows, index, current_year=current_year)
        check_persisted_duplicates(rows, store)
    except StoreError as e:
        raise ProcessingError(f"store unavailable during validation: {e}") from e

    report = ValidationReport(
        source_name=source_name,
        rows=rows,
        pending_semesters=collect_pending_semesters(rows),
        start_time=start_time,
        end_time=datetime.now(UTC),
    )

    for row in report.invalid_rows:
        logger.warning("row=%d invalid: %s", row.row_number, "; ".join(row.errors))
        if error_log is not None:
            error_log.append_row_issues(source_name, row)
    logger.info(
        "validated %s rows=%d valid=%d invalid=%d new_semesters=%d",
        source_name,
        len(report.rows),
        len(report.valid_rows),
        len(report.invalid_rows),
        len(report.pending_semesters),
    )
    return report


def run_import(
    path: Path,
    config: ImportConfig,
    store: AcademicStore,
    confirm: Callable[[ValidationReport], bool] | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Validate a workbook and, if ``confirm`` approves the report, commit it.

    ``confirm=None`` means validate only. Declining leaves the store untouched.
    """
    if not path.exists():
        raise ProcessingError(f"workbook not found: {path}")
    try:
        sheet = read_course_sheet(path, sheet_name=config.sheet_name, header_row=config.header_row)
    except (SheetHeaderError, MissingColumnsError) as e:
        if error_log is not None:
            error_log.append(ErrorRecord.create(path.name, -1, "SHEET_VALIDATION_ERROR", str(e)))
        raise ProcessingError(str(e)) from e

    if not sheet.rows:
        raise ProcessingError(f"no data rows found in {path.name}")

    report = validate_import(
        sheet.rows,
        store,
        source_name=path.name,
        current_year=config.reference_year,
        error_log=error_log,
    )

    if confirm is None:
        return ImportResult(report)
    if not report.valid_rows:
        logger.warning("no valid rows to commit")
        return ImportResult(report)
    if not confirm(report):
        logger.info("import cancelled before commit; nothing was written")
        return ImportResult(report)

    outcome = commit_import(report, store)
    if not outcome.succeeded and error_log is not None:
        error_log.append(ErrorRecord.create(
            path.name, -1, COMMIT_ERROR,
            f"{outcome.failed_stage.value if outcome.failed_stage else 'commit'}: {outcome.error}",
        ))
    return ImportResult(report, outcome)
