from __future__ import annotations

import json
from pathlib import Path

import pytest

from academic_import.db.store import StoreError
from academic_import.logging.error_log import ErrorLogBuffer
from academic_import.models.commit_outcome import CommitState
from academic_import.models.config_models import DatabaseConfig, ImportConfig
from academic_import.services.orchestrator import (
    ProcessingError,
    run_import,
    validate_import,
)
from conftest import REFERENCE_YEAR, numbered, raw_row, write_workbook


@pytest.fixture()
def config(tmp_path: Path) -> ImportConfig:
    return ImportConfig(
        database=DatabaseConfig(),
        reference_year=REFERENCE_YEAR,
        error_log_dir=str(tmp_path / "logs"),
    )


class TestValidateImport:
    def test_rows_keep_spreadsheet_order(self, store):
        report = validate_import(
            numbered(raw_row(code="a1"), raw_row(code=""), raw_row(code="a3")),
            store, current_year=REFERENCE_YEAR,
        )
        assert [r.row_number for r in report.rows] == [2, 3, 4]
        assert [r.row_number for r in report.valid_rows] == [2, 4]
        assert not report.all_valid
        assert report.end_time >= report.start_time

    def test_bad_rows_do_not_abort(self, store):
        report = validate_import(
            numbered(raw_row(semester="junk"), raw_row(course_type="LAB"), raw_row()),
            store, current_year=REFERENCE_YEAR,
        )
        assert len(report.invalid_rows) == 2
        assert report.rows[2].is_valid

    def test_validation_never_writes(self, store):
        validate_import(
            numbered(raw_row(semester="S4-AID-2025")), store, current_year=REFERENCE_YEAR
        )
        assert "create_semesters" not in store.calls
        assert "create_courses" not in store.calls

    def test_store_failure_is_processing_error(self, store, monkeypatch):
        def boom():
            raise StoreError("db down")
        monkeypatch.setattr(store, "list_batches", boom)
        with pytest.raises(ProcessingError, match="db down"):
            validate_import(numbered(raw_row()), store)

    def test_invalid_rows_go_to_error_log(self, store, tmp_path: Path):
        log = ErrorLogBuffer(tmp_path)
        validate_import(
            numbered(raw_row(code="", batches="nope")),
            store, source_name="c.xlsx", current_year=REFERENCE_YEAR, error_log=log,
        )
        records = [json.loads(x) for x in log.flush().read_text(encoding="utf-8").splitlines()]
        assert [r["error_type"] for r in records] == ["FIELD_ERROR", "REFERENCE_ERROR"]
        assert records[0]["row"] == 2


class TestRunImport:
    def test_missing_workbook(self, store, config, tmp_path: Path):
        with pytest.raises(ProcessingError, match="workbook not found"):
            run_import(tmp_path / "missing.xlsx", config, store)

    def test_missing_columns_logged(self, store, config, tmp_path: Path):
        path = write_workbook(tmp_path / "c.xlsx", [{"Course Code": "X"}], headers=["Course Code"])
        log = ErrorLogBuffer(tmp_path / "logs")
        with pytest.raises(ProcessingError, match="missing columns"):
            run_import(path, config, store, error_log=log)
        record = json.loads(log.flush().read_text(encoding="utf-8"))
        assert record["error_type"] == "SHEET_VALIDATION_ERROR"
        assert record["row"] == -1

    def test_empty_sheet(self, store, config, tmp_path: Path):
        path = write_workbook(tmp_path / "c.xlsx", [])
        with pytest.raises(ProcessingError, match="no data rows"):
            run_import(path, config, store)

    def test_validate_only(self, store, config, tmp_path: Path):
        path = write_workbook(tmp_path / "c.xlsx", [raw_row(semester="S4-AID-2025")])
        result = run_import(path, config, store)
        assert result.outcome is None
        assert not result.committed
        assert "create_semesters" not in store.calls

    def test_declined_confirmation_writes_nothing(self, store, config, tmp_path: Path):
        path = write_workbook(tmp_path / "c.xlsx", [raw_row(semester="S4-AID-2025")])
        seen = []
        result = run_import(path, config, store, confirm=lambda r: seen.append(r) or False)
        assert len(seen) == 1
        assert seen[0].pending_semesters[0].name == "S4-AID-2025"
        assert result.outcome is None
        assert "create_semesters" not in store.calls

    def test_no_valid_rows_skips_confirmation(self, store, config, tmp_path: Path):
        path = write_workbook(tmp_path / "c.xlsx", [raw_row(batches="nope")])
        result = run_import(path, config, store, confirm=lambda r: pytest.fail("asked"))
        assert result.outcome is None

    def test_confirmed_commit(self, store, config, tmp_path: Path):
        path = write_workbook(tmp_path / "c.xlsx", [raw_row(semester="S4-AID-2025"), raw_row(code="x2")])
        result = run_import(path, config, store, confirm=lambda r: True)
        assert result.committed
        assert result.outcome.courses_created == 2
        assert result.outcome.semesters_created == 1

    def test_commit_failure_logged(self, store, config, tmp_path: Path, monkeypatch):
        def boom(entries):
            raise StoreError("courses down")
        monkeypatch.setattr(store, "create_courses", boom)
        path = write_workbook(tmp_path / "c.xlsx", [raw_row()])
        log = ErrorLogBuffer(tmp_path / "logs")
        result = run_import(path, config, store, confirm=lambda r: True, error_log=log)
        assert result.outcome.failed_stage is CommitState.CREATING_COURSES
        record = json.loads(log.flush().read_text(encoding="utf-8"))
        assert record["error_type"] == "COMMIT_ERROR"
        assert record["message"] == "creating_courses: courses down"
