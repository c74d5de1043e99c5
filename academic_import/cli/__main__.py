from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from academic_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from academic_import.db.memory_store import load_snapshot
from academic_import.db.postgres_store import PostgresAcademicStore
from academic_import.db.store import AcademicStore, StoreError
from academic_import.logging.error_log import ErrorLogBuffer
from academic_import.logging.init import log_summary, setup_logging
from academic_import.models.config_models import ImportConfig
from academic_import.models.validation_report import ValidationReport
from academic_import.services.orchestrator import ProcessingError, run_import
from academic_import.services.report import report_lines, write_report
from academic_import.services.semester_plan import (
    SemesterParity,
    SemesterPlanError,
    create_planned_semesters,
    plan_for_departments,
)
from academic_import.services.summary import render_commit_line, render_plan_line, render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and config
- Open the store (PostgreSQL, or a YAML snapshot with --snapshot)
- Validate the workbook and print row errors plus a SUMMARY line
- With --commit: ask for confirmation (unless --yes) and run the two-phase commit

With --plan-semesters START END the workbook is not read; the odd or even
semesters of that batch are listed for each --departments code and, with
--commit, created. --commit needs a database; snapshots are read-only.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _build_dsn(cfg: ImportConfig) -> str:
    """Connection string; environment (.env first) wins over the config section.

    1. DATABASE_URL / PGDSN, then database.dsn
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, falling back to
       the database section, then to libpq-style defaults
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (needs a live DB)
    """Yield a psycopg2 cursor; the store manages BEGIN/COMMIT per creation call."""
    conn = psycopg2.connect(_build_dsn(cfg))
    conn.autocommit = True  # explicit BEGIN/COMMIT in the store; no transaction held during the prompt
    cur = conn.cursor()
    try:
        yield cur
    finally:
        cur.close()
        conn.close()


@contextmanager
def _open_store(cfg: ImportConfig, snapshot: Path | None) -> Iterator[AcademicStore]:
    if snapshot is not None:
        yield load_snapshot(snapshot)
        return
    with _db_connection(cfg) as cur:
        yield PostgresAcademicStore(cur, page_size=cfg.page_size)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Bulk semester & course importer")
    p.add_argument("workbook", type=Path, nargs="?", help="Course bulk template (.xlsx)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--commit", action="store_true", help="Create semesters and courses for valid rows")
    p.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    p.add_argument("--report", type=Path, help="Write the validation report (.csv or .xlsx)")
    p.add_argument("--snapshot", type=Path, help="Validate against a YAML reference snapshot (read-only)")
    p.add_argument(
        "--plan-semesters", type=int, nargs=2, metavar=("START", "END"),
        help="Plan semesters for a batch year range instead of importing a workbook",
    )
    p.add_argument("--departments", default="", help="Comma separated department codes, e.g. AID,CSE")
    p.add_argument("--parity", choices=[parity.value for parity in SemesterParity], default="ODD",
                   help="Plan odd (S1, S3, ...) or even (S2, S4, ...) semesters")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _ask(question: str) -> bool:
    """y/yes confirms; anything else, or no stdin at all, declines."""
    try:
        answer = input(question)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _prompt_confirmation(report: ValidationReport) -> bool:
    return _ask(
        f"Create {len(report.pending_semesters)} semester(s) and {len(report.valid_rows)} course(s) "
        f"({len(report.invalid_rows)} invalid row(s) skipped)? [y/N] "
    )


def _run_semester_plan(args: argparse.Namespace, cfg: ImportConfig, logger: logging.Logger) -> int:
    start, end = args.plan_semesters
    codes = args.departments.split(",")
    created = 0
    try:
        with _open_store(cfg, args.snapshot) as store:
            entries = plan_for_departments(
                store, codes, start, end, SemesterParity(args.parity), cfg.reference_year
            )
            for entry in entries:
                logger.info(f"planned semester: {entry.name} year={entry.year}")
            if args.commit:
                if not args.yes and not _ask(f"Create {len(entries)} semester(s)? [y/N] "):
                    logger.info("semester creation cancelled; nothing was written")
                    return EXIT_PARTIAL_FAILURE
                created = create_planned_semesters(store, entries)
    except SemesterPlanError as e:
        for problem in e.problems:
            logger.error(f"plan: {problem}")
        return EXIT_FATAL
    except StoreError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"store connection failed: {e}")
        return EXIT_FATAL

    log_summary(render_plan_line(len(entries), created))
    return EXIT_SUCCESS_ALL


def _run_workbook_import(args: argparse.Namespace, cfg: ImportConfig, logger: logging.Logger) -> int:
    logger.info(f"Importing workbook: {args.workbook}")
    error_log = ErrorLogBuffer(Path(cfg.error_log_dir))
    confirm = None
    if args.commit:
        confirm = (lambda _report: True) if args.yes else _prompt_confirmation

    try:
        with _open_store(cfg, args.snapshot) as store:
            result = run_import(args.workbook, cfg, store, confirm=confirm, error_log=error_log)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        error_log.flush()
        return EXIT_FATAL
    except StoreError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"store connection failed: {e}")
        return EXIT_FATAL

    report = result.report
    for line in report_lines(report):
        logger.info(line)
    if args.report is not None:
        try:
            written = write_report(report, args.report)
            logger.info(f"report written: {written}")
        except (ValueError, OSError) as e:
            logger.error(f"report: {e}")
            return EXIT_FATAL

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log: {log_path}")

    log_summary(render_summary_line(report))

    if result.outcome is not None:
        log_summary(render_commit_line(result.outcome))
        if not result.outcome.succeeded:
            return EXIT_FATAL

    if report.all_valid and (not args.commit or result.committed):
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


def main(argv: list[str] | None = None) -> int:
    # None only: an explicit [] must not pick up pytest's own argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)

    if args.commit and args.snapshot is not None:
        logger.error("--commit can not be used with --snapshot; snapshot stores are read-only")
        return EXIT_FATAL
    if args.workbook is None and args.plan_semesters is None:
        logger.error("a workbook or --plan-semesters START END is required")
        return EXIT_FATAL

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.plan_semesters is not None:
        return _run_semester_plan(args, cfg, logger)
    return _run_workbook_import(args, cfg, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
