from __future__ import annotations

from ..models.commit_outcome import CommitOutcome
from ..models.validation_report import ValidationReport

"""Summary line rendering for the SUMMARY output.

Formats:
SUMMARY rows={n} valid={v} invalid={i} new_semesters={s} elapsed_sec={e}
SUMMARY commit={state} semesters_created={s} courses_created={c}
SUMMARY planned_semesters={p} semesters_created={s}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(report: ValidationReport) -> str:
    """Render the validation SUMMARY line.

    Examples:
        >>> from academic_import.models.validation_report import ValidationReport
        >>> render_summary_line(ValidationReport(source_name="x.xlsx", rows=[]))
        'SUMMARY rows=0 valid=0 invalid=0 new_semesters=0 elapsed_sec=0'
    """
    return (
        f"SUMMARY rows={len(report.rows)} "
        f"valid={len(report.valid_rows)} "
        f"invalid={len(report.invalid_rows)} "
        f"new_semesters={len(report.pending_semesters)} "
        f"elapsed_sec={_format_seconds(report.elapsed_seconds)}"
    )


def render_commit_line(outcome: CommitOutcome) -> str:
    line = (
        f"SUMMARY commit={outcome.state.value} "
        f"semesters_created={outcome.semesters_created} "
        f"courses_created={outcome.courses_created}"
    )
    if outcome.failed_stage is not None:
        line += f" failed_stage={outcome.failed_stage.value}"
    return line


def render_plan_line(planned: int, created: int) -> str:
    return f"SUMMARY planned_semesters={planned} semesters_created={created}"
