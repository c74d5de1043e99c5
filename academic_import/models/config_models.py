from __future__ import annotations

from dataclasses import dataclass

"""Config dataclasses for the course bulk import tool.

These are the typed results of ``academic_import.config.loader.load_config``.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    database: DatabaseConfig  # Database connection fallback configuration
    sheet_name: str | None = None  # None -> first sheet of the workbook
    header_row: int = 1  # 1-based spreadsheet row holding the column headers
    reference_year: int | None = None  # Overrides the current year for the year window
    error_log_dir: str = "logs"  # JSON Lines error log directory
    page_size: int = 1000  # execute_values page size
