from __future__ import annotations

import logging
import sys

"""Console logging for the importer.

All module loggers live under ``academic_import`` and share one stdout handler
that prefixes every line with its label:

    INFO Importing workbook: courses.xlsx
    WARN row=4 invalid: Invalid batches: 2099X
    SUMMARY rows=3 valid=2 invalid=1 new_semesters=0 elapsed_sec=0.012

SUMMARY is a custom level (25) so summary lines survive a WARN-only threshold
set by an embedding application but are hidden by nothing the CLI configures.
Row issues are also written as JSON Lines by ``academic_import.logging.error_log``.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "academic_import"
SUMMARY_LEVEL = 25
SUMMARY_PREFIX = "SUMMARY "

_handler: logging.Handler | None = None


class LabeledFormatter(logging.Formatter):
    """``<LABEL> <message>``; WARNING is shortened to WARN."""

    LEVEL_LABELS = {
        logging.WARNING: "WARN",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{label} {record.getMessage()}"


def setup_logging(debug: bool = False) -> logging.Logger:
    """Attach the labeled stdout handler to the package logger.

    Calling it again keeps the existing handler and only applies ``debug``.
    """
    global _handler

    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if debug else logging.INFO
    if _handler is None:
        logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
        for existing in logger.handlers[:]:
            logger.removeHandler(existing)
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(LabeledFormatter())
        logger.addHandler(_handler)
        # the CLI owns stdout; keep records away from the root logger
        logger.propagate = False
    _handler.setLevel(level)
    logger.setLevel(level)
    if debug:
        logger.debug("debug mode enabled")
    return logger


def get_logger() -> logging.Logger:
    if _handler is None:
        return setup_logging()
    return logging.getLogger(LOGGER_NAME)


def log_summary(line: str) -> None:
    """Emit a rendered ``SUMMARY ...`` line at SUMMARY level (prefix added by the formatter)."""
    message = line[len(SUMMARY_PREFIX):] if line.startswith(SUMMARY_PREFIX) else line
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Detach the handler and restore default propagation. Used by tests."""
    global _handler

    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
