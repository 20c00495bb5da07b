"""
Logging configuration for extraction runs.

This module provides structured JSON logging of analyzer activity: parse
summaries, per-run finding counts and matcher failures.
"""

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Any

FINDINGS_LOGGER_NAME = "jsprobe.findings"

_EXTRA_FIELDS = (
    "event",
    "matcher",
    "trigger",
    "kind",
    "type",
    "severity",
    "count",
    "language",
    "error",
)


class FindingLogFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log records with structured data."""
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def configure_logging(
    log_file: str | None = None,
    log_level: str = "INFO",
    enable_console: bool = True,
) -> None:
    """
    Configure logging for the ``jsprobe`` logger hierarchy.

    Args:
        log_file: Path to log file (optional)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_console: Whether to also log to console
    """
    logger = logging.getLogger("jsprobe")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.propagate = False

    logger.handlers.clear()

    formatter = FindingLogFormatter()

    if log_file:
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="H",
            interval=1,
            backupCount=168,
            encoding="utf-8",
            utc=False,
        )
        file_handler.suffix = "%Y%m%d_%H%M%S.log"
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)


def get_logger() -> logging.Logger:
    """Get the findings logger."""
    return logging.getLogger(FINDINGS_LOGGER_NAME)


def summarize_log(log_file: str) -> dict[str, Any]:
    """
    Aggregate ``extraction_complete`` events from a JSON log file.

    Args:
        log_file: Path to the log file

    Returns:
        Event count plus URL and secret totals
    """
    stats: dict[str, Any] = {
        "events": 0,
        "urls": 0,
        "secrets": 0,
        "languages": {},
        "matcher_errors": 0,
    }

    try:
        with open(log_file, encoding="utf-8") as f:
            for line in f:
                try:
                    entry = json.loads(line.strip())
                except json.JSONDecodeError:
                    continue

                event = entry.get("event")
                if event == "extraction_complete":
                    stats["events"] += 1
                    count = entry.get("count", 0)
                    if entry.get("kind") == "secret":
                        stats["secrets"] += count
                    else:
                        stats["urls"] += count
                    language = entry.get("language", "unknown")
                    stats["languages"][language] = stats["languages"].get(language, 0) + 1
                elif event == "matcher_error":
                    stats["matcher_errors"] += 1
    except FileNotFoundError:
        pass

    return stats
