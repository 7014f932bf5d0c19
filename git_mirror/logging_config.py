"""
Logging Configuration — Structured logging setup.

Provides consistent logging across all modules with:
- JSON output for log shippers (machine-readable)
- Human-readable output for terminals and cron mail
- Masking of registered secrets in every record

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (used when no -v flag is given)
- LOG_FORMAT: json, text (default: text)

## Usage

    from git_mirror.logging_config import setup_logging

    setup_logging(verbosity=2, secrets=[token])  # Call once at startup
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

# -v count → level, as in the original git-mirror CLI
VERBOSITY_LEVELS = {
    0: "ERROR",
    1: "WARNING",
    2: "INFO",
    3: "DEBUG",
}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {"ts": "...", "level": "...", "logger": "...", "thread": "...", "message": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if hasattr(record, "repository"):
            log_entry["repository"] = record.repository

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class HumanFormatter(logging.Formatter):
    """
    Human-readable log formatter.

    Output format:
    12:34:56 INFO    [worker         ] Message
    """

    COLORS = {
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.now().strftime("%H:%M:%S")

        level = record.levelname
        if sys.stderr.isatty():
            color = self.COLORS.get(level, "")
            level = f"{color}{level:7}{self.RESET}"
        else:
            level = f"{level:7}"

        module = record.name.split(".")[-1][:15]
        line = f"{time_str} {level} [{module:15}] {record.getMessage()}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class RedactingFilter(logging.Filter):
    """Replace registered secrets in log messages with '***'."""

    def __init__(self, secrets: Iterable[Optional[str]] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        for secret in self.secrets:
            message = message.replace(secret, "***")
        record.msg = message
        record.args = None
        return True


def level_for_verbosity(verbosity: int) -> str:
    """Map a -v count to a level name, capping at DEBUG."""
    return VERBOSITY_LEVELS[max(0, min(verbosity, max(VERBOSITY_LEVELS)))]


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    verbosity: int | None = None,
    secrets: Iterable[Optional[str]] = (),
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level name. Takes precedence over verbosity.
        format_type: Output format (json, text).
                     Defaults to LOG_FORMAT env var or text.
        verbosity: -v count from the CLI; when 0 or None, LOG_LEVEL
                   (or ERROR) applies.
        secrets: Values masked in every log record (e.g. the API token).
    """
    if level is None:
        if verbosity:
            level = level_for_verbosity(verbosity)
        else:
            level = os.environ.get("LOG_LEVEL", "ERROR")

    log_level = level.upper()
    log_format = (format_type or os.environ.get("LOG_FORMAT", "text")).lower()

    numeric_level = getattr(logging, log_level, logging.INFO)

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)
    handler.addFilter(RedactingFilter(secrets))
    root.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={log_level}, format={log_format}"
    )
