# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for gitmark.

Every log entry is a single JSON line with a timestamp, a level, the source
module and the message. Anything passed through `extra=` is merged into the
same object, which is how the harness attaches exit codes, timings and
command lines to its records.

Logs go to stderr. Stdout belongs to the marking report, and mixing the two
would make the report impossible to pipe into anything.

The JSON structure looks like:
  {"ts": "2026-...", "level": "INFO", "module": "gitmark.execution.harness", "msg": "Process finished", ...}
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_STANDARD_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "relativeCreated",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "pathname",
    "filename",
    "module",
    "levelno",
    "levelname",
    "processName",
    "process",
    "threadName",
    "thread",
    "message",
    "msecs",
    "taskName",
})


class JsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Mandatory fields:
      ts     - ISO 8601 UTC timestamp
      level  - log level name
      module - the logger name (usually the Python module path)
      msg    - the formatted message string

    Internal LogRecord attributes are skipped so only the caller's `extra`
    context ends up next to them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_log_level(level_name: str) -> int:
    """Turn a level name string into the corresponding logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "WARNING",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create a structured JSON logger.

    This is the only sanctioned way to get a logger in gitmark. Modules call
    it once at import time; the CLI calls `configure_logging` afterwards to
    raise or lower the level for the whole `gitmark` tree.

    Args:
        name: Logger name, typically __name__ of the calling module.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_file: Optional path to a log file. If provided, logs go to both
                  stderr and the file.

    Returns:
        A configured logging.Logger that outputs structured JSON.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    # Calling get_logger twice for one name must not stack handlers.
    if logger.handlers:
        return logger

    formatter = JsonFormatter()

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def configure_logging(log_level: str, log_file: Optional[Path] = None) -> None:
    """
    Apply one level (and optionally a log file) to every gitmark logger.

    Module-level loggers are created at import time with the default level,
    so the CLI walks the existing `gitmark.*` loggers and updates them in
    place once it knows what the user asked for.
    """
    level = _resolve_log_level(log_level)
    formatter = JsonFormatter()

    for name, candidate in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(candidate, logging.Logger):
            continue
        if name != "gitmark" and not name.startswith("gitmark."):
            continue
        candidate.setLevel(level)
        if log_file is not None and not any(
            isinstance(h, logging.FileHandler) for h in candidate.handlers
        ):
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
            file_handler.setFormatter(formatter)
            candidate.addHandler(file_handler)
