"""
Structured logging configuration.

- Development / testing: human-readable colored lines with the scan scope
- Production: one JSON object per line, every ``extra=`` field included
- Level and format: LOG_LEVEL / LOG_FORMAT config keys (env vars of the same name)

Services log with ``extra={"scan_id": ..., "lifecycle_id": ...}``; the JSON
formatter emits whatever extras a record carries.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

# Shown inline by the readable formatter
_SCOPE_KEYS = ("tenant_id", "scan_id", "lifecycle_id")


def record_extras(record: logging.LogRecord) -> dict:
    """The ``extra=`` fields attached to a record, None values dropped."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_") and value is not None
    }


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key, value in record_extras(record).items():
            log_entry.setdefault(key, value)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Human-readable colored formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",      # cyan
        "INFO": "\033[32m",       # green
        "WARNING": "\033[33m",    # yellow
        "ERROR": "\033[31m",      # red
        "CRITICAL": "\033[35m",   # magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        duration = getattr(record, "duration_ms", None)
        dur_str = f" [{duration:.0f}ms]" if duration is not None else ""
        scope = " ".join(
            f"{key}={getattr(record, key)}" for key in _SCOPE_KEYS if getattr(record, key, None)
        )
        scope_str = f" ({scope})" if scope else ""
        msg = record.getMessage()
        base = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {msg}{dur_str}{scope_str}"
        if record.exc_info and record.exc_info[0] is not None:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(app):
    """
    Set up structured logging for the Flask app.

    LOG_LEVEL defaults to DEBUG in development / testing and INFO in
    production. LOG_FORMAT ("json" | "readable") overrides the formatter
    picked from the environment.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = (
        app.config.get("LOG_LEVEL")
        or os.getenv("LOG_LEVEL")
        or ("INFO" if is_prod else "DEBUG")
    )
    level = getattr(logging, level_name.upper(), logging.INFO)

    fmt = (app.config.get("LOG_FORMAT") or os.getenv("LOG_FORMAT") or "").lower()
    use_json = fmt == "json" or (is_prod and fmt != "readable")
    formatter = JSONFormatter() if use_json else ReadableFormatter()

    # Single root handler; repeated create_app() calls in tests must not stack handlers
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if use_json else "readable")
