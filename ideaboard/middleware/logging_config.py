"""
Logging setup for IdeaBoard.

- Development: coloured one-line records
- Production: one JSON object per record
- Level: LOG_LEVEL (env var or app config)
- LOG_FORMAT=json|readable overrides the environment default
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes copied from ``extra=`` into JSON records when present.
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "user_id",
    "idea_id",
    "project_id",
    "milestone_id",
    "chat_id",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Coloured single-line formatter for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "") if self.use_color else ""
        reset = self.RESET if self.use_color else ""
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tail = ""
        rid = getattr(record, "request_id", None)
        if rid:
            tail += f" rid={rid}"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            tail += f" [{duration:.0f}ms]"
        line = f"{color}{ts} {record.levelname:<8}{reset} {record.name}: {record.getMessage()}{tail}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _pick_formatter(app, is_prod: bool) -> logging.Formatter:
    fmt = (os.getenv("LOG_FORMAT") or app.config.get("LOG_FORMAT") or "").lower()
    if fmt == "json" or (not fmt and is_prod):
        return JSONFormatter()
    return ReadableFormatter(use_color=sys.stderr.isatty())


def configure_logging(app):
    """
    Install a single stderr handler on the root logger.

    Default level is DEBUG in development and INFO elsewhere.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = (
        os.getenv("LOG_LEVEL")
        or app.config.get("LOG_LEVEL")
        or ("INFO" if is_prod or is_testing else "DEBUG")
    )
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    formatter = _pick_formatter(app, is_prod)

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info(
            "Logging configured: level=%s format=%s",
            level_name, type(formatter).__name__,
        )
