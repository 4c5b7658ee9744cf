"""
Logging setup for devcaddy.

Text logging by default, JSON lines when DEVCADDY_LOG_FORMAT=json. Records
about a managed Caddy object carry its @id as "caddy_id" so a whole
reconcile cycle can be followed in the log.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .errors import CaddyAdminError

# LogRecord attributes that are not user-supplied extras
_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "caddy_id",
}


def _source(record: logging.LogRecord) -> str:
    source = f"{record.filename}:{record.lineno}"
    if record.funcName and record.funcName != "<module>":
        source += f" in {record.funcName}"
    return source


class JSONFormatter(logging.Formatter):
    """
    Formats records as one JSON object per line.

    Always present: timestamp (UTC), level, logger, message and source
    ("file:line in function"). When set: caddy_id, the failed admin request
    of a CaddyAdminError under "admin", exception, and any extra passed to
    the logger.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": _source(record),
        }

        caddy_id = getattr(record, "caddy_id", None)
        if caddy_id:
            log_entry["caddy_id"] = caddy_id

        if record.exc_info:
            error = record.exc_info[1]
            if isinstance(error, CaddyAdminError):
                log_entry["admin"] = {
                    "method": error.method,
                    "target": error.target,
                    "status_code": error.status_code,
                }
            log_entry["exception"] = self.formatException(record.exc_info)

        log_entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        )
        return json.dumps(log_entry, default=str)


def is_json_logging_enabled() -> bool:
    return os.getenv("DEVCADDY_LOG_FORMAT", "text").lower() == "json"


def setup_logging(level: str | None = None, log_file: str | None = None, force: bool = True) -> None:
    """
    Configure the root logger from the environment.

    Environment variables:
    - DEVCADDY_LOG_FORMAT: "json" or "text" (default: text)
    - DEVCADDY_LOG_LEVEL: log level (default: WARNING, the console output
      already reports every action)
    - DEVCADDY_LOG_FILE: optional log file path
    """
    if level is None:
        level = os.getenv("DEVCADDY_LOG_LEVEL", "WARNING")
    if log_file is None:
        log_file = os.getenv("DEVCADDY_LOG_FILE")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            print(f"Warning: Could not open log file {log_file}: {e}", file=sys.stderr)

    if is_json_logging_enabled():
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level.upper(), handlers=handlers, force=force)


class EntryLogger(logging.LoggerAdapter):
    """
    Adds the Caddy object id to every record.

    Usage:
        log = EntryLogger(logging.getLogger(__name__), "devcaddy-server")
        log.info("created")  # record.caddy_id == "devcaddy-server"
    """

    def __init__(self, logger: logging.Logger, caddy_id: str):
        super().__init__(logger, {"caddy_id": caddy_id})

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra["caddy_id"] = self.extra["caddy_id"]
        kwargs["extra"] = extra
        return f"[{self.extra['caddy_id']}] {msg}", kwargs
