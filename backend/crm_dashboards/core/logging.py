"""
Logging setup for the API and the maintenance/seed commands.

``LOG_FORMAT=text`` (default) prints one readable line per record with the
request's correlation id; ``LOG_FORMAT=json`` prints one JSON object per line
carrying every tracing field, for log shippers.
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from crm_dashboards.core.tracing import FIELDS as TRACING_FIELDS, TracingContext

# Optional attributes callers may pass through ``extra=``
EXTRA_FIELDS = ("method", "path", "status_code", "duration_ms")

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(correlation_id)s] %(name)s: %(message)s"


class TracingFilter(logging.Filter):
    """Copy the current TracingContext onto every record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = TracingContext.get()
        for field in TRACING_FIELDS:
            if not getattr(record, field, ""):
                setattr(record, field, ctx.get(field, ""))
        if not record.correlation_id:
            record.correlation_id = "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record: message, source location and tracing fields."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = TracingContext.get()

        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "line": record.lineno,
        }
        for field in TRACING_FIELDS:
            value = getattr(record, field, "") or ctx.get(field, "")
            log_record[field] = "" if value == "-" else value
        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Attach a stdout handler to the root logger once.

    ``level`` and ``log_format`` default to ``LOG_LEVEL`` / ``LOG_FORMAT`` from
    settings. Later calls are no-ops so importing the app twice is harmless.
    """
    root_logger = logging.getLogger()
    if any(getattr(handler, "_crm_dashboards", False) for handler in root_logger.handlers):
        return

    from crm_dashboards.config import settings

    level = (level or settings.LOG_LEVEL).upper()
    log_format = (log_format or settings.LOG_FORMAT).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler._crm_dashboards = True
    handler.addFilter(TracingFilter())
    handler.setFormatter(JSONFormatter() if log_format == "json" else logging.Formatter(TEXT_FORMAT))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for noisy in ("uvicorn.access", "pymongo"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
