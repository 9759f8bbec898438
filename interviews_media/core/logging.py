"""Structured logging with correlation IDs.

Each record is tagged with the correlation ID of the request that produced it.
In JSON mode the active trace and span IDs are added as well, and the stream
context fields that the video endpoints log (user, recording, status, byte
span) are promoted to top-level keys so they can be filtered on directly.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from interviews_media.core.tracing import get_span_id, get_trace_id

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

PROMOTED_FIELDS = (
    "user_id",
    "recording_id",
    "status_code",
    "content_range",
    "content_length",
    "method",
    "path",
    "duration_ms",
)

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def get_correlation_id() -> str:
    """Return the request's correlation ID, minting one outside of requests."""
    cid = correlation_id_var.get()
    if cid is None:
        cid = get_trace_id() or uuid.uuid4().hex
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JSONLogFormatter(logging.Formatter):
    """Render records as single-line JSON documents."""

    def __init__(self, include_stack_trace: bool = True):
        super().__init__()
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
            "source": f"{record.module}:{record.lineno}",
        }

        trace_id = get_trace_id()
        if trace_id:
            entry["trace_id"] = trace_id
            entry["span_id"] = get_span_id()

        extra = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key != "correlation_id"
        }
        for key in PROMOTED_FIELDS:
            if key in extra:
                entry[key] = extra.pop(key)
        if extra:
            entry["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            entry["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }
            if self.include_stack_trace:
                entry["error"]["stack_trace"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        return True


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_stack_trace: bool = True,
) -> None:
    """Configure the root logger with a single stdout handler.

    Args:
        level: Log level name
        json_format: Emit JSON documents instead of plain text lines
        include_stack_trace: Include formatted tracebacks in JSON error records
    """
    log_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(JSONLogFormatter(include_stack_trace=include_stack_trace))
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
            )
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_error(
    logger: logging.Logger,
    message: str,
    exception: Optional[Exception] = None,
    **extra: Any,
) -> None:
    """Log an error, attaching the exception's traceback when given."""
    logger.error(message, exc_info=exception, extra=extra)
