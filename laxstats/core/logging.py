"""
Structured logging with JSON output and correlation ids.

Every log line carries a correlation id: the X-Correlation-ID of the API
request being served, or the run id of the current load command. Context
passed through ``extra=`` (league, season, entity, ...) is kept as
structured fields.
"""
import logging
import json
import sys
import uuid
from datetime import datetime
from typing import Any, Dict
from contextvars import ContextVar, Token

# Context variable for correlation ID - shared across the application
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Attributes every LogRecord has; anything else arrived through extra=
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

# Loggers that are too chatty at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through extra= on a log call."""
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp", "level", "logger", "message", "correlation_id",
         "exception"?, "extra"?}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extras = record_extras(record)
        if extras:
            log_data["extra"] = extras

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Human-readable console output for local runs of the load command."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        parts = [f"{color}[{record.levelname}]{self.RESET} {record.name}: {record.getMessage()}"]

        context = " ".join(f"{k}={v}" for k, v in sorted(record_extras(record).items()))
        if context:
            parts.append(context)

        correlation_id = correlation_id_var.get()
        if correlation_id:
            parts.append(f"run={correlation_id}")

        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: logging.Handler | None = None,
) -> None:
    """
    Replace the root logger's handlers with one structured handler.

    Args:
        level: Logging level name
        json_output: JSON lines if True, colored console output otherwise
        handler: Handler to use; defaults to stderr so that `--json` output
            on stdout stays machine readable
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if json_output else ColoredFormatter())
    root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def new_run_id() -> str:
    """Short id used to correlate every log line of one load invocation."""
    return uuid.uuid4().hex[:12]


def set_correlation_id(correlation_id: str) -> Token:
    """Set the correlation id; keep the token to restore the previous one."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    return correlation_id_var.get()


def clear_correlation_id(token: Token) -> None:
    correlation_id_var.reset(token)
