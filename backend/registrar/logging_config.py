"""
Structured JSON logging configuration.

Every log line is a single JSON object on stdout with a channel
(http, db, registration, admin, storage), the current request ID and
any business context attached by the caller.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# Request ID for the HTTP request currently being handled.
# Set by the request-id middleware, read by the formatter.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CHANNELS = ["http", "db", "registration", "admin", "storage"]


class StructuredJsonFormatter(logging.Formatter):
    """
    One JSON object per line: timestamp (UTC, from the record), level,
    message, channel, context and extra. `context` always carries the
    request_id of the HTTP request being served, if any. A traceback, when
    attached, lands in extra.exception.
    """

    @staticmethod
    def _channel(record: logging.LogRecord) -> str:
        if hasattr(record, "channel"):
            return record.channel
        return record.name.rsplit(".", 1)[-1] if "." in record.name else "app"

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        context = {"request_id": request_id_var.get("")}
        context.update(getattr(record, "context", None) or {})
        extra = dict(getattr(record, "extra_data", None) or {})
        if record.exc_info:
            extra["exception"] = self.formatException(record.exc_info)
        return json.dumps({
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": self._channel(record),
            "context": context,
            "extra": extra,
        }, default=str)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the root logger with the JSON formatter on stdout and set
    the level on every channel logger.
    """
    formatter = StructuredJsonFormatter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"registrar.{channel}").setLevel(log_level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Get the logger for a channel (http, db, registration, admin, storage)."""
    return logging.getLogger(f"registrar.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info=False):
    """
    Emit a structured log entry.

    Args:
        logger: The channel logger to use
        level: Log level string (INFO, WARNING, ERROR, DEBUG)
        message: Human-readable log message
        context: Business context dict (admission_number, student_id, backend)
        extra_data: Additional metadata dict (ip, duration_ms, error)
        exc_info: True for the active exception, or an exception instance
            whose traceback should be attached
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def generate_request_id() -> str:
    """Generate a new UUID for request tracking."""
    return str(uuid.uuid4())
