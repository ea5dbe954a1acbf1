"""Structured logging for the association control loop.

Records carry the operation context (see ``eipctl.utils.context``) and the
active trace identifiers, so one EIP's bind or unbind can be followed across
the dispatcher's worker threads.
"""

import logging
import sys
import time
from contextlib import contextmanager

from pythonjsonlogger import jsonlogger

from eipctl.config import settings
from eipctl.utils.context import get_context, get_trace_context

# Record attributes promoted to top-level JSON keys when present
CONTEXT_FIELDS = ("request_id", "eip_id", "instance_id", "action", "trace_id", "span_id")

# Libraries whose request-level chatter drowns out the control loop
QUIET_LOGGERS = ("httpx", "httpcore", "opentelemetry")


class OperationContextFilter(logging.Filter):
    """Copy the current operation and trace context onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.__dict__.update(get_context())
        record.__dict__.update(get_trace_context())
        return True


class EipJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record with level, logger and context keys."""

    def add_fields(
        self, log_record: dict, record: logging.LogRecord, message_dict: dict
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("timestamp", record.created)
        log_record.update(level=record.levelname, logger=record.name)
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


class LevelColorFormatter(logging.Formatter):
    """Plain-text formatter that colors the level name for terminals."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def formatMessage(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().formatMessage(record)
        # Color a copy so other handlers still see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().formatMessage(colored)


def setup_logging() -> None:
    """Route all logging to stdout using ``LOG_FORMAT`` and ``LOG_LEVEL``.

    Intended for the process that embeds the library; the library itself
    only ever calls ``get_logger``.
    """
    if settings.LOG_FORMAT == "json":
        formatter: logging.Formatter = EipJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s", timestamp=True
        )
    else:
        formatter = LevelColorFormatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(OperationContextFilter())
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.LOG_LEVEL.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_timer(operation: str, logger: logging.Logger):
    """Log how long the wrapped block took, whether or not it raised.

    Example:
        with log_timer("gateway_get_eip", logger):
            client.request("GET", path)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"Operation completed: {operation}",
            extra={
                "operation": operation,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
