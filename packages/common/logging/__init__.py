"""JSON structured logging for Codecrawl.

Every record is one JSON object on stderr; stdout stays reserved for command
output (``--json`` reports, llms.txt text). Records carry the correlation ID
of the metrics run or generation job in flight, and the process ID so lines
emitted by tokenization pool workers can be told apart.
"""

import logging
import sys
from typing import IO, Any

from pythonjsonlogger.json import JsonFormatter

from packages.common.config import get_config

# Chatty per-request loggers of the HTTP stack, kept at WARNING unless debugging
_HTTP_LOGGERS = ("httpx", "httpcore")


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the active correlation ID (or None)."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Imported lazily: tracing is importable without logging configured
        from packages.common.tracing import get_correlation_id

        record.correlation_id = get_correlation_id()
        return True


class CodecrawlJsonFormatter(JsonFormatter):
    """JSON formatter adding level, origin, process, and correlation fields."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = record.created
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno
        log_record["pid"] = record.process
        log_record["correlation_id"] = getattr(record, "correlation_id", None)


def setup_logging(level: str | None = None, stream: IO[str] | None = None) -> None:
    """Route all logging through a single JSON handler.

    Args:
        level: Log level override (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to LOG_LEVEL from config.
        stream: Destination stream (defaults to sys.stderr).

    Example:
        >>> setup_logging("DEBUG")
        >>> logging.getLogger(__name__).info("Counting output tokens")
    """
    log_level = (level or get_config().log_level).upper()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(CodecrawlJsonFormatter("%(message)s"))
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    http_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


__all__ = ["CodecrawlJsonFormatter", "CorrelationIdFilter", "setup_logging"]
