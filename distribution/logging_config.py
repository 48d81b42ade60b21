"""Structured logging configuration.

Assembly runs attach context (pending batch ids, output root, bucket) with
`log_context`; every record emitted inside the block carries those fields,
and the JSON formatter writes them next to the message.
"""
import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

# Fields present on every record, so log lines from one run can be grouped.
DEFAULT_CONTEXT: Dict[str, Any] = {"run": None, "bucket": None}

_log_context: ContextVar[Dict[str, Any]] = ContextVar("distribution_log_context", default=DEFAULT_CONTEXT)


@contextmanager
def log_context(**fields: Any) -> Iterator[Dict[str, Any]]:
    """Add `fields` to every record logged inside the block (nesting merges)."""
    merged = {**_log_context.get(), **fields}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


def current_context() -> Dict[str, Any]:
    return dict(_log_context.get())


class ContextFilter(logging.Filter):
    """Copy the active log context onto records; explicit `extra=` wins."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including context and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        # batch ids, paths and datetimes are not JSON native
        return json.dumps(log_data, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain text lines with the run and bucket appended when set."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ctx = " ".join(
            f"{key}={getattr(record, key)}" for key in DEFAULT_CONTEXT if getattr(record, key, None) is not None
        )
        return f"{line} [{ctx}]" if ctx else line


def setup_logging(
    log_level: str = "INFO",
    use_json: bool = False,
    log_file: Optional[str] = None
):
    """Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: Use JSON formatting for structured logs
        log_file: Optional file path for file logging
    """
    root_logger = logging.getLogger()
    root_logger.handlers = []

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    if use_json:
        formatter = JSONFormatter()
    else:
        formatter = ContextTextFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        root_logger.addHandler(handler)

    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
