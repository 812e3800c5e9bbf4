"""Structured logging for storage operations.

Every record logged inside an ``OperationContext`` carries the operation name,
its id and the source and destination locations it works on. With the JSON
format each record is one object per line.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

operation_id_var: ContextVar[str | None] = ContextVar("operation_id", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)
source_var: ContextVar[str | None] = ContextVar("source", default=None)
destination_var: ContextVar[str | None] = ContextVar("destination", default=None)

PACKAGE_LOGGER = "fs_s3"


class LogLevel(str, Enum):
    """Log levels matching Python's logging module."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class LogContext:
    """The operation a record was logged under."""

    operation_id: str | None = None
    operation: str | None = None
    source: str | None = None
    destination: str | None = None

    @classmethod
    def current(cls) -> "LogContext":
        return cls(
            operation_id=operation_id_var.get(),
            operation=operation_var.get(),
            source=source_var.get(),
            destination=destination_var.get(),
        )

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class JsonFormatter(logging.Formatter):
    """Renders a record, its operation context and its fields as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "operation_context", None)
        if isinstance(context, LogContext):
            payload.update(context.to_dict())
        payload.update(getattr(record, "fields", {}))

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            payload["error"] = {"type": type(error).__name__, "message": str(error)}

        return json.dumps(payload, default=str)


class StructuredLogger:
    """Logger that attaches the current operation and keyword fields to records.

    Example:
        logger = get_logger(__name__)
        logger.info("Copied files", count=3, duration_ms=12.5)
        logger.error("Delete failed", error=exception, location="s3://bucket/a")
    """

    def __init__(self, name: str) -> None:
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, error: BaseException | None, fields: dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        extra = {
            "operation_context": LogContext.current(),
            "fields": {k: v for k, v in fields.items() if v is not None},
        }
        exc_info = (type(error), error, error.__traceback__) if error is not None else None
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, None, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, None, fields)

    def warning(self, message: str, error: BaseException | None = None, **fields: Any) -> None:
        self._log(logging.WARNING, message, error, fields)

    def error(self, message: str, error: BaseException | None = None, **fields: Any) -> None:
        self._log(logging.ERROR, message, error, fields)


class OperationContext:
    """Scopes the operation context seen by every record logged inside it.

    Example:
        async with OperationContext("copy", source="s3://bucket/in", destination="/tmp/out"):
            logger.info("Copying folder")
    """

    def __init__(
        self,
        operation: str,
        source: str | None = None,
        destination: str | None = None,
        operation_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.source = source
        self.destination = destination
        self.operation_id = operation_id or uuid.uuid4().hex
        self._tokens: list[tuple[ContextVar, Any]] = []

    def __enter__(self) -> "OperationContext":
        for var, value in (
            (operation_id_var, self.operation_id),
            (operation_var, self.operation),
            (source_var, self.source),
            (destination_var, self.destination),
        ):
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)

    async def __aenter__(self) -> "OperationContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


class Timer:
    """Measures the wall time of a block in milliseconds."""

    def __init__(self) -> None:
        self.start_time = 0.0
        self.end_time = 0.0

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()


def configure_logging(level: LogLevel = LogLevel.INFO, format: str = "json") -> None:
    """Send the package's records to stdout.

    Args:
        level: Minimum log level
        format: "json" for one JSON object per line, anything else for plain text
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level.value)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    package_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module."""
    return StructuredLogger(name)
