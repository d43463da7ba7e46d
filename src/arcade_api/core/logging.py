from __future__ import annotations

import inspect
import json
import logging
import sys
from typing import Any, Dict, Mapping, TextIO

from loguru import logger
from opentelemetry import trace


# Attributes every stdlib LogRecord carries; anything else was passed via ``extra=``.
_STDLIB_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_SENSITIVE_KEYS = frozenset(
    {"password", "password_hash", "session_token", "token", "cookie", "authorization", "secret_key"}
)
_MASK = "[redacted]"

_QUIET_LOGGERS: Mapping[str, int] = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
}


def scrub(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Mask credentials bound to a log call instead of writing them out."""
    return {key: (_MASK if key.lower() in _SENSITIVE_KEYS else value) for key, value in fields.items()}


class StdlibBridge(logging.Handler):
    """Forward uvicorn, sqlalchemy and other stdlib records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so Loguru reports the original call site.
        frame, depth = inspect.currentframe(), 0
        while frame is not None and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        extra = {key: value for key, value in vars(record).items() if key not in _STDLIB_RECORD_ATTRS}
        logger.opt(depth=depth, exception=record.exc_info).bind(**extra).log(level, record.getMessage())


class JsonLineSink:
    """Writes one JSON object per record, stamped with service metadata and the active span."""

    def __init__(self, *, service_name: str, environment: str, version: str, stream: TextIO | None = None):
        self._static = {"service": service_name, "environment": environment, "version": version}
        self._stream = stream

    def render(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name.lower(),
            "message": record["message"],
            "logger": record["name"],
            **self._static,
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            payload["trace_id"] = f"{span_context.trace_id:032x}"
            payload["span_id"] = f"{span_context.span_id:016x}"

        payload.update(scrub(record["extra"]))

        exception = record["exception"]
        if exception is not None and exception.type is not None:
            payload["exception"] = {"type": exception.type.__name__, "detail": str(exception.value)}
        return payload

    def __call__(self, message: "logger.Message") -> None:
        stream = self._stream or sys.stdout
        stream.write(json.dumps(self.render(message.record), default=str) + "\n")
        stream.flush()


def configure_logging(*, service_name: str, environment: str, version: str, level: str = "INFO") -> JsonLineSink:
    """Send Loguru and stdlib logging through a single JSON line sink."""

    sink = JsonLineSink(service_name=service_name, environment=environment, version=version)
    logger.remove()
    logger.add(sink, level=level.upper(), backtrace=False, diagnose=False)

    logging.basicConfig(handlers=[StdlibBridge()], level=0, force=True)
    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    return sink
