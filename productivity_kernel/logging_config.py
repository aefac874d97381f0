"""
Structured JSON logging for the productivity kernel.

Every logger lives under the ``productivity_kernel`` namespace and writes
one JSON object per line.  The object holds the timestamp, level, logger
name and message, then the current LogContext fields, then whatever was
passed through ``extra=``.  Kernel exceptions logged with ``exc_info``
add their ``code`` and public attributes as ``exc_*`` keys.

Usage:
    configure_logging(level="INFO")
    logger = get_logger("engines.category_income")
    with LogContext.bind(flux_id=flux.flux_id):
        logger.info("category_income_completed", extra={"month_count": 3})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "productivity_kernel"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "run_id", "flux_id", "actor_id")

_context: ContextVar[dict[str, str]] = ContextVar("productivity_log_context", default={})


class LogContext:
    """
    Per-task log fields, stored in a ContextVar so threads and asyncio
    tasks each see their own values.  The stored dict is never mutated in
    place; every change installs a new one.
    """

    @staticmethod
    def set(
        *,
        correlation_id: str | None = None,
        run_id: str | None = None,
        flux_id: str | None = None,
        actor_id: str | None = None,
    ) -> None:
        """Update the given fields, leaving fields passed as None untouched."""
        updates = {
            "correlation_id": correlation_id,
            "run_id": run_id,
            "flux_id": flux_id,
            "actor_id": actor_id,
        }
        current = dict(_context.get())
        current.update({k: str(v) for k, v in updates.items() if v is not None})
        _context.set(current)

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    def bind(**fields: Any) -> "_BoundContext":
        """Context manager setting ``fields`` for the duration of a block."""
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        return _BoundContext(fields)


class _BoundContext:
    def __init__(self, fields: dict[str, Any]):
        self._fields = {k: str(v) for k, v in fields.items() if v is not None}
        self._token = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set({**_context.get(), **self._fields})
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        _context.reset(self._token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_json_default)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # ProductivityError subclasses keep their details as public attributes
        for name, value in vars(exc).items():
            if not name.startswith("_") and name != "code":
                fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``productivity_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``productivity_kernel`` logger.

    Only the first call has any effect until ``reset_logging()``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    root.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging()``. Meant for tests."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(LOGGER_NAMESPACE)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
