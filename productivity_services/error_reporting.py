"""
productivity_services.error_reporting -- Default ErrorReporter.

Logs every reported failure at ERROR with its context and keeps the
reports so callers (and tests) can inspect what went wrong.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from productivity_kernel.logging_config import get_logger

logger = get_logger("services.error_reporting")


@dataclass(frozen=True)
class ErrorReport:
    context: str
    error: BaseException
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_code(self) -> str | None:
        return getattr(self.error, "code", None)


class LoggingErrorReporter:
    """ErrorReporter that logs and collects reports."""

    def __init__(self) -> None:
        self._reports: list[ErrorReport] = []

    @property
    def reports(self) -> tuple[ErrorReport, ...]:
        return tuple(self._reports)

    def report(self, context: str, error: BaseException, **details: Any) -> None:
        entry = ErrorReport(context=context, error=error, details=dict(details))
        self._reports.append(entry)
        logger.error("error_reported", extra={
            "context": context,
            "error": str(error),
            "error_type": type(error).__name__,
            "error_code": entry.error_code,
            **{key: str(value) for key, value in details.items()},
        })
