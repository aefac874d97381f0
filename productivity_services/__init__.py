"""
productivity_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the pure productivity engines: repository
    snapshot retrieval, subscription adjustment with failure reporting,
    and the reports built on top.  This is the only layer that talks to
    the WorkforceRepository and the ErrorReporter.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        productivity_services/ -> productivity_engines/  (allowed)
        productivity_services/ -> productivity_kernel/   (allowed)
        productivity_engines/  -> productivity_services/ (FORBIDDEN)
        productivity_kernel/   -> productivity_services/ (FORBIDDEN)
"""

from productivity_services.error_reporting import ErrorReport, LoggingErrorReporter
from productivity_services.exchange import StaticCurrencyExchanger
from productivity_services.productivity_service import WorkforceProductivityService

__all__ = [
    "ErrorReport",
    "LoggingErrorReporter",
    "StaticCurrencyExchanger",
    "WorkforceProductivityService",
]
