"""
Ports -- Collaborator contracts consumed by the engines and the service.

Responsibility:
    Declares the three external collaborators as ``typing.Protocol``
    interfaces: the workforce repository (snapshot retrieval), the
    currency exchanger and the error reporter.  Implementations live
    outside the kernel; the engines only depend on these shapes.

Architecture position:
    Kernel > Domain -- interface declarations only, zero I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any, Protocol

from productivity_kernel.domain.models import (
    BilledFlux,
    CategoryId,
    CostRecord,
    FixedSumProjectInfo,
    InvoiceRow,
    ProductivityFilters,
    UserRateInfo,
    WorkLog,
)


class CurrencyExchanger(Protocol):
    """Source of currency conversion multipliers."""

    def rate(self, from_currency: str, to_currency: str) -> Decimal:
        """Return the multiplier converting one unit of from_currency into to_currency."""
        ...


class ErrorReporter(Protocol):
    """Sink for failures that are isolated rather than propagated."""

    def report(self, context: str, error: BaseException, **details: Any) -> None:
        ...


class WorkforceRepository(Protocol):
    """Read-only snapshot provider, queried once per service instance."""

    def get_billed_fluxes(self, filters: ProductivityFilters) -> Mapping[CategoryId, BilledFlux]:
        ...

    def get_all_invoice_row_values(self, filters: ProductivityFilters) -> Sequence[InvoiceRow]:
        ...

    def get_billed_logs(
        self,
        flux_ids: Iterable[CategoryId],
        project_ids: Iterable[CategoryId] | None,
    ) -> Sequence[WorkLog]:
        """Logs of the given fluxes; ``project_ids=None`` means every project."""
        ...

    def get_fixed_sum_projects_with_logs(
        self,
        project_ids: Iterable[CategoryId] | None,
    ) -> Mapping[CategoryId, FixedSumProjectInfo]:
        ...

    def get_fixed_sum_projects_without_logs(
        self,
        project_ids: Iterable[CategoryId] | None,
    ) -> Mapping[CategoryId, Sequence[UserRateInfo]]:
        ...

    def get_users_and_teams_costs(self, filters: ProductivityFilters) -> Sequence[CostRecord]:
        ...

    def get_users_grouped_by_teams(self) -> Mapping[CategoryId, Sequence[CategoryId]]:
        ...
