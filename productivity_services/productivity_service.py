"""
productivity_services.productivity_service -- Workforce productivity reporting over one filter set.

Responsibility:
    Fetch the billing, worklog and cost snapshots once for a filter set,
    derive the subscription-adjusted worklog views, and expose the income
    and cost reports built from them by the pure engines.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    The only layer that talks to the WorkforceRepository and the
    ErrorReporter; engines receive plain snapshots.

Invariants enforced:
    - Snapshots are fetched in the constructor and never refreshed.
    - Repository records are never mutated; adjusted views are new tuples.
    - The all-projects adjusted view is derived once and shared by every
      report that needs it.
    - All amounts are expressed in ``config.default_currency``.

Failure modes:
    - Per-flux subscription adjustment failures are reported to the
      ErrorReporter and recorded in ``adjustment_failures``; the flux keeps
      its unadjusted logs.
    - FluxNotFoundError from income allocation propagates.
    - Repository and exchanger failures propagate.

Usage:
    service = WorkforceProductivityService(repository, filters)
    income = service.monthly_income_by_flux_logs(CategoryDimension.USER, None)
    income = service.users_fixed_sum_projects_value(income)
    income = service.fixed_sum_no_logs_value(income)
    costs = service.user_costs(income)
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from decimal import Decimal

from productivity_config import ProductivityConfig, get_active_config
from productivity_engines import (
    LogValueCalculator,
    adjust_subscription_logs,
    allocate_fixed_sum_income,
    allocate_no_logs_income,
    attributed_costs,
    category_costs_by_user_logs,
    monthly_income_by_category,
    monthly_income_by_invoice_category,
    monthly_user_costs,
    total_income_and_costs_by_month,
)
from productivity_kernel.domain.models import (
    CategoryDimension,
    CategoryId,
    ProductivityFilters,
    WorkLog,
)
from productivity_kernel.domain.ports import CurrencyExchanger, ErrorReporter, WorkforceRepository
from productivity_kernel.domain.results import (
    CategoryAllocation,
    FluxAdjustmentOutcome,
    MonthlyValues,
)
from productivity_kernel.logging_config import configure_logging, get_logger
from productivity_services.error_reporting import LoggingErrorReporter
from productivity_services.exchange import StaticCurrencyExchanger

logger = get_logger("services.productivity")

SUBSCRIPTION_ADJUSTMENT_CONTEXT = "Workforce productivity - subscription logs value"

UserIncome = CategoryAllocation | Mapping[str, Mapping[CategoryId, Decimal]]


def _as_allocation(user_income: UserIncome | None) -> CategoryAllocation:
    if user_income is None:
        return CategoryAllocation()
    if isinstance(user_income, CategoryAllocation):
        return user_income
    by_month = {month: dict(values) for month, values in user_income.items()}
    return CategoryAllocation(
        by_month=by_month,
        category_ids=tuple(dict.fromkeys(uid for values in by_month.values() for uid in values)),
    )


class WorkforceProductivityService:
    """
    Income and cost reports for one filter set.

    Contract:
        Construction performs every repository read.  Reports are pure
        functions of those snapshots, so calling a report twice returns
        equal results.
    """

    def __init__(
        self,
        repository: WorkforceRepository,
        filters: ProductivityFilters,
        *,
        config: ProductivityConfig | None = None,
        exchanger: CurrencyExchanger | None = None,
        error_reporter: ErrorReporter | None = None,
    ):
        self._repository = repository
        self._filters = filters
        self._config = config if config is not None else get_active_config()
        configure_logging(level=self._config.log_level)
        self._exchanger = (
            exchanger if exchanger is not None
            else StaticCurrencyExchanger.from_config(self._config)
        )
        self._reporter = error_reporter if error_reporter is not None else LoggingErrorReporter()
        self._calculator = LogValueCalculator(self._exchanger, self._config.default_currency)

        self._fluxes = dict(repository.get_billed_fluxes(filters))
        self._invoice_rows = tuple(repository.get_all_invoice_row_values(filters))
        flux_ids = list(self._fluxes)

        self._base_filtered_logs = tuple(
            repository.get_billed_logs(flux_ids, self._project_filter)
        )
        self._base_all_projects_logs = tuple(repository.get_billed_logs(flux_ids, None))
        self._user_costs = monthly_user_costs(
            cost_records=tuple(repository.get_users_and_teams_costs(filters)),
            teams=repository.get_users_grouped_by_teams(),
        )

        self._adjustment_failures: list[FluxAdjustmentOutcome] = []
        self._filtered_logs = self._adjusted_view(self._base_filtered_logs, scope="filtered")
        self._all_projects_logs: tuple[WorkLog, ...] | None = None

        logger.info("productivity_service_initialized", extra={
            "flux_count": len(self._fluxes),
            "invoice_row_count": len(self._invoice_rows),
            "filtered_log_count": len(self._base_filtered_logs),
            "all_projects_log_count": len(self._base_all_projects_logs),
            "default_currency": self._config.default_currency,
        })

    # ------------------------------------------------------------------
    # Snapshot views
    # ------------------------------------------------------------------

    @property
    def filters(self) -> ProductivityFilters:
        return self._filters

    @property
    def filtered_worklogs(self) -> tuple[WorkLog, ...]:
        """Subscription-adjusted logs of the filtered projects."""
        return self._filtered_logs

    @property
    def all_projects_worklogs(self) -> tuple[WorkLog, ...]:
        """Subscription-adjusted logs of every project, derived on first use."""
        if self._all_projects_logs is None:
            self._all_projects_logs = self._adjusted_view(
                self._base_all_projects_logs, scope="all_projects",
            )
        return self._all_projects_logs

    @property
    def monthly_costs(self) -> MonthlyValues:
        """Raw month -> user -> cost, before attribution."""
        return {month: dict(costs) for month, costs in self._user_costs.items()}

    @property
    def adjustment_failures(self) -> tuple[FluxAdjustmentOutcome, ...]:
        return tuple(self._adjustment_failures)

    @property
    def _project_filter(self) -> tuple[CategoryId, ...] | None:
        return self._filters.projects_list or None

    @property
    def _user_filter(self) -> tuple[CategoryId, ...] | None:
        return self._filters.users_list or None

    def _adjusted_view(self, worklogs: Sequence[WorkLog], *, scope: str) -> tuple[WorkLog, ...]:
        adjustment = adjust_subscription_logs(
            worklogs=worklogs, fluxes=self._fluxes, calculator=self._calculator,
        )
        for failure in adjustment.failures:
            self._adjustment_failures.append(failure)
            if self._config.report_adjustment_failures:
                self._reporter.report(
                    SUBSCRIPTION_ADJUSTMENT_CONTEXT,
                    failure.error,
                    flux_id=failure.flux_id,
                    scope=scope,
                )
        return adjustment.logs

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def total_income_and_costs_by_month(self) -> tuple[dict[str, Decimal], dict[str, Decimal]]:
        """Invoiced income and raw user costs summed per month."""
        return total_income_and_costs_by_month(
            invoice_rows=self._invoice_rows, user_costs=self._user_costs,
        )

    def monthly_income_by_flux_logs(
        self,
        dimension: CategoryDimension,
        allowed_ids: Collection[CategoryId] | None,
        worklogs: Sequence[WorkLog] | None = None,
    ) -> CategoryAllocation:
        """Billed value of non fixed-sum fluxes prorated over users or activities."""
        return monthly_income_by_category(
            worklogs=self._filtered_logs if worklogs is None else worklogs,
            fluxes=self._fluxes,
            dimension=dimension,
            allowed_ids=allowed_ids,
        )

    def income_by_billed_value(
        self,
        dimension: CategoryDimension,
        allowed_ids: Collection[CategoryId] | None,
    ) -> CategoryAllocation:
        """Invoice row values grouped by project or owner."""
        return monthly_income_by_invoice_category(
            invoice_rows=self._invoice_rows, dimension=dimension, allowed_ids=allowed_ids,
        )

    def category_costs_by_user_logs(self, dimension: CategoryDimension) -> MonthlyValues:
        """User costs spread over projects, owners or activities by logged value."""
        return category_costs_by_user_logs(
            worklogs=self.all_projects_worklogs,
            dimension=dimension,
            user_costs=self._user_costs,
        )

    def users_fixed_sum_projects_value(
        self,
        user_income: UserIncome | None = None,
        worklogs: Sequence[WorkLog] | None = None,
        *,
        all_projects: bool = False,
    ) -> CategoryAllocation:
        """
        Add fixed-sum project income of projects with logs to ``user_income``.

        Returns a new allocation; ``user_income`` is left untouched.  With
        ``all_projects`` the project filter is ignored.
        """
        if worklogs is None:
            worklogs = self.all_projects_worklogs if all_projects else self._filtered_logs
        fixed_sum = allocate_fixed_sum_income(
            worklogs=worklogs,
            invoice_rows=self._invoice_rows,
            projects=self._repository.get_fixed_sum_projects_with_logs(
                self._billed_project_ids(restrict=not all_projects),
            ),
        )
        return _as_allocation(user_income).merged_with(fixed_sum)

    def fixed_sum_no_logs_value(
        self,
        user_income: UserIncome | None = None,
        *,
        all_projects: bool = False,
    ) -> CategoryAllocation:
        """Add fixed-sum income of projects without logs to ``user_income``."""
        rosters = self._repository.get_fixed_sum_projects_without_logs(
            None if all_projects else self._project_filter,
        )
        no_logs = allocate_no_logs_income(
            invoice_rows=self._invoice_rows, rosters=rosters, calculator=self._calculator,
        )
        return _as_allocation(user_income).merged_with(no_logs)

    def all_projects_user_income(self) -> CategoryAllocation:
        """User income across every project, the denominator of cost attribution."""
        all_logs = self.all_projects_worklogs
        income = self.monthly_income_by_flux_logs(
            CategoryDimension.USER, self._user_filter, worklogs=all_logs,
        )
        income = self.users_fixed_sum_projects_value(income, all_logs, all_projects=True)
        return self.fixed_sum_no_logs_value(income, all_projects=True)

    def user_costs(self, user_income: UserIncome) -> MonthlyValues:
        """
        Monthly user costs attributed to the filtered projects.

        Args:
            user_income: Filtered user income (logged, fixed-sum with and
                without logs combined).
        """
        filtered = _as_allocation(user_income)
        all_projects = self.all_projects_user_income()
        costs = attributed_costs(
            user_costs=self._user_costs,
            filtered_income=filtered.by_month,
            all_projects_income=all_projects.by_month,
        )
        logger.info("user_costs_attributed", extra={
            "month_count": len(costs),
            "user_count": len({uid for month in costs.values() for uid in month}),
        })
        return costs

    def _billed_project_ids(self, *, restrict: bool) -> list[CategoryId]:
        """Invoiced project ids, limited to the project filter when ``restrict``."""
        billed = dict.fromkeys(
            row.project_id for row in self._invoice_rows if row.project_id is not None
        )
        project_filter = self._project_filter
        if restrict and project_filter is not None:
            allowed = set(project_filter)
            return [pid for pid in billed if pid in allowed]
        return list(billed)
