"""
productivity_engines.fixed_sum -- User income from fixed-sum project invoices.

Responsibility:
    Fixed-sum projects are invoiced a flat amount that does not follow
    logged time, so they are excluded from logged-value proration and
    attributed to users here instead:

    * ``allocate_fixed_sum_income`` -- projects with logged work.  The
      invoiced amount is first scaled by the project's logged-time
      coverage, then split across users by their share of logged value.
    * ``allocate_no_logs_income`` -- projects nobody logged on.  The
      invoiced FIXED_SUM rows are split across the project's assigned
      users by hourly rate.

Architecture position:
    Engines -- pure calculation layer.  The no-logs allocator uses
    LogValueCalculator only to normalize rates into the reporting currency.

Invariants enforced:
    - Logged-time ratio is capped at 1 and is exactly 1 when the project
      has no hours budget, no logged minutes, or includes extra hours with
      no logs-relative value.
    - User ratios of a project sum to 1: proportional to logged value (or
      to rate), with an equal split when the weights sum to zero.
    - Projects with an empty roster contribute nothing.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from productivity_engines.log_value import LogValueCalculator
from productivity_engines.tracer import traced_engine
from productivity_kernel.domain.models import (
    MINUTES_PER_HOUR,
    CategoryId,
    FixedSumProjectInfo,
    InvoiceRow,
    InvoiceRowType,
    UserRateInfo,
    WorkLog,
)
from productivity_kernel.domain.results import (
    CategoryAllocation,
    MonthlyValues,
    add_monthly_value,
    ordered_unique,
)
from productivity_kernel.logging_config import get_logger

logger = get_logger("engines.fixed_sum")

_ONE = Decimal("1")


def _equal_share(count: int) -> Decimal:
    return _ONE / Decimal(count)


# ---------------------------------------------------------------------------
# Fixed-sum projects with logs
# ---------------------------------------------------------------------------


def logged_time_ratios(
    worklogs: Sequence[WorkLog],
    projects: Mapping[CategoryId, FixedSumProjectInfo],
) -> dict[CategoryId, Decimal]:
    """Share of each project's hours budget covered by logged time, capped at 1."""
    logged_minutes: dict[CategoryId, int] = {}
    for log in worklogs:
        if log.project_id not in projects:
            continue
        logged_minutes[log.project_id] = logged_minutes.get(log.project_id, 0) + log.billed_time

    ratios: dict[CategoryId, Decimal] = {}
    for project_id, minutes in logged_minutes.items():
        info = projects[project_id]
        if (
            info.project_hours == 0
            or minutes == 0
            or (info.include_extra_hours and info.logs_relative_value == 0)
        ):
            ratios[project_id] = _ONE
            continue
        ratio = Decimal(minutes) / MINUTES_PER_HOUR / info.project_hours
        ratios[project_id] = min(ratio, _ONE)
    return ratios


def _log_weight(log: WorkLog) -> Decimal:
    """Logged value used to weight users on a fixed-sum project."""
    if log.included_in_value:
        return log.value
    return log.rate * log.billed_time / MINUTES_PER_HOUR


def user_income_ratios(
    worklogs: Sequence[WorkLog],
    projects: Mapping[CategoryId, FixedSumProjectInfo],
) -> dict[CategoryId, dict[CategoryId, Decimal]]:
    """project id -> user id -> share of the project's logged value."""
    user_values: dict[CategoryId, dict[CategoryId, Decimal]] = {}
    project_totals: dict[CategoryId, Decimal] = {}
    for log in worklogs:
        if log.project_id not in projects:
            continue
        weight = _log_weight(log)
        users = user_values.setdefault(log.project_id, {})
        users[log.user_id] = users.get(log.user_id, Decimal("0")) + weight
        project_totals[log.project_id] = project_totals.get(log.project_id, Decimal("0")) + weight

    ratios: dict[CategoryId, dict[CategoryId, Decimal]] = {}
    for project_id, users in user_values.items():
        total = project_totals[project_id]
        if total != 0:
            ratios[project_id] = {user_id: value / total for user_id, value in users.items()}
        else:
            share = _equal_share(len(users))
            ratios[project_id] = {user_id: share for user_id in users}
    return ratios


@traced_engine("fixed_sum_income", "1.0")
def allocate_fixed_sum_income(
    *,
    worklogs: Sequence[WorkLog],
    invoice_rows: Sequence[InvoiceRow],
    projects: Mapping[CategoryId, FixedSumProjectInfo],
) -> CategoryAllocation:
    """
    Attribute fixed-sum invoices of projects with logs to the users who logged.

    Args:
        worklogs: Adjusted worklog view.
        invoice_rows: Every invoice row of the period.
        projects: Fixed-sum projects that have logged work, keyed by id.

    Returns:
        CategoryAllocation keyed by invoice month and user id.
    """
    time_ratios = logged_time_ratios(worklogs, projects)

    project_income: MonthlyValues = {}
    for row in invoice_rows:
        if row.project_id is None or row.project_id not in projects:
            continue
        adjusted_value = row.billed_value * time_ratios.get(row.project_id, _ONE)
        add_monthly_value(project_income, row.invoice_month, row.project_id, adjusted_value)

    user_ratios = user_income_ratios(worklogs, projects)

    by_month: MonthlyValues = {}
    seen: list[CategoryId] = []
    for month, month_projects in project_income.items():
        for project_id, income in month_projects.items():
            ratios = user_ratios.get(project_id)
            if not ratios:
                continue
            for user_id, ratio in ratios.items():
                add_monthly_value(by_month, month, user_id, ratio * income)
                seen.append(user_id)

    logger.info("fixed_sum_income_completed", extra={
        "project_count": len(projects),
        "projects_with_ratios": len(user_ratios),
        "month_count": len(by_month),
    })
    return CategoryAllocation(by_month=by_month, category_ids=ordered_unique(seen))


# ---------------------------------------------------------------------------
# Fixed-sum projects without logs
# ---------------------------------------------------------------------------


def _normalized_rates(
    roster: Sequence[UserRateInfo],
    calculator: LogValueCalculator,
) -> list[tuple[CategoryId, Decimal]]:
    return [(info.user_id, info.rate * calculator.multiplier(info.currency)) for info in roster]


@traced_engine("fixed_sum_no_logs_income", "1.0")
def allocate_no_logs_income(
    *,
    invoice_rows: Sequence[InvoiceRow],
    rosters: Mapping[CategoryId, Sequence[UserRateInfo]],
    calculator: LogValueCalculator,
) -> CategoryAllocation:
    """
    Attribute FIXED_SUM invoice rows of projects without logs by hourly rate.

    Each user's share is ``rate / total_rate`` with rates normalized into
    the reporting currency; a zero total splits the value equally.
    """
    project_values: MonthlyValues = {}
    for row in invoice_rows:
        if row.project_id is None or row.row_type != InvoiceRowType.FIXED_SUM:
            continue
        if not rosters.get(row.project_id):
            if row.project_id in rosters:
                logger.warning("fixed_sum_no_logs_empty_roster", extra={
                    "project_id": str(row.project_id),
                })
            continue
        add_monthly_value(project_values, row.invoice_month, row.project_id, row.billed_value)

    rates_by_project: dict[CategoryId, list[tuple[CategoryId, Decimal]]] = {}
    by_month: MonthlyValues = {}
    seen: list[CategoryId] = []

    for month, month_projects in project_values.items():
        for project_id, billed_value in month_projects.items():
            if project_id not in rates_by_project:
                rates_by_project[project_id] = _normalized_rates(rosters[project_id], calculator)
            rates = rates_by_project[project_id]
            total_rate = sum((rate for _, rate in rates), Decimal("0"))

            for user_id, rate in rates:
                ratio = rate / total_rate if total_rate > 0 else _equal_share(len(rates))
                add_monthly_value(by_month, month, user_id, ratio * billed_value)
                seen.append(user_id)

    logger.info("fixed_sum_no_logs_income_completed", extra={
        "project_count": len(rates_by_project),
        "month_count": len(by_month),
    })
    return CategoryAllocation(by_month=by_month, category_ids=ordered_unique(seen))
