"""
productivity_engines.user_costs -- Monthly user costs and their attribution to filtered income.

Responsibility:
    * ``monthly_user_costs`` aggregates raw cost records into
      month -> user -> cost, spreading team costs equally across the
      team's current members.
    * ``attributed_costs`` scales each user's monthly cost by the share of
      their income that falls inside the active project filter.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - A team with no members (or unknown to the roster) contributes nothing.
    - The attribution ratio lies in [0, 1]; a user with no income across
      all projects carries their full cost.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from productivity_engines.tracer import traced_engine
from productivity_kernel.domain.models import CategoryId, CostRecord
from productivity_kernel.domain.results import MonthlyValues, add_monthly_value
from productivity_kernel.logging_config import get_logger

logger = get_logger("engines.user_costs")

_ZERO = Decimal("0")
_ONE = Decimal("1")


@traced_engine("user_costs", "1.0")
def monthly_user_costs(
    *,
    cost_records: Sequence[CostRecord],
    teams: Mapping[CategoryId, Sequence[CategoryId]],
) -> MonthlyValues:
    """
    Group cost records by month and user.

    Args:
        cost_records: User and team cost records of the period.
        teams: team id -> member user ids.

    Returns:
        month -> user id -> summed cost.
    """
    costs: MonthlyValues = {}
    skipped_teams: set[str] = set()

    for record in cost_records:
        if not record.is_team_cost:
            add_monthly_value(costs, record.cost_month, record.user_id, record.value)
            continue

        members = teams.get(record.team_id) or ()
        if not members:
            skipped_teams.add(str(record.team_id))
            continue
        share = record.value / Decimal(len(members))
        for user_id in members:
            add_monthly_value(costs, record.cost_month, user_id, share)

    if skipped_teams:
        logger.warning("team_costs_without_members", extra={
            "team_ids": sorted(skipped_teams),
        })

    logger.info("user_costs_completed", extra={
        "record_count": len(cost_records),
        "month_count": len(costs),
    })
    return costs


def cost_ratio(filtered_income: Decimal | None, all_projects_income: Decimal | None) -> Decimal:
    """Share of a user's cost attributed to the filtered projects."""
    if not all_projects_income:
        # No income anywhere: the cost is unrelated to any project
        return _ONE
    if filtered_income is None or filtered_income <= 0:
        return _ZERO
    # Negative income (credit notes) must not flip the sign of a cost
    return max(_ZERO, min(filtered_income / all_projects_income, _ONE))


@traced_engine("cost_attribution", "1.0")
def attributed_costs(
    *,
    user_costs: Mapping[str, Mapping[CategoryId, Decimal]],
    filtered_income: Mapping[str, Mapping[CategoryId, Decimal]],
    all_projects_income: Mapping[str, Mapping[CategoryId, Decimal]],
) -> MonthlyValues:
    """Scale every user's monthly cost by ``cost_ratio``."""
    attributed: MonthlyValues = {}
    for month, month_costs in user_costs.items():
        month_filtered = filtered_income.get(month, {})
        month_all = all_projects_income.get(month, {})
        attributed[month] = {
            user_id: cost * cost_ratio(month_filtered.get(user_id), month_all.get(user_id))
            for user_id, cost in month_costs.items()
        }
    return attributed
