"""
productivity_engines.category_costs -- User costs split across a category by logged value.

Each user's monthly cost is divided between the categories (project, owner
or activity) they logged on that month, proportionally to logged value.
Logs with no id on the dimension land in ``UNASSIGNED_CATEGORY_ID``.  A
user whose logs carry no value that month contributes nothing.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from productivity_engines.tracer import traced_engine
from productivity_kernel.domain.models import CategoryDimension, CategoryId, WorkLog
from productivity_kernel.domain.results import MonthlyValues, add_monthly_value
from productivity_kernel.logging_config import get_logger

logger = get_logger("engines.category_costs")


@traced_engine("category_costs", "1.0", fingerprint_fields=("dimension",))
def category_costs_by_user_logs(
    *,
    worklogs: Sequence[WorkLog],
    dimension: CategoryDimension,
    user_costs: Mapping[str, Mapping[CategoryId, Decimal]],
) -> MonthlyValues:
    """month -> category id -> share of user costs, weighted by logged value."""
    # month -> user -> category -> logged value
    logged: dict[str, dict[CategoryId, dict[CategoryId, Decimal]]] = {}
    for log in worklogs:
        categories = logged.setdefault(log.invoice_month, {}).setdefault(log.user_id, {})
        category_id = dimension.worklog_key(log)
        categories[category_id] = categories.get(category_id, Decimal("0")) + log.value

    costs: MonthlyValues = {}
    for month, users in logged.items():
        month_costs = user_costs.get(month, {})
        for user_id, categories in users.items():
            total = sum(categories.values(), Decimal("0"))
            user_cost = month_costs.get(user_id, Decimal("0"))
            for category_id, value in categories.items():
                percentage = value / total if total else Decimal("0")
                add_monthly_value(costs, month, category_id, user_cost * percentage)

    logger.info("category_costs_completed", extra={
        "dimension": dimension.value,
        "month_count": len(costs),
    })
    return costs
