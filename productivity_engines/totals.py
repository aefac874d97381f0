"""Monthly totals of invoiced income and user costs."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from productivity_engines.tracer import traced_engine
from productivity_kernel.domain.models import CategoryId, InvoiceRow


@traced_engine("monthly_totals", "1.0")
def total_income_and_costs_by_month(
    *,
    invoice_rows: Sequence[InvoiceRow],
    user_costs: Mapping[str, Mapping[CategoryId, Decimal]],
) -> tuple[dict[str, Decimal], dict[str, Decimal]]:
    """Return ``(income_per_month, costs_per_month)``."""
    income: dict[str, Decimal] = {}
    for row in invoice_rows:
        income[row.invoice_month] = income.get(row.invoice_month, Decimal("0")) + row.billed_value

    costs = {
        month: sum(month_costs.values(), Decimal("0"))
        for month, month_costs in user_costs.items()
    }
    return income, costs
