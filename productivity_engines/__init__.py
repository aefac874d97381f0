"""
Module: productivity_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    allocation engines.  This is the import surface used by
    productivity_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import productivity_kernel (domain, exceptions, logging) and
    sibling engine modules.  MUST NOT import productivity_services.

Invariants enforced:
    - Decimal-only arithmetic; floats are rejected by Money.
    - Determinism: identical inputs always produce identical outputs.
    - Inputs are never mutated; engines return new records and mappings.

Audit relevance:
    Every batch engine function is wrapped by ``@traced_engine`` (see
    ``productivity_engines.tracer``), emitting PRODUCTIVITY_ENGINE_TRACE
    records with engine name, version, input fingerprint and duration.

Usage:
    from productivity_engines import LogValueCalculator, adjust_subscription_logs
    from productivity_engines import monthly_income_by_category
"""

from productivity_engines.category_costs import category_costs_by_user_logs
from productivity_engines.category_income import (
    monthly_income_by_category,
    monthly_income_by_invoice_category,
)
from productivity_engines.fixed_sum import (
    allocate_fixed_sum_income,
    allocate_no_logs_income,
    logged_time_ratios,
    user_income_ratios,
)
from productivity_engines.log_value import LogValueCalculator
from productivity_engines.subscription_overage import (
    adjust_subscription_logs,
    apply_overage_split,
    included_rate_ratio,
)
from productivity_engines.totals import total_income_and_costs_by_month
from productivity_engines.tracer import compute_input_fingerprint, traced_engine
from productivity_engines.user_costs import attributed_costs, cost_ratio, monthly_user_costs

__all__ = [
    "LogValueCalculator",
    "adjust_subscription_logs",
    "allocate_fixed_sum_income",
    "allocate_no_logs_income",
    "apply_overage_split",
    "attributed_costs",
    "category_costs_by_user_logs",
    "compute_input_fingerprint",
    "cost_ratio",
    "included_rate_ratio",
    "logged_time_ratios",
    "monthly_income_by_category",
    "monthly_income_by_invoice_category",
    "monthly_user_costs",
    "total_income_and_costs_by_month",
    "traced_engine",
    "user_income_ratios",
]
