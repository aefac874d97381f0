"""
Pure domain layer.

Immutable records and value objects with NO dependencies on:
- Repositories or persistence
- Currency exchange services
- Error reporting
- I/O
"""

from productivity_kernel.domain.currency import MINOR_UNITS, canonical_code
from productivity_kernel.domain.models import (
    MINUTES_PER_HOUR,
    UNASSIGNED_CATEGORY_ID,
    BilledFlux,
    BillingType,
    CategoryDimension,
    CategoryId,
    CostRecord,
    FixedSumProjectInfo,
    InvoiceRow,
    InvoiceRowType,
    PaymentStructure,
    ProductivityFilters,
    UserRateInfo,
    WorkLog,
    normalize_category_id,
)
from productivity_kernel.domain.results import (
    CategoryAllocation,
    FluxAdjustmentOutcome,
    MonthlyValues,
    OverageAdjustment,
    add_monthly_value,
    merge_monthly_values,
)
from productivity_kernel.domain.values import Currency, ExchangeRate, Money

__all__ = [
    "MINOR_UNITS",
    "MINUTES_PER_HOUR",
    "UNASSIGNED_CATEGORY_ID",
    "BilledFlux",
    "BillingType",
    "CategoryAllocation",
    "CategoryDimension",
    "CategoryId",
    "CostRecord",
    "Currency",
    "ExchangeRate",
    "FixedSumProjectInfo",
    "FluxAdjustmentOutcome",
    "InvoiceRow",
    "InvoiceRowType",
    "Money",
    "MonthlyValues",
    "OverageAdjustment",
    "PaymentStructure",
    "ProductivityFilters",
    "UserRateInfo",
    "WorkLog",
    "add_monthly_value",
    "canonical_code",
    "merge_monthly_values",
    "normalize_category_id",
]
