"""
Results -- Frozen result DTOs returned by the allocation engines.

Responsibility:
    Defines ``CategoryAllocation`` (per-month category amounts plus the ids
    that received a contribution), ``FluxAdjustmentOutcome`` (per-flux
    success/failure of the subscription overage split) and
    ``OverageAdjustment`` (the aggregate adjusted worklog view).

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
    Produced by productivity_engines, consumed by productivity_services.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from productivity_kernel.domain.models import CategoryId, WorkLog

# month -> category id -> amount
MonthlyValues = dict[str, dict[CategoryId, Decimal]]


def add_monthly_value(
    target: MonthlyValues,
    month: str,
    category_id: CategoryId,
    amount: Decimal,
) -> None:
    """Accumulate ``amount`` into ``target[month][category_id]``."""
    month_values = target.setdefault(month, {})
    month_values[category_id] = month_values.get(category_id, Decimal("0")) + amount


def merge_monthly_values(*sources: Mapping[str, Mapping[CategoryId, Decimal]]) -> MonthlyValues:
    """Sum several monthly mappings into a new one; inputs are left untouched."""
    merged: MonthlyValues = {}
    for source in sources:
        for month, month_values in source.items():
            merged.setdefault(month, {})
            for category_id, amount in month_values.items():
                add_monthly_value(merged, month, category_id, amount)
    return merged


def ordered_unique(ids: Iterable[CategoryId]) -> tuple[CategoryId, ...]:
    """Deduplicate ids keeping first-seen order."""
    return tuple(dict.fromkeys(ids))


@dataclass(frozen=True)
class CategoryAllocation:
    """
    Per-month amounts split across one category dimension.

    Contract:
        ``category_ids`` lists, in first-seen order and without duplicates,
        every id that received a contribution.
    """

    by_month: MonthlyValues = field(default_factory=dict)
    category_ids: tuple[CategoryId, ...] = ()

    def total(self) -> Decimal:
        """Sum of every amount across months and categories."""
        return sum(
            (amount for month_values in self.by_month.values() for amount in month_values.values()),
            Decimal("0"),
        )

    def merged_with(self, other: CategoryAllocation) -> CategoryAllocation:
        return CategoryAllocation(
            by_month=merge_monthly_values(self.by_month, other.by_month),
            category_ids=ordered_unique((*self.category_ids, *other.category_ids)),
        )


@dataclass(frozen=True)
class FluxAdjustmentOutcome:
    """
    Result of the subscription overage split for one flux.

    Contract:
        ``success=False`` requires ``error``; ``logs`` then holds the
        flux's unmodified base logs.
    """

    flux_id: CategoryId
    logs: tuple[WorkLog, ...]
    success: bool
    error: Exception | None = None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None


@dataclass(frozen=True)
class OverageAdjustment:
    """
    Adjusted worklog view for a batch of fluxes.

    Contract:
        ``logs`` preserves the input order of the worklogs; logs of fluxes
        that were not adjusted (or whose adjustment failed) are the
        original records.
    """

    logs: tuple[WorkLog, ...]
    outcomes: tuple[FluxAdjustmentOutcome, ...] = ()

    @property
    def failures(self) -> tuple[FluxAdjustmentOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.success)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures
