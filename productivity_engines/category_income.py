"""
productivity_engines.category_income -- Monthly income split across a category dimension.

Responsibility:
    Two allocators that turn billed amounts into per-month, per-category
    income:

    * ``monthly_income_by_category`` -- prorates each flux's billed value
      across users or activities by their share of the flux's logged
      value (the CategoryIncomeAllocator).
    * ``monthly_income_by_invoice_category`` -- aggregates raw invoice row
      values for dimensions billed wholesale, projects and owners (the
      BilledValueAllocator).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Conservation: for non fixed-sum fluxes whose categories are all
      allowed, the allocated amounts of a flux sum to its billed value.
    - A flux's percentages lie in [0, 1]; a zero logged total yields 0.
    - FIXED_SUM fluxes are excluded (see productivity_engines.fixed_sum).
    - MONTHLY_SUBSCRIPTION fluxes never divide by less than their billed
      value; the uncovered remainder stays unallocated.

Failure modes:
    - FluxNotFoundError when a worklog references a flux missing from
      ``fluxes``.
    - UnsupportedDimensionError when invoice allocation is asked for a
      dimension with no invoice row field.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from decimal import Decimal

from productivity_engines.tracer import traced_engine
from productivity_kernel.domain.models import (
    BilledFlux,
    CategoryDimension,
    CategoryId,
    InvoiceRow,
    PaymentStructure,
    WorkLog,
)
from productivity_kernel.domain.results import (
    CategoryAllocation,
    MonthlyValues,
    add_monthly_value,
    ordered_unique,
)
from productivity_kernel.exceptions import FluxNotFoundError, UnsupportedDimensionError
from productivity_kernel.logging_config import get_logger

logger = get_logger("engines.category_income")


def _logged_values_by_flux(
    worklogs: Sequence[WorkLog],
    dimension: CategoryDimension,
) -> dict[CategoryId, dict[CategoryId, Decimal]]:
    """flux id -> category id -> summed logged value, in first-seen order."""
    grouped: dict[CategoryId, dict[CategoryId, Decimal]] = {}
    for log in worklogs:
        category_values = grouped.setdefault(log.flux_id, {})
        category_id = dimension.worklog_key(log)
        category_values[category_id] = category_values.get(category_id, Decimal("0")) + log.value
    return grouped


def _prorating_total(flux: BilledFlux, logged_total: Decimal) -> Decimal:
    """Denominator used to turn logged value into a share of the billed value."""
    if (
        flux.payment_structure == PaymentStructure.MONTHLY_SUBSCRIPTION
        and logged_total < flux.billed_value
    ):
        # Subscriptions are billed at least their monthly value
        return flux.billed_value
    return logged_total


@traced_engine("category_income", "1.0", fingerprint_fields=("dimension", "allowed_ids"))
def monthly_income_by_category(
    *,
    worklogs: Sequence[WorkLog],
    fluxes: Mapping[CategoryId, BilledFlux],
    dimension: CategoryDimension,
    allowed_ids: Collection[CategoryId] | None,
) -> CategoryAllocation:
    """
    Prorate each flux's billed value across a category by logged value.

    Args:
        worklogs: Adjusted worklog view (subscription split already applied).
        fluxes: Billed flux snapshot keyed by flux id.
        dimension: Category to group by (usually USER or ACTIVITY).
        allowed_ids: Ids to keep; ``None`` keeps every id.  Unassigned logs
            are kept only when ``UNASSIGNED_CATEGORY_ID`` is allowed.

    Returns:
        CategoryAllocation keyed by the flux's invoice month.
    """
    allowed = None if allowed_ids is None else set(allowed_ids)
    grouped = _logged_values_by_flux(worklogs, dimension)

    by_month: MonthlyValues = {}
    seen: list[CategoryId] = []
    skipped_fixed_sum = 0

    for flux_id, category_values in grouped.items():
        flux = fluxes.get(flux_id)
        if flux is None:
            logger.error("category_income_flux_missing", extra={"flux_id": str(flux_id)})
            raise FluxNotFoundError(flux_id)
        if flux.payment_structure == PaymentStructure.FIXED_SUM:
            skipped_fixed_sum += 1
            continue

        logged_total = sum(category_values.values(), Decimal("0"))
        total = _prorating_total(flux, logged_total)
        by_month.setdefault(flux.invoice_month, {})

        for category_id, logged_value in category_values.items():
            if allowed is not None and category_id not in allowed:
                continue
            seen.append(category_id)

            percentage = logged_value / total if total else Decimal("0")
            add_monthly_value(by_month, flux.invoice_month, category_id, flux.billed_value * percentage)

    logger.info("category_income_completed", extra={
        "dimension": dimension.value,
        "flux_count": len(grouped),
        "skipped_fixed_sum": skipped_fixed_sum,
        "month_count": len(by_month),
    })
    return CategoryAllocation(by_month=by_month, category_ids=ordered_unique(seen))


@traced_engine("invoice_category_income", "1.0", fingerprint_fields=("dimension", "allowed_ids"))
def monthly_income_by_invoice_category(
    *,
    invoice_rows: Sequence[InvoiceRow],
    dimension: CategoryDimension,
    allowed_ids: Collection[CategoryId] | None,
) -> CategoryAllocation:
    """Aggregate invoice row values by month for a wholesale-billed dimension."""
    if not dimension.has_invoice_row_field:
        raise UnsupportedDimensionError(dimension.value, "invoice row allocation")

    allowed = None if allowed_ids is None else set(allowed_ids)
    by_month: MonthlyValues = {}
    seen: list[CategoryId] = []

    for row in invoice_rows:
        category_id = dimension.invoice_row_key(row)
        if category_id is None:
            continue
        if allowed is not None and category_id not in allowed:
            continue
        seen.append(category_id)
        add_monthly_value(by_month, row.invoice_month, category_id, row.billed_value)

    return CategoryAllocation(by_month=by_month, category_ids=ordered_unique(seen))
