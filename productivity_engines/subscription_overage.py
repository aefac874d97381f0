"""
productivity_engines.subscription_overage -- Included-hours vs overage revaluation of subscription logs.

Responsibility:
    For MONTHLY_SUBSCRIPTION fluxes, revalue each billable worklog so that
    minutes inside the included-hours allotment are priced at the
    subscription's effective hourly rate and minutes beyond it at the
    user's own rate.  A log straddling the allotment boundary is split
    across both rates.

Architecture position:
    Engines -- pure calculation layer.  Uses LogValueCalculator for
    valuation; never touches the repository or the reporter.

Invariants enforced:
    - Inputs are never mutated; adjusted logs are new records built with
      ``dataclasses.replace`` and returned in the original order.
    - The included-rate ratio is 1 when the flux has no allotment and 0
      when nothing inside the allotment carries value.
    - Only the first log past the allotment is split; later logs keep
      their unscaled rate.

Failure modes:
    - ``apply_overage_split`` propagates collaborator failures.
    - ``adjust_subscription_logs`` never raises for a single flux: the
      failure is captured in a FluxAdjustmentOutcome and that flux keeps
      its base logs (FluxNotFoundError for fluxes missing from the map).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from decimal import Decimal

from productivity_engines.log_value import LogValueCalculator
from productivity_engines.tracer import traced_engine
from productivity_kernel.domain.models import (
    MINUTES_PER_HOUR,
    BilledFlux,
    CategoryId,
    PaymentStructure,
    WorkLog,
)
from productivity_kernel.domain.results import FluxAdjustmentOutcome, OverageAdjustment
from productivity_kernel.exceptions import FluxNotFoundError
from productivity_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.subscription_overage")


def included_rate_ratio(
    flux_logs: Sequence[WorkLog],
    flux: BilledFlux,
    calculator: LogValueCalculator,
) -> Decimal:
    """
    Multiplier that turns a user's own rate into the subscription's
    effective rate for included minutes.

    Walks the logs in order, valuing them at their own rate until the
    allotment is used up.  The log that straddles the boundary is valued
    only for the minutes still inside the allotment.
    """
    if flux.project_hours == 0:
        return Decimal("1")

    included_hourly_rate = flux.included_value / flux.project_hours
    allotment = flux.included_minutes

    total_minutes = Decimal("0")
    total_value = Decimal("0")
    for log in flux_logs:
        if total_minutes + log.billed_time <= allotment:
            total_minutes += log.billed_time
            total_value += calculator.amount(log)
            continue

        remaining = allotment - total_minutes
        if remaining > 0:
            truncated = replace(log, billed_time=remaining)
            total_minutes += remaining
            total_value += calculator.amount(truncated)
        break

    if total_minutes == 0 or total_value == 0:
        return Decimal("0")
    return included_hourly_rate * (total_minutes / MINUTES_PER_HOUR) / total_value


def apply_overage_split(
    flux_logs: Sequence[WorkLog],
    flux: BilledFlux,
    calculator: LogValueCalculator,
) -> tuple[WorkLog, ...]:
    """
    Revalue the logs of one subscription flux.

    Preconditions:
        ``flux_logs`` all belong to ``flux`` and are in logging order.

    Postconditions:
        Returns one log per input log, same order.  Non-billable logs and
        logs of other payment structures come back unchanged.
    """
    if flux.payment_structure != PaymentStructure.MONTHLY_SUBSCRIPTION:
        return tuple(flux_logs)

    ratio = included_rate_ratio(flux_logs, flux, calculator)
    allotment = flux.included_minutes

    adjusted: list[WorkLog] = []
    validated_minutes = Decimal("0")
    allotment_exceeded = False

    for log in flux_logs:
        if not log.is_billable:
            adjusted.append(log)
            continue

        validated_minutes += log.validated_minutes
        if validated_minutes <= allotment:
            scaled = replace(log, rate=log.rate * ratio)
            adjusted.append(replace(scaled, value=calculator.amount(scaled)))
            continue

        if allotment_exceeded or log.custom_value is not None:
            allotment_exceeded = True
            adjusted.append(replace(log, value=calculator.amount(log)))
            continue

        # First log past the allotment: price each side of the boundary separately
        allotment_exceeded = True
        over_minutes = validated_minutes - allotment
        included_minutes = log.billed_time - over_minutes
        included_part = log.rate * ratio * included_minutes / MINUTES_PER_HOUR
        overage_part = log.rate * over_minutes / MINUTES_PER_HOUR
        split_value = calculator.convert(
            (included_part + overage_part) * log.exchange_rate, log.currency
        )
        adjusted.append(replace(log, value=split_value.amount))

        logger.debug("overage_boundary_split", extra={
            "flux_id": str(flux.flux_id),
            "log_id": str(log.log_id),
            "included_minutes": str(included_minutes),
            "over_minutes": str(over_minutes),
            "ratio": str(ratio),
        })

    return tuple(adjusted)


@traced_engine("subscription_overage", "1.0", fingerprint_fields=("fluxes",))
def adjust_subscription_logs(
    *,
    worklogs: Sequence[WorkLog],
    fluxes: Mapping[CategoryId, BilledFlux],
    calculator: LogValueCalculator,
) -> OverageAdjustment:
    """
    Derive the adjusted worklog view for every subscription flux.

    Each flux is processed independently.  A failure is recorded as an
    outcome and leaves that flux's logs untouched; the remaining fluxes
    are still adjusted.
    """
    positions_by_flux: dict[CategoryId, list[int]] = {}
    for index, log in enumerate(worklogs):
        positions_by_flux.setdefault(log.flux_id, []).append(index)

    logger.info("subscription_adjustment_started", extra={
        "flux_count": len(positions_by_flux),
        "log_count": len(worklogs),
    })

    result = list(worklogs)
    outcomes: list[FluxAdjustmentOutcome] = []

    for flux_id, positions in positions_by_flux.items():
        flux_logs = tuple(worklogs[i] for i in positions)
        flux = fluxes.get(flux_id)

        if flux is None:
            error = FluxNotFoundError(flux_id)
            logger.error("subscription_adjustment_flux_missing", extra={
                "flux_id": str(flux_id),
                "error_code": error.code,
            })
            outcomes.append(FluxAdjustmentOutcome(
                flux_id=flux_id, logs=flux_logs, success=False, error=error,
            ))
            continue

        if flux.payment_structure != PaymentStructure.MONTHLY_SUBSCRIPTION:
            continue

        with LogContext.bind(flux_id=str(flux_id)):
            try:
                adjusted = apply_overage_split(flux_logs, flux, calculator)
            except Exception as exc:
                logger.error("subscription_adjustment_failed", extra={
                    "flux_id": str(flux_id),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                })
                outcomes.append(FluxAdjustmentOutcome(
                    flux_id=flux_id, logs=flux_logs, success=False, error=exc,
                ))
                continue

        for position, log in zip(positions, adjusted):
            result[position] = log
        outcomes.append(FluxAdjustmentOutcome(flux_id=flux_id, logs=adjusted, success=True))

    adjustment = OverageAdjustment(logs=tuple(result), outcomes=tuple(outcomes))
    logger.info("subscription_adjustment_completed", extra={
        "adjusted_fluxes": sum(1 for o in outcomes if o.success),
        "failed_fluxes": len(adjustment.failures),
    })
    return adjustment
