"""
Tests for the subscription overage split.

Covers:
- Included-rate ratio, including the straddling log
- Revaluation inside and beyond the allotment
- Boundary split of the first log past the allotment
- Per-flux failure isolation and ordering of the adjusted view
"""

from decimal import Decimal

import pytest

from productivity_engines.log_value import LogValueCalculator
from productivity_engines.subscription_overage import (
    adjust_subscription_logs,
    apply_overage_split,
    included_rate_ratio,
)
from productivity_kernel.domain.models import BillingType, PaymentStructure
from productivity_kernel.exceptions import ExchangeRateNotFoundError, FluxNotFoundError


@pytest.fixture
def calculator(exchanger):
    return LogValueCalculator(exchanger, "EUR")


@pytest.fixture
def subscription(make_flux):
    # 10 included hours for 1000 -> 100 per included hour
    return make_flux(
        payment_structure=PaymentStructure.MONTHLY_SUBSCRIPTION,
        billed_value=Decimal("1000"),
        project_hours=Decimal("10"),
    )


class TestIncludedRateRatio:
    """Multiplier from user rate to subscription rate."""

    def test_no_allotment_means_unit_ratio(self, make_flux, make_log, calculator):
        flux = make_flux(payment_structure=PaymentStructure.MONTHLY_SUBSCRIPTION)

        assert included_rate_ratio([make_log()], flux, calculator) == Decimal("1")

    def test_ratio_from_logs_inside_allotment(self, subscription, make_log, calculator):
        logs = [make_log(billed_time=300), make_log(billed_time=300), make_log(billed_time=120)]

        assert included_rate_ratio(logs, subscription, calculator) == Decimal("2")

    def test_straddling_log_truncated(self, subscription, make_log, calculator):
        logs = [make_log(billed_time=480), make_log(billed_time=240)]

        # 480 + 120 minutes valued at 50/h = 500 against 1000 included
        assert included_rate_ratio(logs, subscription, calculator) == Decimal("2")

    def test_zero_value_gives_zero_ratio(self, subscription, make_log, calculator):
        logs = [make_log(rate=Decimal("0"), billed_time=60)]

        assert included_rate_ratio(logs, subscription, calculator) == Decimal("0")

    def test_extra_value_excluded_from_included_rate(self, make_flux, make_log, calculator):
        flux = make_flux(
            payment_structure=PaymentStructure.MONTHLY_SUBSCRIPTION,
            billed_value=Decimal("1200"),
            billed_extra_value=Decimal("200"),
            project_hours=Decimal("10"),
        )
        logs = [make_log(billed_time=600)]

        assert included_rate_ratio(logs, flux, calculator) == Decimal("2")


class TestApplyOverageSplit:
    """Revaluation of one subscription flux."""

    def test_non_subscription_unchanged(self, make_flux, make_log, calculator):
        logs = (make_log(), make_log(user_id=200))
        flux = make_flux(payment_structure=PaymentStructure.HOURLY_MONTHLY)

        assert apply_overage_split(logs, flux, calculator) == logs

    def test_boundary_log_split_across_rates(self, subscription, make_log, calculator):
        logs = [
            make_log(billed_time=480, log_id="a"),
            make_log(billed_time=240, log_id="b"),
            make_log(billed_time=60, log_id="c"),
        ]

        adjusted = apply_overage_split(logs, subscription, calculator)

        assert [log.log_id for log in adjusted] == ["a", "b", "c"]
        # Inside: 480 min at 100/h
        assert adjusted[0].rate == Decimal("100")
        assert adjusted[0].value == Decimal("800")
        # Boundary: 120 min at 100/h + 120 min at 50/h
        assert adjusted[1].value == Decimal("300")
        assert adjusted[1].rate == Decimal("50")
        # Past the boundary: own rate
        assert adjusted[2].value == Decimal("50")

    def test_single_log_crossing_allotment(self, subscription, make_log, calculator):
        """700 minutes at 10/min against a 10 hour allotment for 1000."""
        log = make_log(billed_time=700, rate=Decimal("600"), value=Decimal("7000"))

        ratio = included_rate_ratio([log], subscription, calculator)
        (adjusted,) = apply_overage_split([log], subscription, calculator)

        included_part = Decimal("600") * ratio * 600 / 60
        overage_part = Decimal("600") * 100 / 60
        assert abs(ratio - Decimal("1") / 6) < Decimal("1e-25")
        assert adjusted.value == included_part + overage_part
        assert abs(adjusted.value - Decimal("2000")) < Decimal("1e-20")
        assert adjusted.rate == Decimal("600")

    def test_included_portion_sums_to_included_value(self, subscription, make_log, calculator):
        logs = [make_log(billed_time=480), make_log(billed_time=240)]

        adjusted = apply_overage_split(logs, subscription, calculator)

        overage = Decimal("50") * 120 / 60
        assert sum(log.value for log in adjusted) - overage == subscription.included_value

    def test_non_billable_logs_untouched(self, subscription, make_log, calculator):
        internal = make_log(billed_time=600, billing_type=BillingType.INTERNAL, value=Decimal("7"))
        logs = [internal, make_log(billed_time=600)]

        adjusted = apply_overage_split(logs, subscription, calculator)

        assert adjusted[0] is internal
        assert adjusted[1].value == Decimal("1000")

    def test_billable_override_counts_towards_allotment(self, subscription, make_log, calculator):
        logs = [make_log(billed_time=600, billable=0), make_log(billed_time=600)]

        adjusted = apply_overage_split(logs, subscription, calculator)

        # The first log counts zero minutes, so the second stays inside the allotment
        assert adjusted[0].rate == Decimal("100")
        assert adjusted[1].rate == Decimal("100")
        assert adjusted[1].value == Decimal("1000")

    def test_custom_value_log_past_allotment_not_split(self, subscription, make_log, calculator):
        logs = [
            make_log(billed_time=540),
            make_log(billed_time=120, custom_value=Decimal("42")),
            make_log(billed_time=60),
        ]

        adjusted = apply_overage_split(logs, subscription, calculator)

        assert adjusted[1].value == Decimal("42")
        assert adjusted[2].value == Decimal("50")

    def test_inputs_not_mutated(self, subscription, make_log, calculator):
        logs = (make_log(billed_time=480), make_log(billed_time=240))
        snapshot = tuple(logs)

        apply_overage_split(logs, subscription, calculator)

        assert logs == snapshot
        assert logs[0].value == Decimal("50")


class TestAdjustSubscriptionLogs:
    """Adjusted view across many fluxes."""

    def test_only_subscriptions_adjusted(self, subscription, make_flux, make_log, calculator):
        hourly = make_flux(flux_id=2)
        logs = [make_log(flux_id=2, billed_time=600), make_log(flux_id=1, billed_time=600)]

        result = adjust_subscription_logs(
            worklogs=logs, fluxes={1: subscription, 2: hourly}, calculator=calculator,
        )

        assert result.logs[0] is logs[0]
        assert result.logs[1].value == Decimal("1000")
        assert [o.flux_id for o in result.outcomes] == [1]
        assert result.all_succeeded

    def test_missing_flux_recorded_as_failure(self, subscription, make_log, calculator):
        logs = [make_log(flux_id=99), make_log(flux_id=1, billed_time=600)]

        result = adjust_subscription_logs(
            worklogs=logs, fluxes={1: subscription}, calculator=calculator,
        )

        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.flux_id == 99
        assert isinstance(failure.error, FluxNotFoundError)
        assert failure.logs == (logs[0],)
        assert result.logs[0] is logs[0]

    def test_failing_flux_isolated(self, subscription, make_flux, make_log, calculator, captured_logs):
        broken = make_flux(
            flux_id=2,
            payment_structure=PaymentStructure.MONTHLY_SUBSCRIPTION,
            billed_value=Decimal("500"),
            project_hours=Decimal("5"),
        )
        logs = [
            make_log(flux_id=2, currency="CHF", log_id="x"),
            make_log(flux_id=1, billed_time=600, log_id="y"),
            make_log(flux_id=2, currency="CHF", log_id="z"),
        ]

        result = adjust_subscription_logs(
            worklogs=logs, fluxes={1: subscription, 2: broken}, calculator=calculator,
        )

        assert [log.log_id for log in result.logs] == ["x", "y", "z"]
        assert result.logs[0] is logs[0]
        assert result.logs[2] is logs[2]
        assert result.logs[1].value == Decimal("1000")
        assert [f.flux_id for f in result.failures] == [2]
        assert isinstance(result.failures[0].error, ExchangeRateNotFoundError)

        records = captured_logs()
        failed = [r for r in records if r["message"] == "subscription_adjustment_failed"]
        assert failed and failed[0]["flux_id"] == "2"
        completed = [r for r in records if r["message"] == "subscription_adjustment_completed"]
        assert completed[0]["failed_fluxes"] == 1
        assert completed[0]["adjusted_fluxes"] == 1
