"""
Tests for WorkforceProductivityService.

Covers:
- Snapshot retrieval at construction
- Filtered vs all-projects income and cost attribution
- Per-flux subscription failures reported and isolated
"""

from decimal import Decimal

import pytest

from productivity_config import ProductivityConfig
from productivity_kernel.domain.models import (
    CategoryDimension,
    FixedSumProjectInfo,
    InvoiceRowType,
    PaymentStructure,
    ProductivityFilters,
    UserRateInfo,
)
from productivity_kernel.domain.results import CategoryAllocation
from productivity_kernel.exceptions import ExchangeRateNotFoundError
from productivity_services.productivity_service import (
    SUBSCRIPTION_ADJUSTMENT_CONTEXT,
    WorkforceProductivityService,
)


@pytest.fixture
def repository(repository_factory, make_flux, make_log, make_row, make_cost):
    return repository_factory(
        fluxes=[
            make_flux(1, billed_value=Decimal("100"), project_id=10),
            make_flux(2, payment_structure=PaymentStructure.FIXED_SUM,
                      billed_value=Decimal("1000"), project_id=20),
            make_flux(3, billed_value=Decimal("60"), project_id=30),
        ],
        invoice_rows=[
            make_row("100", project_id=10),
            make_row("1000", project_id=20, row_type=InvoiceRowType.FIXED_SUM),
            make_row("60", project_id=30),
            make_row("400", project_id=40, row_type=InvoiceRowType.FIXED_SUM),
        ],
        worklogs=[
            make_log(1, user_id=1, project_id=10, value=Decimal("30")),
            make_log(1, user_id=2, project_id=10, value=Decimal("70")),
            make_log(2, user_id=1, project_id=20, billed_time=600, value=Decimal("500")),
            make_log(3, user_id=2, project_id=30, value=Decimal("60")),
        ],
        fixed_sum_with_logs={20: FixedSumProjectInfo(project_id=20)},
        fixed_sum_without_logs={40: [UserRateInfo(3, Decimal("10"))]},
        costs=[
            make_cost("100", user_id=1),
            make_cost("200", user_id=2),
            make_cost("300", team_id="t"),
        ],
        teams={"t": [1, 2, 3]},
    )


@pytest.fixture
def filters():
    return ProductivityFilters(projects_list=(10, 20, 40))


@pytest.fixture
def service(repository, filters, eur_config, exchanger, error_reporter):
    return WorkforceProductivityService(
        repository, filters, config=eur_config, exchanger=exchanger, error_reporter=error_reporter,
    )


def _filtered_user_income(service):
    income = service.monthly_income_by_flux_logs(CategoryDimension.USER, None)
    income = service.users_fixed_sum_projects_value(income)
    return service.fixed_sum_no_logs_value(income)


class TestConstruction:
    """Snapshots fetched once."""

    def test_snapshots_fetched_once(self, service, repository):
        service.total_income_and_costs_by_month()
        service.category_costs_by_user_logs(CategoryDimension.PROJECT)
        service.user_costs(_filtered_user_income(service))

        names = [call[0] for call in repository.calls]
        assert names.count("get_billed_fluxes") == 1
        assert names.count("get_billed_logs") == 2
        assert names.count("get_users_and_teams_costs") == 1

    def test_filtered_view_limited_to_projects(self, service):
        assert {log.project_id for log in service.filtered_worklogs} == {10, 20}
        assert {log.project_id for log in service.all_projects_worklogs} == {10, 20, 30}

    def test_all_projects_view_cached(self, service):
        assert service.all_projects_worklogs is service.all_projects_worklogs

    def test_empty_project_filter_means_every_project(self, repository, eur_config, exchanger):
        service = WorkforceProductivityService(
            repository, ProductivityFilters(), config=eur_config, exchanger=exchanger,
        )

        assert len(service.filtered_worklogs) == 4

    def test_packaged_config_used_by_default(self, repository, filters):
        service = WorkforceProductivityService(repository, filters)

        income, _ = service.total_income_and_costs_by_month()
        assert income == {"2024-03": Decimal("1560")}


class TestReports:
    """Income and cost reports."""

    def test_totals(self, service):
        income, costs = service.total_income_and_costs_by_month()

        assert income == {"2024-03": Decimal("1560")}
        assert costs == {"2024-03": Decimal("600")}

    def test_monthly_income_by_flux_logs(self, service):
        result = service.monthly_income_by_flux_logs(CategoryDimension.USER, None)

        assert result.by_month == {"2024-03": {1: Decimal("30"), 2: Decimal("70")}}

    def test_income_by_billed_value(self, service):
        result = service.income_by_billed_value(CategoryDimension.PROJECT, [10, 40])

        assert result.by_month == {"2024-03": {10: Decimal("100"), 40: Decimal("400")}}
        assert result.category_ids == (10, 40)

    def test_fixed_sum_income_merged(self, service):
        logged = service.monthly_income_by_flux_logs(CategoryDimension.USER, None)

        with_fixed = service.users_fixed_sum_projects_value(logged)
        complete = service.fixed_sum_no_logs_value(with_fixed)

        assert with_fixed.by_month == {"2024-03": {1: Decimal("1030"), 2: Decimal("70")}}
        assert complete.by_month == {
            "2024-03": {1: Decimal("1030"), 2: Decimal("70"), 3: Decimal("400")},
        }
        assert complete.category_ids == (1, 2, 3)
        # Input allocation left untouched
        assert logged.by_month == {"2024-03": {1: Decimal("30"), 2: Decimal("70")}}

    def test_all_projects_income_contains_filtered(self, service):
        filtered = _filtered_user_income(service)
        all_projects = service.all_projects_user_income()

        for month, values in filtered.by_month.items():
            for user_id, amount in values.items():
                assert all_projects.by_month[month][user_id] >= amount
        assert all_projects.by_month["2024-03"][2] == Decimal("130")

    def test_user_costs_attributed(self, service):
        costs = service.user_costs(_filtered_user_income(service))

        assert costs["2024-03"][1] == Decimal("200")
        assert costs["2024-03"][2] == Decimal("300") * (Decimal("70") / Decimal("130"))
        assert costs["2024-03"][3] == Decimal("100")

    def test_user_costs_accept_plain_mapping(self, service):
        income = _filtered_user_income(service)

        assert service.user_costs(income.by_month) == service.user_costs(income)

    def test_category_costs_conserve_user_costs(self, service):
        costs = service.category_costs_by_user_logs(CategoryDimension.PROJECT)

        total = sum(costs["2024-03"].values(), Decimal("0"))
        # User 3 logs nothing, so only users 1 and 2 are spread
        assert abs(total - Decimal("500")) < Decimal("1e-20")
        assert set(costs["2024-03"]) == {10, 20, 30}

    def test_monthly_costs_are_a_copy(self, service):
        service.monthly_costs["2024-03"][1] = Decimal("0")

        assert service.monthly_costs["2024-03"][1] == Decimal("200")


class TestSubscriptionFailures:
    """Per-flux adjustment failures are reported, not raised."""

    @pytest.fixture
    def failing_repository(self, repository_factory, make_flux, make_log, make_row):
        return repository_factory(
            fluxes=[
                make_flux(5, payment_structure=PaymentStructure.MONTHLY_SUBSCRIPTION,
                          billed_value=Decimal("500"), project_hours=Decimal("5")),
                make_flux(6, payment_structure=PaymentStructure.MONTHLY_SUBSCRIPTION,
                          billed_value=Decimal("1000"), project_hours=Decimal("10")),
            ],
            invoice_rows=[make_row("1500")],
            worklogs=[
                make_log(5, user_id=1, currency="CHF"),
                make_log(6, user_id=2, billed_time=600, value=Decimal("500")),
            ],
        )

    def test_failure_reported_and_other_flux_adjusted(
        self, failing_repository, eur_config, exchanger, error_reporter,
    ):
        service = WorkforceProductivityService(
            failing_repository, ProductivityFilters(),
            config=eur_config, exchanger=exchanger, error_reporter=error_reporter,
        )

        assert len(service.adjustment_failures) == 1
        report = error_reporter.reports[0]
        assert report.context == SUBSCRIPTION_ADJUSTMENT_CONTEXT
        assert isinstance(report.error, ExchangeRateNotFoundError)
        assert report.details == {"flux_id": 5, "scope": "filtered"}

        adjusted = {log.flux_id: log for log in service.filtered_worklogs}
        assert adjusted[6].value == Decimal("1000")
        assert adjusted[5].value == Decimal("50")

        income = service.monthly_income_by_flux_logs(CategoryDimension.USER, None)
        assert income.by_month["2024-03"] == {1: Decimal("50"), 2: Decimal("1000")}

    def test_all_projects_view_reports_separately(
        self, failing_repository, eur_config, exchanger, error_reporter,
    ):
        service = WorkforceProductivityService(
            failing_repository, ProductivityFilters(),
            config=eur_config, exchanger=exchanger, error_reporter=error_reporter,
        )

        service.all_projects_worklogs
        service.all_projects_worklogs

        assert [r.details["scope"] for r in error_reporter.reports] == ["filtered", "all_projects"]

    def test_reporting_can_be_disabled(self, failing_repository, exchanger, error_reporter):
        config = ProductivityConfig(default_currency="EUR", report_adjustment_failures=False)

        service = WorkforceProductivityService(
            failing_repository, ProductivityFilters(),
            config=config, exchanger=exchanger, error_reporter=error_reporter,
        )

        assert error_reporter.reports == ()
        assert len(service.adjustment_failures) == 1


def test_user_income_from_allocation_is_reused(service):
    allocation = CategoryAllocation(by_month={"2024-03": {9: Decimal("1")}}, category_ids=(9,))

    merged = service.fixed_sum_no_logs_value(allocation)

    assert merged.by_month["2024-03"][9] == Decimal("1")
    assert merged.category_ids == (9, 3)


class TestAllProjectsFixedSumScope:
    """All-projects income counts fixed-sum projects outside the project filter."""

    @pytest.fixture
    def service(self, repository_factory, make_flux, make_log, make_row, make_cost,
                eur_config, exchanger, error_reporter):
        repository = repository_factory(
            fluxes=[
                make_flux(1, billed_value=Decimal("100"), project_id=10),
                make_flux(5, payment_structure=PaymentStructure.FIXED_SUM,
                          billed_value=Decimal("1000"), project_id=50),
            ],
            invoice_rows=[
                make_row("100", project_id=10),
                make_row("1000", project_id=50, row_type=InvoiceRowType.FIXED_SUM),
            ],
            worklogs=[
                make_log(1, user_id=1, project_id=10, value=Decimal("100")),
                make_log(5, user_id=4, project_id=50, billed_time=600, value=Decimal("500")),
            ],
            fixed_sum_with_logs={50: FixedSumProjectInfo(project_id=50)},
            costs=[make_cost("200", user_id=1), make_cost("500", user_id=4)],
        )
        return WorkforceProductivityService(
            repository, ProductivityFilters(projects_list=(10,)),
            config=eur_config, exchanger=exchanger, error_reporter=error_reporter,
        )

    def test_unfiltered_fixed_sum_income_counted_for_all_projects(self, service):
        all_projects = service.all_projects_user_income()

        assert all_projects.by_month["2024-03"] == {1: Decimal("100"), 4: Decimal("1000")}

    def test_user_with_only_unfiltered_fixed_sum_income_carries_no_cost(self, service):
        filtered = _filtered_user_income(service)

        costs = service.user_costs(filtered)

        assert 4 not in filtered.by_month.get("2024-03", {})
        assert costs["2024-03"] == {1: Decimal("200"), 4: Decimal("0")}
