"""
Pytest fixtures for the workforce productivity test suite.

Provides:
- Structured logging configured for the whole session
- Record builders for fluxes, worklogs, invoice rows and costs
- An in-memory WorkforceRepository
- A static exchanger with USD/EUR and GBP/EUR rates
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from productivity_config import ProductivityConfig
from productivity_kernel.domain.models import (
    BilledFlux,
    CostRecord,
    InvoiceRow,
    InvoiceRowType,
    PaymentStructure,
    WorkLog,
)
from productivity_kernel.domain.values import ExchangeRate
from productivity_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from productivity_services.error_reporting import LoggingErrorReporter
from productivity_services.exchange import StaticCurrencyExchanger

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture productivity_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            run_engine(...)
            logs = captured_logs()
            assert any(r["message"] == "category_income_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("productivity_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Record builders
# =============================================================================


def build_flux(flux_id=1, **overrides) -> BilledFlux:
    fields = {
        "flux_id": flux_id,
        "payment_structure": PaymentStructure.HOURLY_MONTHLY,
        "billed_value": Decimal("100"),
        "invoice_month": "2024-03",
    }
    fields.update(overrides)
    return BilledFlux(**fields)


def build_log(flux_id=1, user_id=100, **overrides) -> WorkLog:
    fields = {
        "flux_id": flux_id,
        "project_id": 10,
        "user_id": user_id,
        "invoice_month": "2024-03",
        "billed_time": 60,
        "rate": Decimal("50"),
        "value": Decimal("50"),
    }
    fields.update(overrides)
    return WorkLog(**fields)


def build_row(billed_value="100", **overrides) -> InvoiceRow:
    fields = {
        "invoice_month": "2024-03",
        "billed_value": Decimal(billed_value),
        "row_type": InvoiceRowType.OTHER,
        "project_id": 10,
    }
    fields.update(overrides)
    return InvoiceRow(**fields)


@pytest.fixture
def make_flux():
    return build_flux


@pytest.fixture
def make_log():
    return build_log


@pytest.fixture
def make_row():
    return build_row


@pytest.fixture
def make_cost():
    def _make(value="100", month="2024-03", user_id=None, team_id=None) -> CostRecord:
        return CostRecord(cost_month=month, value=Decimal(value), user_id=user_id, team_id=team_id)
    return _make


# =============================================================================
# Collaborators
# =============================================================================


class InMemoryWorkforceRepository:
    """WorkforceRepository over plain in-memory records, recording every call."""

    def __init__(
        self,
        *,
        fluxes=(),
        invoice_rows=(),
        worklogs=(),
        fixed_sum_with_logs=None,
        fixed_sum_without_logs=None,
        costs=(),
        teams=None,
    ):
        self.fluxes = {flux.flux_id: flux for flux in fluxes}
        self.invoice_rows = tuple(invoice_rows)
        self.worklogs = tuple(worklogs)
        self.fixed_sum_with_logs = dict(fixed_sum_with_logs or {})
        self.fixed_sum_without_logs = dict(fixed_sum_without_logs or {})
        self.costs = tuple(costs)
        self.teams = dict(teams or {})
        self.calls: list[tuple] = []

    def get_billed_fluxes(self, filters):
        self.calls.append(("get_billed_fluxes",))
        return dict(self.fluxes)

    def get_all_invoice_row_values(self, filters):
        self.calls.append(("get_all_invoice_row_values",))
        return self.invoice_rows

    def get_billed_logs(self, flux_ids, project_ids):
        flux_ids = set(flux_ids)
        projects = None if project_ids is None else set(project_ids)
        self.calls.append(("get_billed_logs", projects))
        return tuple(
            log for log in self.worklogs
            if log.flux_id in flux_ids and (projects is None or log.project_id in projects)
        )

    def get_fixed_sum_projects_with_logs(self, project_ids):
        self.calls.append(("get_fixed_sum_projects_with_logs", project_ids))
        return self._select(self.fixed_sum_with_logs, project_ids)

    def get_fixed_sum_projects_without_logs(self, project_ids):
        self.calls.append(("get_fixed_sum_projects_without_logs", project_ids))
        return self._select(self.fixed_sum_without_logs, project_ids)

    def get_users_and_teams_costs(self, filters):
        self.calls.append(("get_users_and_teams_costs",))
        return self.costs

    def get_users_grouped_by_teams(self):
        self.calls.append(("get_users_grouped_by_teams",))
        return dict(self.teams)

    @staticmethod
    def _select(source, project_ids):
        if project_ids is None:
            return dict(source)
        wanted = set(project_ids)
        return {pid: value for pid, value in source.items() if pid in wanted}


@pytest.fixture
def repository_factory():
    return InMemoryWorkforceRepository


@pytest.fixture
def exchanger():
    return StaticCurrencyExchanger([
        ExchangeRate.of("USD", "EUR", "0.5"),
        ExchangeRate.of("GBP", "EUR", "1.25"),
    ])


@pytest.fixture
def error_reporter():
    return LoggingErrorReporter()


@pytest.fixture
def eur_config():
    return ProductivityConfig(default_currency="EUR")
