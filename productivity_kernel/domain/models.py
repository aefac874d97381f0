"""
Models -- Immutable billing, worklog and cost records.

Responsibility:
    Defines the snapshots the repository hands to the allocation engines:
    BilledFlux, WorkLog, InvoiceRow, CostRecord, the fixed-sum project
    descriptors, the filter object, and the CategoryDimension dispatch
    table used to group records by user, activity, project or owner.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of repository, exchanger and reporter dependencies.

Invariants enforced:
    - Every record is a frozen dataclass; derived worklog values are
      changed only by building a new record with ``dataclasses.replace``.
    - Monetary fields are Decimal; time fields are integer minutes.
    - An absent category id (None or "") normalizes to
      ``UNASSIGNED_CATEGORY_ID``.

Failure modes:
    - UnsupportedDimensionError when a dimension has no invoice-row field.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Union

from productivity_kernel.exceptions import UnsupportedDimensionError

CategoryId = Union[int, str]

MINUTES_PER_HOUR = 60

# Bucket for records with no id on the grouped dimension
UNASSIGNED_CATEGORY_ID: CategoryId = -1


def normalize_category_id(value: CategoryId | None) -> CategoryId:
    """Map an absent id to the unassigned bucket."""
    if value is None or value == "":
        return UNASSIGNED_CATEGORY_ID
    return value


class PaymentStructure(str, Enum):
    """How a project's billing period is invoiced."""

    HOURLY_MONTHLY = "hourly_monthly"  # Billed per logged time
    FIXED_SUM = "fixed_sum"  # Flat amount independent of logged time
    MONTHLY_SUBSCRIPTION = "monthly_subscription"  # Flat fee for an hours allotment


class BillingType(str, Enum):
    """Billing classification of a worklog."""

    BILLABLE = "billable"
    NON_BILLABLE = "non_billable"
    INTERNAL = "internal"


class InvoiceRowType(str, Enum):
    """Kind of invoice line."""

    FIXED_SUM = "fixed_sum"
    HOURLY = "hourly"
    EXTRA_HOURS = "extra_hours"
    OTHER = "other"


@dataclass(frozen=True)
class BilledFlux:
    """
    One project's billing entry for a period.

    ``project_hours`` is the included-hours allotment of a subscription;
    zero means the flux has no cap.
    """

    flux_id: CategoryId
    payment_structure: PaymentStructure
    billed_value: Decimal
    invoice_month: str
    project_hours: Decimal = Decimal("0")
    billed_extra_value: Decimal | None = None
    project_id: CategoryId | None = None

    def __post_init__(self) -> None:
        if self.project_hours < 0:
            raise ValueError(f"project_hours cannot be negative: {self.project_hours}")

    @property
    def included_minutes(self) -> Decimal:
        """Allotment expressed in minutes."""
        return self.project_hours * MINUTES_PER_HOUR

    @property
    def included_value(self) -> Decimal:
        """Billed value without the overage portion."""
        return self.billed_value - (self.billed_extra_value or Decimal("0"))


@dataclass(frozen=True)
class WorkLog:
    """
    One logged time entry.

    Contract:
        ``rate`` is hourly, in ``currency`` when set.  ``value`` is derived
        (stored value for included logs, recomputed by the subscription
        overage split).  ``billable`` overrides ``billed_time`` when
        counting minutes against a subscription allotment.
    """

    flux_id: CategoryId
    project_id: CategoryId
    user_id: CategoryId
    invoice_month: str
    billed_time: int
    rate: Decimal
    value: Decimal = Decimal("0")
    billing_type: BillingType = BillingType.BILLABLE
    exchange_rate: Decimal = Decimal("1")
    activity_id: CategoryId | None = None
    owner_id: CategoryId | None = None
    currency: str | None = None
    custom_value: Decimal | None = None
    included_in_value: bool = False
    billable: int | None = None
    log_id: CategoryId | None = None

    @property
    def validated_minutes(self) -> int:
        """Minutes counted against a subscription allotment."""
        return self.billable if self.billable is not None else self.billed_time

    @property
    def is_billable(self) -> bool:
        return self.billing_type == BillingType.BILLABLE


@dataclass(frozen=True)
class InvoiceRow:
    """One invoice line, tied to a project and/or owner."""

    invoice_month: str
    billed_value: Decimal
    row_type: InvoiceRowType = InvoiceRowType.OTHER
    project_id: CategoryId | None = None
    owner_id: CategoryId | None = None


@dataclass(frozen=True)
class CostRecord:
    """Monthly cost attached either to a user or to a whole team."""

    cost_month: str
    value: Decimal
    user_id: CategoryId | None = None
    team_id: CategoryId | None = None

    def __post_init__(self) -> None:
        if self.user_id is None and self.team_id in (None, ""):
            raise ValueError("CostRecord requires a user_id or a team_id")

    @property
    def is_team_cost(self) -> bool:
        return self.team_id not in (None, "")


@dataclass(frozen=True)
class FixedSumProjectInfo:
    """Settings of a fixed-sum project that has logged work."""

    project_id: CategoryId
    project_hours: Decimal = Decimal("0")
    include_extra_hours: bool = False
    logs_relative_value: Decimal = Decimal("0")


@dataclass(frozen=True)
class UserRateInfo:
    """A user assigned to a fixed-sum project without logs, with an hourly rate."""

    user_id: CategoryId
    rate: Decimal
    currency: str | None = None


@dataclass(frozen=True)
class ProductivityFilters:
    """Filter set fixed for the lifetime of one service instance."""

    projects_list: tuple[CategoryId, ...] = ()
    users_list: tuple[CategoryId, ...] = ()
    start_month: str | None = None
    end_month: str | None = None


# ---------------------------------------------------------------------------
# Category dispatch
# ---------------------------------------------------------------------------


class CategoryDimension(str, Enum):
    """Dimension a monetary value is split across."""

    USER = "user"
    ACTIVITY = "activity"
    PROJECT = "project"
    OWNER = "owner"

    @property
    def has_invoice_row_field(self) -> bool:
        """Projects and owners are billed wholesale on invoice rows."""
        return self in _INVOICE_ROW_ACCESSORS

    def worklog_key(self, log: WorkLog) -> CategoryId:
        """Normalized category id of a worklog on this dimension."""
        return normalize_category_id(_WORKLOG_ACCESSORS[self](log))

    def invoice_row_key(self, row: InvoiceRow) -> CategoryId | None:
        """Raw category id of an invoice row; None when the row is not tied to it."""
        accessor = _INVOICE_ROW_ACCESSORS.get(self)
        if accessor is None:
            raise UnsupportedDimensionError(self.value, "invoice row allocation")
        return accessor(row)


_WORKLOG_ACCESSORS: dict[CategoryDimension, Callable[[WorkLog], CategoryId | None]] = {
    CategoryDimension.USER: lambda log: log.user_id,
    CategoryDimension.ACTIVITY: lambda log: log.activity_id,
    CategoryDimension.PROJECT: lambda log: log.project_id,
    CategoryDimension.OWNER: lambda log: log.owner_id,
}

_INVOICE_ROW_ACCESSORS: dict[CategoryDimension, Callable[[InvoiceRow], CategoryId | None]] = {
    CategoryDimension.PROJECT: lambda row: row.project_id,
    CategoryDimension.OWNER: lambda row: row.owner_id,
}
