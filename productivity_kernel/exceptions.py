"""
Typed Exception Hierarchy for the Productivity Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ProductivityError:

    ProductivityError (base)
    |
    +-- DataInconsistencyError
    |   +-- FluxNotFoundError
    |
    +-- AllocationError
    |   +-- UnsupportedDimensionError
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |   +-- ExchangeRateNotFoundError
    |
    +-- ConfigurationError
        +-- InvalidConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Data            | FLUX_NOT_FOUND              | Worklog references a flux not in the snapshot
----------------|-----------------------------|-----------------------------------------
Allocation      | UNSUPPORTED_DIMENSION       | Category dimension not valid for the operation
----------------|-----------------------------|-----------------------------------------
Currency        | INVALID_CURRENCY            | Not a known ISO 4217 code
                | EXCHANGE_RATE_NOT_FOUND     | No rate for the currency pair
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_CONFIGURATION       | Config file value missing or malformed

===============================================================================
HANDLING PATTERNS
===============================================================================

Catch by type, read structured attributes, never parse messages:

    try:
        allocation = monthly_income_by_category(...)
    except FluxNotFoundError as e:
        log.error("missing flux", extra={"flux_id": e.flux_id, "code": e.code})

Per-flux subscription adjustment never raises to the caller; failures are
returned as outcomes and forwarded to the ErrorReporter port.
"""


class ProductivityError(Exception):
    """
    Base exception for all productivity kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PRODUCTIVITY_ERROR"


# Data consistency exceptions


class DataInconsistencyError(ProductivityError):
    """Base exception for snapshots that do not agree with each other."""

    code: str = "DATA_INCONSISTENCY"


class FluxNotFoundError(DataInconsistencyError):
    """A worklog references a billed flux that is missing from the snapshot."""

    code: str = "FLUX_NOT_FOUND"

    def __init__(self, flux_id: str | int):
        self.flux_id = flux_id
        super().__init__(f"Billed flux not found: {flux_id}")


# Allocation exceptions


class AllocationError(ProductivityError):
    """Base exception for allocation-related errors."""

    code: str = "ALLOCATION_ERROR"


class UnsupportedDimensionError(AllocationError):
    """The requested category dimension cannot be used for this allocation."""

    code: str = "UNSUPPORTED_DIMENSION"

    def __init__(self, dimension: str, operation: str):
        self.dimension = dimension
        self.operation = operation
        super().__init__(
            f"Category dimension '{dimension}' is not supported by {operation}"
        )


# Currency exceptions


class CurrencyError(ProductivityError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not a known ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency!r}")


class ExchangeRateNotFoundError(CurrencyError):
    """No exchange rate is available for the currency pair."""

    code: str = "EXCHANGE_RATE_NOT_FOUND"

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(
            f"No exchange rate from {from_currency} to {to_currency}"
        )


# Configuration exceptions


class ConfigurationError(ProductivityError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidConfigurationError(ConfigurationError):
    """A configuration value is missing or malformed."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")
