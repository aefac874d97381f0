"""
ProductivityConfig schema.

Frozen dataclasses the YAML configuration is parsed into.  The loader
builds them; services receive them fully validated.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ExchangeRateEntry:
    """One configured conversion: 1 ``from_currency`` = ``rate`` ``to_currency``."""

    from_currency: str
    to_currency: str
    rate: Decimal


@dataclass(frozen=True)
class ProductivityConfig:
    """
    Runtime settings for productivity reporting.

    ``default_currency`` is the reporting currency every allocation is
    expressed in.  ``report_adjustment_failures`` controls whether
    per-flux subscription adjustment failures are forwarded to the
    error reporter.
    """

    default_currency: str = "EUR"
    log_level: str = "INFO"
    exchange_rates: tuple[ExchangeRateEntry, ...] = ()
    report_adjustment_failures: bool = True
    checksum: str = ""
