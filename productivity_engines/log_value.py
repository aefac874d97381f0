"""
productivity_engines.log_value -- Monetary value of one logged unit of work.

Responsibility:
    Compute ``rate x billed_time / 60 x exchange_rate`` for a worklog and
    express it in the configured reporting currency, delegating the
    currency multiplier to the injected CurrencyExchanger.

Architecture position:
    Engines -- pure calculation layer.  The only collaborator is the
    exchanger port; its failures propagate unchanged (no retries).

Invariants enforced:
    - Decimal-only arithmetic.
    - A log with ``custom_value`` is valued at that amount (in the log's
      currency) instead of its rate-derived amount.
    - No conversion call when the log's currency is unset or already the
      reporting currency.

Usage:
    calculator = LogValueCalculator(exchanger, "EUR")
    calculator.value(log)          # Money in EUR
    calculator.amount(log)         # Decimal in EUR
"""

from __future__ import annotations

from decimal import Decimal

from productivity_kernel.domain.models import MINUTES_PER_HOUR, WorkLog
from productivity_kernel.domain.ports import CurrencyExchanger
from productivity_kernel.domain.values import Currency, Money


class LogValueCalculator:
    """
    Values worklogs in a single reporting currency.

    Contract:
        Stateless apart from a per-instance cache of exchange multipliers,
        so one calculator belongs to one computation.
    """

    def __init__(self, exchanger: CurrencyExchanger, target_currency: str | Currency):
        self._exchanger = exchanger
        self._target = target_currency if isinstance(target_currency, Currency) else Currency(target_currency)
        self._multipliers: dict[str, Decimal] = {}

    @property
    def target_currency(self) -> Currency:
        return self._target

    def value(self, log: WorkLog) -> Money:
        """Value of the log in the reporting currency."""
        if log.custom_value is not None:
            native = log.custom_value
        else:
            native = log.rate * log.billed_time / MINUTES_PER_HOUR * log.exchange_rate
        return self.convert(native, log.currency)

    def amount(self, log: WorkLog) -> Decimal:
        return self.value(log).amount

    def convert(self, amount: Decimal, currency: str | None) -> Money:
        """Express ``amount`` (in ``currency``) in the reporting currency."""
        return Money(amount=amount * self.multiplier(currency), currency=self._target)

    def multiplier(self, currency: str | None) -> Decimal:
        """Conversion factor from ``currency`` into the reporting currency."""
        if not currency or currency.upper() == self._target.code:
            return Decimal("1")
        code = currency.upper()
        if code not in self._multipliers:
            self._multipliers[code] = Decimal(str(self._exchanger.rate(code, self._target.code)))
        return self._multipliers[code]
