"""
productivity_services.exchange -- In-memory CurrencyExchanger over a fixed rate table.

Responsibility:
    Answer ``rate(from_currency, to_currency)`` from configured
    ExchangeRate values.  Each configured rate also serves its inverse
    pair unless that pair is configured explicitly.

Failure modes:
    - ExchangeRateNotFoundError when neither the pair nor its inverse
      is configured.
    - InvalidCurrencyError for codes outside the known currency table.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from productivity_config.schema import ProductivityConfig
from productivity_kernel.domain.currency import canonical_code
from productivity_kernel.domain.values import ExchangeRate
from productivity_kernel.exceptions import ExchangeRateNotFoundError, InvalidCurrencyError
from productivity_kernel.logging_config import get_logger

logger = get_logger("services.exchange")


class StaticCurrencyExchanger:
    """CurrencyExchanger backed by a static table of rates."""

    def __init__(self, rates: Iterable[ExchangeRate] = ()):
        self._rates: dict[tuple[str, str], Decimal] = {}
        explicit: set[tuple[str, str]] = set()
        for rate in rates:
            self._rates[rate.pair] = rate.rate
            explicit.add(rate.pair)
            inverse = rate.inverse()
            if inverse.pair not in explicit:
                self._rates[inverse.pair] = inverse.rate

    @classmethod
    def from_config(cls, config: ProductivityConfig) -> StaticCurrencyExchanger:
        return cls(
            ExchangeRate.of(entry.from_currency, entry.to_currency, entry.rate)
            for entry in config.exchange_rates
        )

    def rate(self, from_currency: str, to_currency: str) -> Decimal:
        source = self._normalize(from_currency)
        target = self._normalize(to_currency)
        if source == target:
            return Decimal("1")

        rate = self._rates.get((source, target))
        if rate is None:
            logger.error("exchange_rate_missing", extra={
                "from_currency": source,
                "to_currency": target,
            })
            raise ExchangeRateNotFoundError(source, target)
        return rate

    @staticmethod
    def _normalize(code: str) -> str:
        normalized = canonical_code(code)
        if normalized is None:
            raise InvalidCurrencyError(code)
        return normalized
