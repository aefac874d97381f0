"""
Monetary value objects: Currency, Money and ExchangeRate.

Allocation maps carry plain Decimal amounts already expressed in the
reporting currency.  These types are used at the edges where a currency
still travels with the amount: log valuation and exchange rate tables.

Amounts and rates are Decimal only.  Floats are rejected outright and
arithmetic between different currencies raises ValueError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from productivity_kernel.domain.currency import canonical_code, minor_units


def _to_decimal(value: object, what: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise ValueError(f"{what} must not be float: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {what}: {value!r}") from e


def _as_currency(value: str | Currency) -> Currency:
    if isinstance(value, Currency):
        return value
    if isinstance(value, str):
        return Currency(value)
    raise TypeError(f"currency must be Currency or str, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class Currency:
    """Known currency code, normalized to uppercase."""

    code: str

    def __post_init__(self) -> None:
        normalized = canonical_code(self.code)
        if normalized is None:
            raise ValueError(f"Unknown currency code: {self.code!r}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return minor_units(self.code)

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True, slots=True)
class Money:
    """
    A Decimal amount in one currency.

    Returned by log valuation so the reporting currency stays attached to
    the amount.  Never rounds on its own; call ``round()`` explicitly.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _to_decimal(self.amount, "amount"))
        object.__setattr__(self, "currency", _as_currency(self.currency))

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Round half-up to the currency's minor unit."""
        exponent = Decimal(1).scaleb(-self.currency.decimal_places)
        return Money(self.amount.quantize(exponent, rounding=rounding), self.currency)

    def _require_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Currency mismatch: {self.currency} and {other.currency}")

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        if not isinstance(factor, (Decimal, int, str)) or isinstance(factor, bool):
            return NotImplemented
        return Money(self.amount * _to_decimal(factor, "factor"), self.currency)

    __rmul__ = __mul__

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """One unit of ``from_currency`` is worth ``rate`` units of ``to_currency``."""

    from_currency: Currency
    to_currency: Currency
    rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_currency", _as_currency(self.from_currency))
        object.__setattr__(self, "to_currency", _as_currency(self.to_currency))
        rate = _to_decimal(self.rate, "exchange rate")
        if rate <= 0:
            raise ValueError(f"Exchange rate must be positive: {rate}")
        object.__setattr__(self, "rate", rate)

    @classmethod
    def of(
        cls,
        from_currency: str | Currency,
        to_currency: str | Currency,
        rate: Decimal | str | int,
    ) -> ExchangeRate:
        return cls(from_currency=from_currency, to_currency=to_currency, rate=rate)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.from_currency.code, self.to_currency.code)

    def convert(self, money: Money) -> Money:
        """Raises ValueError if ``money`` is not in ``from_currency``."""
        if money.currency != self.from_currency:
            raise ValueError(
                f"Cannot convert {money.currency} with a {self.pair[0]}/{self.pair[1]} rate"
            )
        return Money(money.amount * self.rate, self.to_currency)

    def inverse(self) -> ExchangeRate:
        return ExchangeRate(self.to_currency, self.from_currency, Decimal("1") / self.rate)

    def __str__(self) -> str:
        return f"{self.from_currency}/{self.to_currency} = {self.rate}"
