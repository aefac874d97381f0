"""
Currency codes known to the productivity kernel.

Rates, invoice rows and worklogs may each carry a currency code.  Only the
codes listed in ``MINOR_UNITS`` are accepted; the value is the number of
decimal places of the currency's minor unit (ISO 4217).
"""

MINOR_UNITS: dict[str, int] = {
    "EUR": 2,
    "USD": 2,
    "GBP": 2,
    "CHF": 2,
    "CAD": 2,
    "AUD": 2,
    "RON": 2,
    "PLN": 2,
    "CZK": 2,
    "HUF": 2,
    "SEK": 2,
    "NOK": 2,
    "DKK": 2,
    "BGN": 2,
    "INR": 2,
    "JPY": 0,
    "KRW": 0,
    "BHD": 3,
    "KWD": 3,
}


def canonical_code(code: object) -> str | None:
    """Uppercase, stripped code if it is known, else None."""
    if not isinstance(code, str):
        return None
    normalized = code.strip().upper()
    return normalized if normalized in MINOR_UNITS else None


def minor_units(code: str) -> int:
    """Decimal places used when rounding amounts in ``code``."""
    return MINOR_UNITS.get(code.strip().upper(), 2)
