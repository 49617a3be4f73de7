"""Monetary amounts and per-currency minor-unit scaling"""

from dataclasses import dataclass
from enum import Enum

from fintoc_sync.domain.exceptions import UnsupportedCurrencyError


class Currency(str, Enum):
    """Currencies the sync knows how to scale"""

    CLP = "CLP"
    USD = "USD"
    EUR = "EUR"

    @classmethod
    def from_code(cls, code: str) -> "Currency":
        try:
            return cls(code.upper())
        except ValueError:
            raise UnsupportedCurrencyError(code) from None

    @property
    def scale(self) -> int:
        """Minor units per major unit"""
        return MINOR_UNIT_SCALE[self]

    def __str__(self) -> str:
        return self.value


# CLP has no decimals; Fintoc reports USD/EUR in cents
MINOR_UNIT_SCALE = {
    Currency.CLP: 1,
    Currency.USD: 100,
    Currency.EUR: 100,
}


@dataclass(frozen=True)
class Amount:
    """
    Monetary value as sent to Lunch Money.

    Lunch Money accepts amounts as numeric strings with up to 4 decimal places,
    so str() always renders exactly 4 decimals regardless of the currency.
    """

    value: float

    @classmethod
    def from_minor_units(cls, raw: int, currency_code: str) -> "Amount":
        currency = Currency.from_code(currency_code)
        if currency.scale == 1:
            return cls(float(raw))
        return cls(raw / currency.scale)

    @classmethod
    def parse(cls, text: str | float | int) -> "Amount":
        return cls(float(text))

    def __str__(self) -> str:
        return f"{self.value:.4f}"


@dataclass(frozen=True)
class DisplayFormat:
    symbol: str
    precision: int


DISPLAY_FORMATS = {
    "USD": DisplayFormat(symbol="$", precision=2),
    "EUR": DisplayFormat(symbol="€", precision=2),
    "CLP": DisplayFormat(symbol="$", precision=0),
}

DEFAULT_DISPLAY_FORMAT = DisplayFormat(symbol="$", precision=2)


def format_display(amount: Amount, currency_code: str | None) -> str:
    """
    Human-readable amount, e.g. "$1,234.56", "€10.00", "-$15,000".

    Independent from the 4-decimal wire format; unknown or missing currencies
    fall back to a dollar sign with 2 decimals.
    """
    fmt = DISPLAY_FORMATS.get((currency_code or "").upper(), DEFAULT_DISPLAY_FORMAT)
    sign = "-" if amount.value < 0 else ""
    return f"{sign}{fmt.symbol}{abs(amount.value):,.{fmt.precision}f}"
