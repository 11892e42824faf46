"""
Currency service for validating codes and converting amounts.
"""
from decimal import Decimal
from typing import Dict, Mapping, Optional
import logging

from triptracker.core.config import settings
from triptracker.core.errors import UnknownCurrencyError, ValidationError
from triptracker.core.utils import quantize_amount, to_decimal

logger = logging.getLogger(__name__)


# Units of each currency per 1 USD. Snapshot values, not live rates.
DEFAULT_RATES: Dict[str, Decimal] = {
    "USD": Decimal("1.0"),
    "EUR": Decimal("0.85"),
    "GBP": Decimal("0.73"),
    "JPY": Decimal("110.0"),
    "CAD": Decimal("1.25"),
    "AUD": Decimal("1.35"),
    "CHF": Decimal("0.92"),
    "CNY": Decimal("6.45"),
    "INR": Decimal("74.0"),
    "BRL": Decimal("5.2"),
    "MXN": Decimal("20.0"),
    "KRW": Decimal("1180.0"),
    "SGD": Decimal("1.35"),
    "HKD": Decimal("7.8"),
    "NZD": Decimal("1.42"),
    "SEK": Decimal("8.6"),
    "NOK": Decimal("8.9"),
    "DKK": Decimal("6.3"),
    "PLN": Decimal("3.9"),
    "CZK": Decimal("21.7"),
    "LKR": Decimal("320.0"),
}

CURRENCY_INFO: Dict[str, Dict[str, str]] = {
    "USD": {"name": "US Dollar", "symbol": "$"},
    "EUR": {"name": "Euro", "symbol": "€"},
    "GBP": {"name": "British Pound", "symbol": "£"},
    "JPY": {"name": "Japanese Yen", "symbol": "¥"},
    "CAD": {"name": "Canadian Dollar", "symbol": "C$"},
    "AUD": {"name": "Australian Dollar", "symbol": "A$"},
    "CHF": {"name": "Swiss Franc", "symbol": "CHF"},
    "CNY": {"name": "Chinese Yuan", "symbol": "¥"},
    "INR": {"name": "Indian Rupee", "symbol": "₹"},
    "BRL": {"name": "Brazilian Real", "symbol": "R$"},
    "MXN": {"name": "Mexican Peso", "symbol": "$"},
    "KRW": {"name": "South Korean Won", "symbol": "₩"},
    "SGD": {"name": "Singapore Dollar", "symbol": "S$"},
    "HKD": {"name": "Hong Kong Dollar", "symbol": "HK$"},
    "NZD": {"name": "New Zealand Dollar", "symbol": "NZ$"},
    "SEK": {"name": "Swedish Krona", "symbol": "kr"},
    "NOK": {"name": "Norwegian Krone", "symbol": "kr"},
    "DKK": {"name": "Danish Krone", "symbol": "kr"},
    "PLN": {"name": "Polish Zloty", "symbol": "zł"},
    "CZK": {"name": "Czech Koruna", "symbol": "Kč"},
    "LKR": {"name": "Sri Lankan Rupee", "symbol": "Rs"},
}


def normalize_code(code) -> str:
    """Strip and upper-case a currency code."""
    if not isinstance(code, str):
        raise ValidationError(f"Currency code must be a string, got {code!r}")
    return code.strip().upper()


class CurrencyConverter:
    """
    Converts amounts between currencies through a common reference unit.

    The rate table maps currency code -> units per reference unit and is
    passed in at construction, so tests and deployments can swap it without
    touching callers.

    Args:
        rates: Mapping of currency code to rate against the reference unit
        currency_info: Optional display metadata per code
    """

    def __init__(self, rates: Mapping[str, Decimal] = None, currency_info: Mapping[str, Dict[str, str]] = None):
        source = DEFAULT_RATES if rates is None else rates
        self._rates: Dict[str, Decimal] = {}
        for code, rate in source.items():
            rate = to_decimal(rate)
            if rate <= 0:
                raise ValidationError(f"Exchange rate for {code} must be positive, got {rate}")
            self._rates[normalize_code(code)] = rate
        self._info = dict(CURRENCY_INFO if currency_info is None else currency_info)

    def is_valid_currency(self, code) -> bool:
        """True iff code is in the supported set."""
        return isinstance(code, str) and code in self._rates

    def require_currency(self, code) -> str:
        """Normalize code and ensure it is supported."""
        normalized = normalize_code(code)
        if not self.is_valid_currency(normalized):
            raise UnknownCurrencyError(normalized)
        return normalized

    def rate(self, code: str) -> Decimal:
        try:
            return self._rates[code]
        except KeyError:
            raise UnknownCurrencyError(code)

    def convert(self, amount, from_code: str, to_code: str) -> Decimal:
        """
        Convert amount from from_code to to_code.

        Identical codes return the amount untouched. Otherwise
        amount / rate[from] * rate[to], rounded to 2 decimal places.

        Raises:
            UnknownCurrencyError: either code is not supported
        """
        amount = to_decimal(amount)
        from_rate = self.rate(from_code)
        to_rate = self.rate(to_code)
        if from_code == to_code:
            return amount
        converted = quantize_amount(amount / from_rate * to_rate)
        logger.debug(f"Currency conversion: {amount} {from_code} = {converted} {to_code}")
        return converted

    def get_supported_currencies(self) -> Dict[str, Dict[str, str]]:
        """Display metadata for every supported code."""
        return {
            code: dict(self._info.get(code, {"name": code, "symbol": code}))
            for code in sorted(self._rates)
        }

    def format_amount(self, amount, code: str) -> str:
        """Render an amount with its currency symbol, e.g. "$12.50"."""
        symbol = self._info.get(code, {}).get("symbol", code)
        return f"{symbol}{quantize_amount(amount):,}"


def build_rate_table(overrides: Optional[Mapping[str, Decimal]] = None) -> Dict[str, Decimal]:
    """Default rates with configured overrides applied on top."""
    rates = dict(DEFAULT_RATES)
    for code, rate in (overrides or {}).items():
        rates[normalize_code(code)] = to_decimal(rate)
    return rates


def get_converter() -> CurrencyConverter:
    """Converter built from settings.FX_RATES over the default table."""
    return CurrencyConverter(build_rate_table(settings.FX_RATES))
