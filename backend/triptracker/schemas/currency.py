"""
Pydantic schemas for currency metadata and conversion.
"""
from pydantic import BaseModel
from typing import Dict
from decimal import Decimal


class CurrencyInfo(BaseModel):
    """Display metadata for one currency."""
    name: str
    symbol: str


class SupportedCurrenciesResponse(BaseModel):
    """Schema for the supported currency list."""
    default_currency: str
    currencies: Dict[str, CurrencyInfo]


class ConversionResponse(BaseModel):
    """Schema for a currency conversion result."""
    amount: Decimal
    from_currency: str
    to_currency: str
    converted_amount: Decimal
    formatted: str
