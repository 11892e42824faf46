"""
Currency routes.
"""
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from triptracker.core.config import settings
from triptracker.schemas.currency import ConversionResponse, SupportedCurrenciesResponse
from triptracker.api.dependencies import get_currency_converter
from triptracker.services.currency_service import CurrencyConverter

router = APIRouter(prefix="/currencies", tags=["currencies"])


@router.get("", response_model=SupportedCurrenciesResponse)
async def list_currencies(
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """List supported currency codes with display names and symbols."""
    return SupportedCurrenciesResponse(
        default_currency=settings.DEFAULT_CURRENCY,
        currencies=converter.get_supported_currencies()
    )


@router.get("/convert", response_model=ConversionResponse)
async def convert_amount(
    amount: Decimal = Query(..., ge=0),
    from_currency: str = Query(..., alias="from"),
    to_currency: str = Query(..., alias="to"),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Convert an amount using the static rate table."""
    source = converter.require_currency(from_currency)
    target = converter.require_currency(to_currency)
    converted = converter.convert(amount, source, target)
    return ConversionResponse(
        amount=amount,
        from_currency=source,
        to_currency=target,
        converted_amount=converted,
        formatted=converter.format_amount(converted, target)
    )
