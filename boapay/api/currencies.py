"""
Currency table endpoints
"""

from fastapi import APIRouter

from .schemas import ConvertCurrencyRequest
from ..currency import (
    get_currency_info, get_exchange_rate, get_transfer_conversion_details, parse_amount
)


router = APIRouter()


@router.get("")
async def list_currencies():
    return get_currency_info()


@router.get("/rate")
async def exchange_rate(from_currency: str, to_currency: str):
    rate = get_exchange_rate(from_currency, to_currency)
    return {
        "from_currency": from_currency.upper(),
        "to_currency": to_currency.upper(),
        "exchange_rate": str(rate),
    }


@router.post("/convert")
async def convert(request: ConvertCurrencyRequest):
    """Quote for sending an amount across currencies, fees included"""
    details = get_transfer_conversion_details(
        parse_amount(request.amount), request.from_currency, request.to_currency
    )
    return {key: str(value) for key, value in details.items()}
