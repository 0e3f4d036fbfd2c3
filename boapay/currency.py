"""
Multi-Currency Support Module

Static ISO 4217 currency table with USD exchange rates, conversion and fee
calculation for international transfers, and Decimal parsing/rounding helpers.
NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Dict, List, Union
from enum import Enum

from .errors import ValidationError

# Set global decimal context for financial precision
getcontext().prec = 28

FIAT_PLACES = 2
CRYPTO_PLACES = 8
RATE_PLACES = 6
# Largest adjusted exponent accepted for an amount (below 10**13)
MAX_AMOUNT_EXPONENT = 12

BASE_FEE_RATE = Decimal('0.01')      # 1% on every international transfer
EXOTIC_FEE_SURCHARGE = Decimal('0.005')  # +0.5% when an exotic currency is involved


class Currency(Enum):
    """Supported fiat currencies: code, display name, symbol, units per 1 USD"""
    USD = ("USD", "US Dollar", "$", "1.00")
    EUR = ("EUR", "Euro", "€", "0.93")
    GBP = ("GBP", "British Pound", "£", "0.79")
    JPY = ("JPY", "Japanese Yen", "¥", "149.50")
    CAD = ("CAD", "Canadian Dollar", "CA$", "1.37")
    AUD = ("AUD", "Australian Dollar", "A$", "1.53")
    CHF = ("CHF", "Swiss Franc", "CHF", "0.88")
    CNY = ("CNY", "Chinese Yuan", "CN¥", "7.24")
    INR = ("INR", "Indian Rupee", "₹", "83.50")
    SGD = ("SGD", "Singapore Dollar", "S$", "1.35")

    def __init__(self, code: str, display_name: str, symbol: str, usd_rate: str):
        self.code = code
        self.display_name = display_name
        self.symbol = symbol
        self.usd_rate = Decimal(usd_rate)


EXOTIC_CURRENCIES = {Currency.CNY, Currency.INR, Currency.SGD}


def get_currency(code: Union[str, Currency]) -> Currency:
    """Resolve a currency code, raising ValidationError for unknown codes"""
    if isinstance(code, Currency):
        return code
    try:
        return Currency[str(code).upper()]
    except KeyError:
        raise ValidationError(f"Invalid currency code: {code}")


def is_fiat_currency(code: str) -> bool:
    """Check whether a code is one of the supported fiat currencies"""
    return isinstance(code, str) and code.upper() in Currency.__members__


def get_currency_info() -> List[Dict[str, str]]:
    """Code, name and symbol of every supported currency"""
    return [
        {"code": c.code, "name": c.display_name, "symbol": c.symbol}
        for c in Currency
    ]


def get_exchange_rate(from_currency: Union[str, Currency],
                      to_currency: Union[str, Currency]) -> Decimal:
    """
    Exchange rate from one currency to another.

    Cross rates pivot through USD: rate(to) / rate(from).
    """
    source = get_currency(from_currency)
    target = get_currency(to_currency)
    if source == target:
        return Decimal('1')
    return (target.usd_rate / source.usd_rate).quantize(
        Decimal('0.1') ** RATE_PLACES, rounding=ROUND_HALF_UP
    )


def convert_currency(amount: Decimal, from_currency: Union[str, Currency],
                     to_currency: Union[str, Currency]) -> Decimal:
    """Convert an amount between fiat currencies, rounded to cents"""
    return quantize_fiat(amount * get_exchange_rate(from_currency, to_currency))


def calculate_transfer_fee(amount: Decimal, from_currency: Union[str, Currency],
                           to_currency: Union[str, Currency]) -> Decimal:
    """
    Fee for an international transfer, in the source currency.

    1% base rate, plus 0.5% when either side is an exotic currency.
    """
    source = get_currency(from_currency)
    target = get_currency(to_currency)

    fee_rate = BASE_FEE_RATE
    if source in EXOTIC_CURRENCIES or target in EXOTIC_CURRENCIES:
        fee_rate += EXOTIC_FEE_SURCHARGE

    return quantize_fiat(amount * fee_rate)


def get_transfer_conversion_details(amount: Decimal, from_currency: Union[str, Currency],
                                    to_currency: Union[str, Currency]) -> Dict[str, Union[Decimal, str]]:
    """
    Full quote for sending `amount` from one currency to another.

    The fee is charged on top of the amount: the sender is debited
    amount + fee and the recipient receives (amount - fee) * exchange_rate.

    Returns:
        Dictionary with exchange_rate, fee, amount_after_fee,
        converted_amount, total_debit and both currency codes
    """
    source = get_currency(from_currency)
    target = get_currency(to_currency)

    exchange_rate = get_exchange_rate(source, target)
    fee = calculate_transfer_fee(amount, source, target)

    return {
        "exchange_rate": exchange_rate,
        "fee": fee,
        "amount_after_fee": quantize_fiat(amount - fee),
        "converted_amount": quantize_fiat((amount - fee) * exchange_rate),
        "total_debit": quantize_fiat(amount + fee),
        "from_currency": source.code,
        "to_currency": target.code,
    }


def parse_amount(value: Union[str, Decimal, int, None]) -> Decimal:
    """
    Parse a user supplied amount into a positive Decimal

    Args:
        value: Amount as sent by the client, normally a string

    Returns:
        Decimal amount greater than zero

    Raises:
        ValidationError: If the value is empty, not numeric, not finite, not positive
            or too large to quantize
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Amount is required")
    if isinstance(value, float) or isinstance(value, bool):
        raise ValidationError("Invalid amount")

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Invalid amount")

    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Invalid amount")
    # Larger magnitudes overflow 28-digit quantization once converted
    if amount.adjusted() > MAX_AMOUNT_EXPONENT:
        raise ValidationError("Invalid amount")

    return amount


def quantize_fiat(value: Decimal) -> Decimal:
    """Round to fiat precision (2 places)"""
    return value.quantize(Decimal('0.1') ** FIAT_PLACES, rounding=ROUND_HALF_UP)


def quantize_crypto(value: Decimal) -> Decimal:
    """Round to crypto precision (8 places)"""
    return value.quantize(Decimal('0.1') ** CRYPTO_PLACES, rounding=ROUND_HALF_UP)


def format_currency(amount: Union[Decimal, str], currency_code: str = "USD") -> str:
    """
    Format an amount for display with its currency symbol

    Unknown codes (crypto symbols) are rendered as a suffix with 8 places.
    """
    value = Decimal(str(amount))
    if is_fiat_currency(currency_code):
        symbol = Currency[currency_code.upper()].symbol
        sign = "-" if value < 0 else ""
        return f"{sign}{symbol}{abs(quantize_fiat(value)):,.2f}"
    return f"{quantize_crypto(value)} {currency_code}"
