"""
Tests for currency module

Covers the static rate table, cross-rate conversion, international fees,
amount parsing and display formatting.
"""

import pytest
from decimal import Decimal

from boapay.currency import (
    Currency, calculate_transfer_fee, convert_currency, format_currency, get_currency,
    get_currency_info, get_exchange_rate, get_transfer_conversion_details, is_fiat_currency,
    parse_amount, quantize_crypto, quantize_fiat
)
from boapay.errors import ValidationError


class TestCurrencyTable:
    """Test currency lookup"""

    def test_lookup_is_case_insensitive(self):
        assert get_currency("eur") == Currency.EUR
        assert get_currency(Currency.GBP) == Currency.GBP

    def test_unknown_code_rejected(self):
        with pytest.raises(ValidationError, match="Invalid currency code"):
            get_currency("XYZ")

    def test_crypto_symbols_are_not_fiat(self):
        assert is_fiat_currency("USD")
        assert not is_fiat_currency("BTC")

    def test_currency_info(self):
        info = get_currency_info()
        assert len(info) == len(Currency)
        assert {"code": "EUR", "name": "Euro", "symbol": "€"} in info


class TestExchangeRates:
    """Test rates and conversion"""

    def test_same_currency_rate_is_one(self):
        assert get_exchange_rate("USD", "USD") == Decimal("1")

    def test_rate_from_usd(self):
        assert get_exchange_rate("USD", "EUR") == Decimal("0.930000")

    def test_cross_rate_pivots_through_usd(self):
        """EUR -> USD is the inverse of the EUR table rate"""
        assert get_exchange_rate("EUR", "USD") == Decimal("1.075269")
        assert get_exchange_rate("EUR", "GBP") == Decimal("0.849462")

    def test_convert_rounds_to_cents(self):
        assert convert_currency(Decimal("100.00"), "USD", "JPY") == Decimal("14950.00")
        assert convert_currency(Decimal("10.00"), "EUR", "USD") == Decimal("10.75")


class TestTransferFees:
    """Test international transfer fee calculation"""

    def test_base_fee(self):
        assert calculate_transfer_fee(Decimal("1000.00"), "USD", "EUR") == Decimal("10.00")

    def test_exotic_currency_surcharge(self):
        assert calculate_transfer_fee(Decimal("1000.00"), "USD", "INR") == Decimal("15.00")
        assert calculate_transfer_fee(Decimal("1000.00"), "SGD", "USD") == Decimal("15.00")

    def test_conversion_details(self):
        """Fee is charged on top of the amount and deducted before conversion"""
        details = get_transfer_conversion_details(Decimal("1000.00"), "USD", "EUR")

        assert details["exchange_rate"] == Decimal("0.930000")
        assert details["fee"] == Decimal("10.00")
        assert details["converted_amount"] == Decimal("920.70")
        assert details["total_debit"] == Decimal("1010.00")
        assert details["amount_after_fee"] == Decimal("990.00")
        assert details["from_currency"] == "USD"
        assert details["to_currency"] == "EUR"


class TestParseAmount:
    """Test user supplied amount parsing"""

    def test_valid_amounts(self):
        assert parse_amount("40") == Decimal("40")
        assert parse_amount(" 12.50 ") == Decimal("12.50")
        assert parse_amount(Decimal("0.01")) == Decimal("0.01")
        assert parse_amount(5) == Decimal("5")

    @pytest.mark.parametrize("value", [
        None, "", "   ", "abc", "NaN", "Infinity", "0", "-5", "-0.01", "1e100000", "1E13"
    ])
    def test_invalid_amounts(self, value):
        with pytest.raises(ValidationError):
            parse_amount(value)

    def test_floats_rejected(self):
        """Binary floats never enter monetary arithmetic"""
        with pytest.raises(ValidationError, match="Invalid amount"):
            parse_amount(1.5)


class TestFormatting:
    """Test rounding and display helpers"""

    def test_quantize(self):
        assert quantize_fiat(Decimal("1.005")) == Decimal("1.01")
        assert quantize_crypto(Decimal("0.123456789")) == Decimal("0.12345679")

    def test_format_fiat(self):
        assert format_currency(Decimal("1234.5"), "USD") == "$1,234.50"
        assert format_currency(Decimal("-5"), "EUR") == "-€5.00"
        assert format_currency("0", "GBP") == "£0.00"

    def test_format_crypto(self):
        assert format_currency(Decimal("0.002"), "BTC") == "0.00200000 BTC"
