"""Tests for the OSI option symbol codec."""

import datetime
import unittest
from dataclasses import FrozenInstanceError
from decimal import Decimal

from chainfetch import (
    ContractKind,
    OptionIdentifier,
    format_option_symbol,
    parse_option_symbol,
)


class TestParseOptionSymbol(unittest.TestCase):
    """Tests for parse_option_symbol()."""

    def test_parses_call_symbol(self):
        """Should decode every field of a well-formed call symbol."""
        option = parse_option_symbol("AAPL241206C00225000")

        self.assertIsNotNone(option)
        self.assertEqual(option.underlying, "AAPL")
        self.assertEqual(option.expiration_date, datetime.date(2024, 12, 6))
        self.assertEqual(option.contract_kind, ContractKind.CALL)
        self.assertEqual(option.strike_price, Decimal("225.00"))
        self.assertTrue(option.is_call)

    def test_parses_put_symbol(self):
        option = parse_option_symbol("AAPL251024P00260000")

        self.assertEqual(option.contract_kind, ContractKind.PUT)
        self.assertEqual(option.contract_kind, "put")
        self.assertEqual(option.expiration_date.isoformat(), "2025-10-24")
        self.assertEqual(option.strike_price, 260)
        self.assertFalse(option.is_call)

    def test_fractional_strike(self):
        """00450500 is 450.500 dollars."""
        option = parse_option_symbol("SPY251031C00450500")

        self.assertEqual(option.underlying, "SPY")
        self.assertEqual(option.strike_price, Decimal("450.50"))

    def test_thousandths_strike_keeps_full_precision(self):
        """Adjusted contracts list strikes such as 12.125."""
        option = parse_option_symbol("XYZ251031C00012125")

        self.assertEqual(option.strike_price, Decimal("12.125"))
        self.assertEqual(format_option_symbol(option), "XYZ251031C00012125")

    def test_low_strike(self):
        self.assertEqual(parse_option_symbol("F251024C00010000").strike_price, Decimal("10"))

    def test_high_strike(self):
        self.assertEqual(parse_option_symbol("GOOGL251024C02500000").strike_price, Decimal("2500"))

    def test_next_year_expiration(self):
        option = parse_option_symbol("TSLA260117C00300000")

        self.assertEqual(option.underlying, "TSLA")
        self.assertEqual(option.expiration_date, datetime.date(2026, 1, 17))

    def test_returns_none_for_malformed_symbols(self):
        """Malformed input never raises."""
        malformed = [
            "INVALID",
            "AAPL251024",
            "AAPL2024C225",
            "AAPL251024X00260000",
            "aapl241206C00225000",
            "AAPL241206c00225000",
            "AAPL241206C0022500",
            "AAPL241206C002250000",
            "241206C00225000",
            " AAPL241206C00225000",
            "AAPL241206C00225000\n",
            "AAPL 241206C00225000",
            "",
        ]
        for symbol in malformed:
            with self.subTest(symbol=symbol):
                self.assertIsNone(parse_option_symbol(symbol))

    def test_returns_none_for_non_ascii_digits(self):
        self.assertIsNone(parse_option_symbol("AAPL２４１２０６C00225000"))

    def test_returns_none_for_impossible_calendar_date(self):
        self.assertIsNone(parse_option_symbol("AAPL241306C00225000"))
        self.assertIsNone(parse_option_symbol("AAPL250230C00225000"))
        self.assertIsNone(parse_option_symbol("AAPL241200C00225000"))

    def test_leap_day_is_valid(self):
        self.assertEqual(
            parse_option_symbol("AAPL240229C00225000").expiration_date,
            datetime.date(2024, 2, 29),
        )

    def test_returns_none_for_non_string(self):
        self.assertIsNone(parse_option_symbol(None))  # type: ignore[arg-type]
        self.assertIsNone(parse_option_symbol(241206))  # type: ignore[arg-type]


class TestFormatOptionSymbol(unittest.TestCase):
    """Tests for format_option_symbol()."""

    def test_formats_parsed_symbol_back(self):
        for symbol in ("AAPL241206C00225000", "SPY251031P00450500", "GOOGL251024C02500000", "XYZ251031C00012125"):
            with self.subTest(symbol=symbol):
                self.assertEqual(format_option_symbol(parse_option_symbol(symbol)), symbol)

    def test_symbol_property(self):
        option = OptionIdentifier(
            underlying="F",
            expiration_date=datetime.date(2025, 10, 24),
            contract_kind=ContractKind.PUT,
            strike_price=Decimal("10"),
        )
        self.assertEqual(option.symbol, "F251024P00010000")

    def test_rejects_lowercase_underlying(self):
        option = OptionIdentifier("aapl", datetime.date(2024, 12, 6), ContractKind.CALL, Decimal("225"))
        with self.assertRaises(ValueError):
            format_option_symbol(option)

    def test_rejects_year_outside_century(self):
        option = OptionIdentifier("AAPL", datetime.date(2124, 12, 6), ContractKind.CALL, Decimal("225"))
        with self.assertRaises(ValueError):
            format_option_symbol(option)

    def test_rejects_sub_thousandth_strike(self):
        option = OptionIdentifier("AAPL", datetime.date(2024, 12, 6), ContractKind.CALL, Decimal("225.0001"))
        with self.assertRaises(ValueError):
            format_option_symbol(option)

    def test_rejects_strike_too_large(self):
        option = OptionIdentifier("AAPL", datetime.date(2024, 12, 6), ContractKind.CALL, Decimal("100000"))
        with self.assertRaises(ValueError):
            format_option_symbol(option)


class TestOptionIdentifier(unittest.TestCase):

    def test_is_frozen(self):
        option = parse_option_symbol("AAPL241206C00225000")
        with self.assertRaises(FrozenInstanceError):
            option.strike_price = Decimal("1")  # type: ignore[misc]

    def test_equal_symbols_give_equal_identifiers(self):
        self.assertEqual(
            parse_option_symbol("AAPL241206C00225000"),
            parse_option_symbol("AAPL241206C00225000"),
        )

    def test_contract_kind_codes(self):
        self.assertEqual(ContractKind.CALL.code, "C")
        self.assertEqual(ContractKind.PUT.code, "P")
