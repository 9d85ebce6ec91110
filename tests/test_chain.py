"""Tests for option chain ATM helpers."""

import logging
from decimal import Decimal

import pytest

from chainfetch import atm_index, centered_strikes, find_atm_strike, strikes_from_symbols


def strikes(*values) -> list[Decimal]:
    return [Decimal(str(v)) for v in values]


CHAIN = strikes(100, 110, 120, 130, 140, 150, 160, 170, 180, 190, 200)


class TestStrikesFromSymbols:

    def test_collects_unique_sorted_strikes(self):
        result = strikes_from_symbols([
            "AAPL241206P00230000",
            "AAPL241206C00220000",
            "AAPL241206C00230000",
            "AAPL241206C00225000",
        ])

        assert result == strikes(220, 225, 230)

    def test_skips_and_logs_malformed_symbols(self, caplog):
        with caplog.at_level(logging.WARNING, logger="chainfetch._chain"):
            result = strikes_from_symbols(["AAPL241206C00220000", "AAPL2024C225"])

        assert result == strikes(220)
        assert "Invalid OSI format: AAPL2024C225" in caplog.text

    def test_empty_input(self):
        assert strikes_from_symbols([]) == []


class TestFindAtmStrike:

    def test_picks_nearest_strike(self):
        assert find_atm_strike(CHAIN, 152.3) == Decimal("150")
        assert find_atm_strike(CHAIN, Decimal("157")) == Decimal("160")

    def test_tie_resolves_to_lower_strike(self):
        assert find_atm_strike(CHAIN, 155) == Decimal("150")

    def test_price_outside_chain(self):
        assert find_atm_strike(CHAIN, 20) == Decimal("100")
        assert find_atm_strike(CHAIN, 999) == Decimal("200")

    def test_unsorted_input(self):
        assert find_atm_strike(strikes(130, 110, 120), 118) == Decimal("120")

    def test_empty_chain(self):
        assert find_atm_strike([], 100) is None

    @pytest.mark.parametrize("price", [float("nan"), float("inf"), Decimal("NaN"), Decimal("-Infinity")])
    def test_non_finite_price_is_rejected(self, price):
        with pytest.raises(ValueError, match="Underlying price must be finite"):
            find_atm_strike(CHAIN, price)

    def test_non_finite_price_is_rejected_by_atm_index(self):
        with pytest.raises(ValueError):
            atm_index(CHAIN, float("nan"), display_limit=5)


class TestCenteredStrikes:

    def test_window_centered_on_atm(self):
        assert centered_strikes(CHAIN, 152, display_limit=5) == strikes(130, 140, 150, 160, 170)

    def test_window_shifted_near_top(self):
        assert centered_strikes(CHAIN, 198, display_limit=5) == strikes(160, 170, 180, 190, 200)

    def test_window_shifted_near_bottom(self):
        assert centered_strikes(CHAIN, 101, display_limit=5) == strikes(100, 110, 120, 130, 140)

    def test_even_display_limit(self):
        assert centered_strikes(CHAIN, 152, display_limit=4) == strikes(130, 140, 150, 160)

    @pytest.mark.parametrize("display_limit", [None, -1, 11, 50])
    def test_returns_all_strikes_when_unlimited_or_large(self, display_limit):
        assert centered_strikes(CHAIN, 152, display_limit=display_limit) == CHAIN

    def test_deduplicates_and_sorts(self):
        assert centered_strikes(strikes(120, 100, 110, 100), 105) == strikes(100, 110, 120)

    def test_invalid_display_limit(self):
        with pytest.raises(AssertionError, match="display_limit"):
            centered_strikes(CHAIN, 152, display_limit=0)


class TestAtmIndex:

    def test_position_inside_window(self):
        assert atm_index(CHAIN, 152, display_limit=5) == 2

    def test_position_near_top(self):
        assert atm_index(CHAIN, 198, display_limit=5) == 4

    def test_position_near_bottom(self):
        assert atm_index(CHAIN, 101, display_limit=5) == 0

    def test_full_chain(self):
        assert atm_index(CHAIN, 152) == 5

    def test_empty_chain_falls_back_to_zero(self):
        assert atm_index([], 152) == 0
