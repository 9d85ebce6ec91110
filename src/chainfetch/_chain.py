"""
At-the-money helpers for option chains.

Given the strikes of a chain (or the raw OSI symbols returned by the
market-data API) and the underlying's price, these functions find the
at-the-money strike and the window of strikes to display around it.

Example:
    >>> from chainfetch import atm_index, strikes_from_symbols
    >>> strikes = strikes_from_symbols([
    ...     "AAPL241206C00220000",
    ...     "AAPL241206C00225000",
    ...     "AAPL241206P00230000",
    ... ])
    >>> atm_index(strikes, underlying_price=226.4)
    1
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from chainfetch._symbols import parse_option_symbol

logger = logging.getLogger(__name__)


def _as_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def strikes_from_symbols(symbols: Iterable[str]) -> list[Decimal]:
    """
    Collect the distinct strikes of a chain, sorted ascending.

    Malformed symbols are logged and skipped.

    Args:
        symbols: OSI option symbols (calls and puts may be mixed).

    Returns:
        Sorted list of unique strikes.
    """
    strikes: set[Decimal] = set()
    for symbol in symbols:
        option = parse_option_symbol(symbol)
        if option is None:
            logger.warning(f"❌ Invalid OSI format: {symbol}")
            continue
        strikes.add(option.strike_price)
    return sorted(strikes)


def find_atm_strike(
    strikes: Iterable[Decimal],
    underlying_price: Decimal | float,
) -> Decimal | None:
    """
    Return the strike closest to the underlying price.

    Ties resolve to the lower strike. Returns None for an empty chain.

    Raises:
        ValueError: If the price is NaN or infinite.
    """
    price = _as_decimal(underlying_price)
    if not price.is_finite():
        raise ValueError(f"Underlying price must be finite: {underlying_price}")
    atm_strike: Decimal | None = None
    min_diff: Decimal | None = None

    for strike in sorted(set(strikes)):
        diff = abs(strike - price)
        if min_diff is None or diff < min_diff:
            min_diff = diff
            atm_strike = strike

    return atm_strike


def centered_strikes(
    strikes: Iterable[Decimal],
    underlying_price: Decimal | float,
    display_limit: int | None = None,
) -> list[Decimal]:
    """
    Return up to `display_limit` strikes centered on the at-the-money strike.

    The window is shifted, never shrunk, when ATM sits near either end of
    the chain (as long as the chain has enough strikes).

    Args:
        strikes: Chain strikes, in any order, duplicates allowed.
        underlying_price: Current underlying price.
        display_limit: Maximum strikes to return. None or -1 returns all.

    Returns:
        Sorted strikes to display.
    """
    assert display_limit is None or display_limit == -1 or display_limit > 0, \
        "display_limit must be > 0, -1 or None."

    all_strikes = sorted(set(strikes))
    if display_limit is None or display_limit == -1 or len(all_strikes) <= display_limit:
        return all_strikes

    atm_strike = find_atm_strike(all_strikes, underlying_price)
    atm_position = all_strikes.index(atm_strike)

    half = display_limit // 2
    start = max(0, min(atm_position - half, len(all_strikes) - display_limit))
    return all_strikes[start:start + display_limit]


def atm_index(
    strikes: Sequence[Decimal],
    underlying_price: Decimal | float,
    display_limit: int | None = None,
) -> int:
    """
    Return the position of the at-the-money strike inside the displayed window.

    Falls back to the middle of the window when ATM is not displayed
    (or the chain is empty).
    """
    displayed = centered_strikes(strikes, underlying_price, display_limit)
    atm_strike = find_atm_strike(strikes, underlying_price)

    if atm_strike is not None and atm_strike in displayed:
        return displayed.index(atm_strike)
    return len(displayed) // 2
