"""
OSI (Options Symbology Initiative) option symbol codec.

Layout: <TICKER><YYMMDD><C|P><8-digit strike>, for example AAPL241206C00225000:

    AAPL      underlying ticker (uppercase letters)
    241206    expiration date, 2024-12-06 (century fixed at 2000)
    C         contract kind (C = call, P = put)
    00225000  strike in thousandths of a dollar (225.000)

Parsing never raises: malformed symbols yield None and the caller decides how
to report them.

Example:
    >>> from chainfetch import parse_option_symbol
    >>> option = parse_option_symbol("AAPL241206C00225000")
    >>> option.underlying, option.expiration_date.isoformat(), option.contract_kind, option.strike_price
    ('AAPL', '2024-12-06', <ContractKind.CALL: 'call'>, Decimal('225'))
    >>> parse_option_symbol("AAPL2024C225") is None
    True
"""

from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

logger = logging.getLogger(__name__)

_OSI_PATTERN = re.compile(r"([A-Z]+)([0-9]{6})([CP])([0-9]{8})")

_STRIKE_SCALE = Decimal(1000)
_MAX_STRIKE_UNITS = 99_999_999


class ContractKind(StrEnum):
    """Option contract kind."""

    CALL = "call"
    PUT = "put"

    @property
    def code(self) -> str:
        """The single-letter OSI code ("C" or "P")."""
        return "C" if self is ContractKind.CALL else "P"


@dataclass(frozen=True)
class OptionIdentifier:
    """
    Structured form of an OSI option symbol.

    Attributes:
        underlying: Underlying ticker, e.g. "AAPL".
        expiration_date: Expiration calendar date.
        contract_kind: Call or put.
        strike_price: Strike in dollars, exact to the thousandth.
    """

    underlying: str
    expiration_date: datetime.date
    contract_kind: ContractKind
    strike_price: Decimal

    @property
    def is_call(self) -> bool:
        return self.contract_kind is ContractKind.CALL

    @property
    def symbol(self) -> str:
        """The OSI symbol for this contract."""
        return format_option_symbol(self)


def parse_option_symbol(symbol: str) -> OptionIdentifier | None:
    """
    Parse an OSI option symbol.

    The strike's raw integer is read as thousandths of a dollar, so 00450500
    becomes 450.5 and an adjusted contract's 00012125 keeps all of 12.125.

    Args:
        symbol: The symbol to parse, e.g. "SPY251031C00450500".

    Returns:
        The parsed OptionIdentifier, or None if the symbol is malformed
        (wrong digit counts, lowercase letters, unknown contract kind,
        trailing characters, impossible calendar date).
    """
    if not isinstance(symbol, str):
        return None

    match = _OSI_PATTERN.fullmatch(symbol)
    if match is None:
        logger.debug(f"Invalid OSI symbol: {symbol!r}")
        return None

    underlying, date_digits, kind_code, strike_digits = match.groups()

    try:
        expiration_date = datetime.date(
            2000 + int(date_digits[0:2]),
            int(date_digits[2:4]),
            int(date_digits[4:6]),
        )
    except ValueError:
        logger.debug(f"Invalid expiration date in OSI symbol: {symbol!r}")
        return None

    strike_price = Decimal(strike_digits) / _STRIKE_SCALE

    return OptionIdentifier(
        underlying=underlying,
        expiration_date=expiration_date,
        contract_kind=ContractKind.CALL if kind_code == "C" else ContractKind.PUT,
        strike_price=strike_price,
    )


def format_option_symbol(option: OptionIdentifier) -> str:
    """
    Encode an OptionIdentifier as an OSI symbol.

    Args:
        option: The contract to encode.

    Returns:
        The OSI symbol, e.g. "AAPL241206C00225000".

    Raises:
        ValueError: If a field cannot be represented in the fixed layout.
    """
    if not re.fullmatch(r"[A-Z]+", option.underlying or ""):
        raise ValueError(f"Underlying must be uppercase letters: {option.underlying!r}")

    year = option.expiration_date.year
    if not 2000 <= year <= 2099:
        raise ValueError(f"Expiration year must be within 2000-2099: {year}")

    units = Decimal(option.strike_price) * _STRIKE_SCALE
    if units != units.to_integral_value() or not 0 <= units <= _MAX_STRIKE_UNITS:
        raise ValueError(f"Strike cannot be encoded in 8 digits: {option.strike_price}")

    return (
        f"{option.underlying}"
        f"{option.expiration_date:%y%m%d}"
        f"{ContractKind(option.contract_kind).code}"
        f"{int(units):08d}"
    )
