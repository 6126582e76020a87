"""Conversion between user-entered decimal strings and integer token amounts.

Parsing is done on the string itself so large values never pass through a
float.
"""

import re

from poolswap.errors import InputValidationError
from poolswap.models import Token

_AMOUNT_RE = re.compile(r"^(?P<whole>\d*)(?:\.(?P<frac>\d*))?$")

# ERC-20 amounts are uint256
MAX_AMOUNT = 2**256 - 1
MAX_WHOLE_DIGITS = len(str(MAX_AMOUNT))


def parse_amount(text: str, decimals: int) -> int:
    """Parse a decimal string into smallest units.

    Raises:
        InputValidationError: if the text is not a plain non-negative decimal
            or has more significant fractional digits than ``decimals``,
            or does not fit in a uint256.
    """
    value = (text or "").strip().replace(",", "")
    match = _AMOUNT_RE.match(value)
    if not match or not (match.group("whole") or match.group("frac")):
        raise InputValidationError(f"Not a valid amount: {text!r}")

    whole = match.group("whole").lstrip("0") or "0"
    if len(whole) > MAX_WHOLE_DIGITS:
        raise InputValidationError("Amount is too large")
    frac = (match.group("frac") or "").rstrip("0")
    if len(frac) > decimals:
        raise InputValidationError(
            f"Amount {text!r} has more than {decimals} decimal places"
        )

    amount = int(whole) * 10**decimals + int(frac.ljust(decimals, "0") or "0")
    if amount > MAX_AMOUNT:
        raise InputValidationError("Amount is too large")
    return amount


def format_amount(amount: int, decimals: int) -> str:
    """Render smallest units as a decimal string without trailing zeros."""
    if amount < 0:
        return "-" + format_amount(-amount, decimals)
    whole, frac = divmod(amount, 10**decimals)
    if decimals == 0 or frac == 0:
        return str(whole)
    return f"{whole}.{str(frac).zfill(decimals).rstrip('0')}"


def validate_amount(text: str, token: Token) -> int:
    """Parse an amount the user wants to spend. Zero is rejected."""
    amount = parse_amount(text, token.decimals)
    if amount == 0:
        raise InputValidationError("Amount must be greater than zero", token=token.symbol)
    return amount
