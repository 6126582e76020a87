"""Royalty and rate conversion arithmetic.

Everything here is exact integer math on smallest units.
"""

from poolswap.models import Direction, ExchangeRate, SwapQuote, TokenPair

BASIS_POINTS = 10_000


def royalty_for(amount: int, royalty_bps: int) -> int:
    """Royalty on ``amount``, rounded down."""
    return amount * royalty_bps // BASIS_POINTS


def convert(pair: TokenPair, direction: Direction, amount: int, rate: ExchangeRate) -> int:
    """Convert ``amount`` of the from-token at ``rate`` without any fee.

    The rate is quoted as counter per base, so a redeem uses its reciprocal.
    The result is floored to the to-token's smallest unit.
    """
    from_token, to_token = pair.tokens_for(direction)
    if direction is Direction.SWAP:
        num, den = rate.numerator, rate.denominator
    else:
        num, den = rate.denominator, rate.numerator
    return amount * num * to_token.unit // (den * from_token.unit)


def compute_quote(
    pair: TokenPair,
    direction: Direction,
    input_amount: int,
    rate: ExchangeRate,
    royalty_bps: int,
) -> SwapQuote:
    """Deduct the royalty from the input, then convert the remainder."""
    royalty = royalty_for(input_amount, royalty_bps)
    net = input_amount - royalty
    return SwapQuote(
        direction=direction,
        input_amount=input_amount,
        royalty_amount=royalty,
        net_input_amount=net,
        output_amount=convert(pair, direction, net, rate),
        rate=rate,
    )
