"""Exchange rate reads and quote derivation."""

import logging
from decimal import Decimal
from typing import Optional

from poolswap.ledger.base import LedgerClient
from poolswap.models import Direction, ExchangeRate, SwapQuote, TokenPair
from poolswap.pricing import compute_quote, convert

logger = logging.getLogger(__name__)


class RateOracle:
    """Reads the pool's exchange rate and derives quotes net of royalty.

    A failed or zero rate read leaves the oracle Pending (``rate is None``);
    it is never treated as a rate of zero.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        pair: TokenPair,
        royalty_bps: int = 200,
        rate_scale: int = 1,
    ):
        self.ledger = ledger
        self.pair = pair
        self.royalty_bps = royalty_bps
        self.rate_scale = rate_scale
        self._rate: Optional[ExchangeRate] = None

    @property
    def rate(self) -> Optional[ExchangeRate]:
        return self._rate

    async def get_rate(self, refresh: bool = False) -> Optional[ExchangeRate]:
        """Return the cached rate, reading it first if missing or ``refresh``."""
        if self._rate is not None and not refresh:
            return self._rate

        try:
            raw = await self.ledger.exchange_rate()
            block = await self.ledger.block_number()
        except Exception as e:
            logger.warning(f"Exchange rate read failed via {self.ledger.name}: {e}")
            return self._rate

        if raw <= 0:
            logger.warning(f"Pool reported non-positive exchange rate {raw}; rate pending")
            self._rate = None
            return None

        self._rate = ExchangeRate(numerator=raw, denominator=self.rate_scale, block_number=block)
        logger.debug(f"Exchange rate {self._rate.as_decimal()} at block {block}")
        return self._rate

    def quote(self, direction: Direction, input_amount: int) -> Optional[SwapQuote]:
        """Quote ``input_amount`` of the from-token, or None if no rate or no amount."""
        if self._rate is None or input_amount <= 0:
            return None
        return compute_quote(self.pair, direction, input_amount, self._rate, self.royalty_bps)

    def convert(self, direction: Direction, amount: int) -> Optional[int]:
        """Fee-free conversion, used to carry an amount across a direction switch."""
        if self._rate is None:
            return None
        return convert(self.pair, direction, amount, self._rate)

    def display_rate(self, direction: Direction) -> Optional[Decimal]:
        """Whole to-token units per whole from-token unit."""
        if self._rate is None:
            return None
        rate = self._rate.as_decimal()
        return rate if direction is Direction.SWAP else Decimal(1) / rate
