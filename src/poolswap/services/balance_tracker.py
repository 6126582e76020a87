"""Cached token balances for the active account."""

import logging
from typing import Optional

from poolswap.errors import UnknownRemoteError
from poolswap.ledger.base import LedgerClient
from poolswap.models import Balance, Token

logger = logging.getLogger(__name__)


class BalanceTracker:
    """Read-through cache of ``balanceOf``.

    Balances are only ever replaced by a fresh read, never inferred from an
    unconfirmed transaction.
    """

    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger
        self._balances: dict[tuple[str, str], Balance] = {}

    @staticmethod
    def _key(token: Token, owner: str) -> tuple[str, str]:
        return token.symbol, owner.lower()

    def get_balance(self, token: Token, owner: str) -> Optional[Balance]:
        """Cached balance, or None while it has not been loaded yet."""
        return self._balances.get(self._key(token, owner))

    async def refresh(self, token: Token, owner: str) -> Balance:
        """Read the balance from the ledger and replace the cache entry.

        Raises:
            UnknownRemoteError: if the read fails; the previous entry is kept
        """
        try:
            raw = await self.ledger.balance_of(token.address, owner)
        except Exception as e:
            logger.error(f"Failed to fetch {token.symbol} balance for {owner}: {e}")
            raise UnknownRemoteError(f"Could not load {token.symbol} balance", token=token.symbol) from e

        balance = Balance(token=token.symbol, owner=owner, amount=raw)
        self._balances[self._key(token, owner)] = balance
        logger.debug(f"{token.symbol} balance for {owner}: {raw}")
        return balance

    async def load(self, token: Token, owner: str) -> Balance:
        """Cached balance, reading it on first use."""
        return self.get_balance(token, owner) or await self.refresh(token, owner)
