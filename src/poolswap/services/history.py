"""Pool transaction history built from on-chain event logs.

``TokensSwapped`` events are mints (USDC in, BLTM out) and
``TokensRedeemed`` events are burns (BLTM in, USDC out).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from poolswap.amounts import format_amount
from poolswap.ledger.base import LedgerClient
from poolswap.models import EventLog, TokenPair

logger = logging.getLogger(__name__)

EVENT_ACTIONS = {
    "TokensSwapped": "mint",
    "TokensRedeemed": "burn",
}

SORT_KEYS = ("block_number", "action", "usdc_amount", "bltm_amount")


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    action: str
    usdc_amount: int
    bltm_amount: int
    block_number: int
    tx_hash: str


class TransactionHistory:
    """Loads pool events once and serves sorted/filtered views of them."""

    def __init__(self, ledger: LedgerClient, pair: TokenPair, from_block: int = 0):
        self.ledger = ledger
        self.pair = pair
        self.from_block = from_block
        self._entries: list[HistoryEntry] = []
        self._fetched = False
        self.is_error = False

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    @staticmethod
    def _to_entry(log: EventLog) -> HistoryEntry:
        return HistoryEntry(
            id=f"{log.tx_hash}-{log.log_index}",
            action=EVENT_ACTIONS[log.event],
            usdc_amount=int(log.args["usdcAmount"]),
            bltm_amount=int(log.args["bltmAmount"]),
            block_number=log.block_number,
            tx_hash=log.tx_hash,
        )

    async def fetch(self, refresh: bool = False) -> list[HistoryEntry]:
        """Load mint and burn events. Returns [] and sets ``is_error`` on failure."""
        if self._fetched and not refresh:
            return self.entries

        try:
            swapped, redeemed = await asyncio.gather(
                self.ledger.get_events("TokensSwapped", self.from_block),
                self.ledger.get_events("TokensRedeemed", self.from_block),
            )
        except Exception as e:
            logger.error(f"Failed to fetch pool events: {e}")
            self.is_error = True
            return []

        self._entries = [self._to_entry(log) for log in [*swapped, *redeemed]]
        self._fetched = True
        self.is_error = False
        logger.info(f"Loaded {len(swapped)} mint and {len(redeemed)} burn events")
        return self.entries

    def query(
        self,
        text: str = "",
        sort_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[HistoryEntry]:
        """Filter by action or amount substring, then sort by one column."""
        entries = self.entries
        needle = text.strip().lower()
        if needle:
            entries = [e for e in entries if self._matches(e, needle)]

        if sort_by is not None:
            if sort_by not in SORT_KEYS:
                raise ValueError(f"Cannot sort by {sort_by!r}; expected one of {SORT_KEYS}")
            entries.sort(key=lambda e: getattr(e, sort_by), reverse=descending)
        return entries

    def _matches(self, entry: HistoryEntry, needle: str) -> bool:
        usdc, bltm = self.pair.base, self.pair.counter
        return (
            needle in entry.action
            or needle in format_amount(entry.usdc_amount, usdc.decimals)
            or needle in format_amount(entry.bltm_amount, bltm.decimals)
            or needle in str(entry.block_number)
        )
