"""Concurrency control for in-flight transactions.

At most one transaction per (account, token, lane) may be pending. A lane
is either ``approve`` or ``transfer`` (swap/redeem).
"""

import asyncio
import logging

from poolswap.errors import TransactionInFlightError

logger = logging.getLogger(__name__)

LaneKey = tuple[str, str, str]


class LaneLockRegistry:
    """Registry of per-lane locks held from submission until a terminal status.

    Unlike a waiting lock, claiming a busy lane fails immediately: a second
    submission for the same logical action is refused, not queued.

    Example:
        key = await locks.claim(owner, "USDC", "approve")
        try:
            ...  # submit and poll
        finally:
            locks.release(key)
    """

    def __init__(self):
        self._locks: dict[LaneKey, asyncio.Lock] = {}

    @staticmethod
    def key(account: str, token: str, lane: str) -> LaneKey:
        return account.lower(), token.upper(), lane

    def get_lock(self, key: LaneKey) -> asyncio.Lock:
        """Get or create the lock for a lane."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def is_busy(self, account: str, token: str, lane: str) -> bool:
        lock = self._locks.get(self.key(account, token, lane))
        return bool(lock and lock.locked())

    async def claim(self, account: str, token: str, lane: str) -> LaneKey:
        """Acquire a lane or raise if a transaction already holds it.

        Raises:
            TransactionInFlightError: if the lane is busy
        """
        key = self.key(account, token, lane)
        lock = self.get_lock(key)
        if lock.locked():
            logger.warning(f"Refusing {lane} for {token}: a transaction is already in flight")
            raise TransactionInFlightError(
                f"A {lane} transaction for {token} is still pending", token=token
            )
        await lock.acquire()
        logger.debug(f"Lane acquired: {key}")
        return key

    def release(self, key: LaneKey) -> None:
        lock = self._locks.get(key)
        if lock and lock.locked():
            lock.release()
            logger.debug(f"Lane released: {key}")

    def clear(self) -> None:
        """Drop all locks (useful for testing)."""
        self._locks.clear()
