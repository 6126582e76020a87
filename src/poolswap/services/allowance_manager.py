"""Spending allowance checks and approval transactions.

One manager serves every token; state is kept per token symbol.
"""

import logging
from enum import Enum
from typing import Optional

from poolswap.errors import UnknownRemoteError
from poolswap.ledger.base import LedgerClient
from poolswap.models import Allowance, PendingTransaction, Token, TxKind, TxStatus
from poolswap.services.transaction_coordinator import TransactionCoordinator, TransactionHandle

logger = logging.getLogger(__name__)


class AllowanceState(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    SUFFICIENT = "sufficient"
    INSUFFICIENT = "insufficient"
    APPROVING = "approving"
    APPROVED = "approved"
    FAILED = "failed"


class AllowanceManager:
    """Tracks allowances granted to a single spender (the pool).

    The cache is only replaced by reads. A confirmed approval invalidates it
    and triggers a re-read instead of assuming the approved value.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        coordinator: TransactionCoordinator,
        spender: str,
    ):
        self.ledger = ledger
        self.coordinator = coordinator
        self.spender = spender
        self._allowances: dict[str, Allowance] = {}
        self._states: dict[str, AllowanceState] = {}

    def state(self, token: Token) -> AllowanceState:
        return self._states.get(token.symbol, AllowanceState.UNKNOWN)

    def cached(self, token: Token) -> Optional[Allowance]:
        return self._allowances.get(token.symbol)

    def invalidate(self, token: Token) -> None:
        """Forget the cached allowance so the next check re-reads it."""
        self._allowances.pop(token.symbol, None)
        if self.state(token) is not AllowanceState.APPROVING:
            self._states[token.symbol] = AllowanceState.UNKNOWN

    async def check_allowance(self, token: Token, owner: str, refresh: bool = False) -> Allowance:
        """Return the allowance for ``owner`` -> spender, reading it if needed.

        Raises:
            UnknownRemoteError: if the read fails
        """
        cached = self._allowances.get(token.symbol)
        if cached is not None and cached.owner.lower() == owner.lower() and not refresh:
            return cached

        # approving/approved survive a read; needs_approval settles the rest
        keep = self.state(token) in (AllowanceState.APPROVING, AllowanceState.APPROVED)
        if not keep:
            self._states[token.symbol] = AllowanceState.CHECKING
        try:
            raw = await self.ledger.allowance(token.address, owner, self.spender)
        except Exception as e:
            logger.error(f"Failed to read {token.symbol} allowance for {owner}: {e}")
            if not keep:
                self._states[token.symbol] = AllowanceState.UNKNOWN
            raise UnknownRemoteError(f"Could not load {token.symbol} allowance", token=token.symbol) from e

        allowance = Allowance(
            owner=owner,
            spender=self.spender,
            token=token.symbol,
            current_amount=raw,
        )
        self._allowances[token.symbol] = allowance
        logger.debug(f"{token.symbol} allowance {owner} -> {self.spender}: {raw}")
        return allowance

    def needs_approval(self, token: Token, amount: int) -> bool:
        """True iff ``amount`` exceeds the cached allowance (unknown counts as zero)."""
        allowance = self._allowances.get(token.symbol)
        current = allowance.current_amount if allowance else 0
        needed = amount > current

        if self.state(token) is not AllowanceState.APPROVING:
            self._states[token.symbol] = (
                AllowanceState.INSUFFICIENT if needed else AllowanceState.SUFFICIENT
            )
        return needed

    async def approve(self, token: Token, owner: str, amount: int) -> TransactionHandle:
        """Simulate and submit ``approve(spender, amount)``.

        Raises:
            SimulationError: if the approval would revert; nothing is submitted
            UnknownRemoteError: if the simulation could not run
            TransactionInFlightError: if an approval for this token is pending
        """
        logger.info(f"Approving {amount} {token.symbol} for {self.spender}")
        try:
            request = await self.coordinator.prepare(
                token.address,
                "approve",
                (self.spender, amount),
                owner,
                token=token.symbol,
            )
            handle = await self.coordinator.submit(request, TxKind.APPROVE, token.symbol)
        except Exception:
            self._states[token.symbol] = AllowanceState.FAILED
            raise

        self._states[token.symbol] = (
            AllowanceState.FAILED if handle.status is TxStatus.FAILED else AllowanceState.APPROVING
        )
        return handle

    async def await_approval(self, token: Token, handle: TransactionHandle) -> PendingTransaction:
        """Wait for an approval to finish and re-read the allowance if it confirmed."""
        tx = await handle.wait()
        if tx.status is not TxStatus.CONFIRMED:
            logger.warning(f"{token.symbol} approval ended as {tx.status.value}: {tx.error}")
            self._states[token.symbol] = AllowanceState.FAILED
            return tx

        self._states[token.symbol] = AllowanceState.APPROVED
        self._allowances.pop(token.symbol, None)
        try:
            await self.check_allowance(token, tx.owner, refresh=True)
        except UnknownRemoteError as e:
            # The cache stays empty, so the next check reads again
            logger.warning(f"Allowance re-read after approval failed: {e}")
        return tx
