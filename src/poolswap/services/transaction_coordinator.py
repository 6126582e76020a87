"""Transaction preparation, submission and receipt tracking.

Lifecycle: submitted -> confirming -> confirmed | failed | timed_out.
Receipts are polled, never pushed. Ledger failures are converted into typed
errors at this boundary; callers read them from the handle.
"""

import asyncio
import logging
from typing import Optional, Sequence

from poolswap.errors import (
    NetworkTimeoutError,
    SimulationError,
    TransactionRevertedError,
    UnknownRemoteError,
    UserDeclinedError,
)
from poolswap.ledger.base import ContractRevertError, LedgerClient, SignatureRejectedError
from poolswap.models import PendingTransaction, PreparedRequest, TxKind, TxStatus
from poolswap.utils.locks import LaneKey, LaneLockRegistry

logger = logging.getLogger(__name__)


class TransactionHandle:
    """Awaitable view of one submitted transaction.

    Polling starts at submission and keeps running even if every waiter
    goes away, so a signed transaction always reaches a terminal status.
    """

    def __init__(self, tx: PendingTransaction):
        self.tx = tx
        self._task: Optional[asyncio.Task] = None

    @property
    def hash(self) -> Optional[str]:
        return self.tx.hash

    @property
    def kind(self) -> TxKind:
        return self.tx.kind

    @property
    def status(self) -> TxStatus:
        return self.tx.status

    @property
    def error(self) -> Optional[Exception]:
        return self.tx.error

    async def wait(self) -> PendingTransaction:
        """Wait until the transaction is terminal and return its record."""
        if self._task is None or self.tx.is_terminal:
            return self.tx
        return await asyncio.shield(self._task)

    def __repr__(self) -> str:
        return f"TransactionHandle({self.tx.kind.value}, {self.tx.hash}, {self.tx.status.value})"


class TransactionCoordinator:
    """Submits prepared transactions and tracks them to a terminal status."""

    def __init__(
        self,
        ledger: LedgerClient,
        poll_interval: float = 2.0,
        receipt_timeout: float = 120.0,
        locks: Optional[LaneLockRegistry] = None,
        max_tracked: int = 100,
    ):
        self.ledger = ledger
        self.poll_interval = poll_interval
        self.receipt_timeout = receipt_timeout
        self.locks = locks or LaneLockRegistry()
        self.max_tracked = max_tracked
        self._transactions: dict[str, PendingTransaction] = {}

    @property
    def transactions(self) -> list[PendingTransaction]:
        """Recently submitted transactions, oldest first.

        At most ``max_tracked`` are kept; pending ones are never dropped.
        """
        return list(self._transactions.values())

    def status(self, handle: TransactionHandle) -> TxStatus:
        return handle.tx.status

    def in_flight(self, owner: str, token: str, kind: TxKind) -> bool:
        return self.locks.is_busy(owner, token, kind.lane)

    async def prepare(
        self,
        contract_address: str,
        function_name: str,
        args: Sequence,
        sender: str,
        token: Optional[str] = None,
    ) -> PreparedRequest:
        """Simulate a call before the user is asked to sign it.

        Raises:
            SimulationError: if the call would revert
            UnknownRemoteError: if the simulation itself could not run
        """
        try:
            return await self.ledger.simulate(contract_address, function_name, args, sender)
        except ContractRevertError as e:
            logger.warning(f"Pre-flight {function_name}{tuple(args)} reverted: {e}")
            raise SimulationError(f"{function_name} would fail: {e}", token=token) from e
        except Exception as e:
            logger.error(f"Pre-flight {function_name} failed: {e}")
            raise UnknownRemoteError(f"Could not simulate {function_name}: {e}", token=token) from e

    async def submit(
        self,
        request: PreparedRequest,
        kind: TxKind,
        token: str,
    ) -> TransactionHandle:
        """Submit a prepared request and start tracking it.

        A declined signature or failed broadcast returns an already-failed
        handle; nothing is retried.

        Raises:
            TransactionInFlightError: if the same account/token/lane is busy
        """
        key = await self.locks.claim(request.sender, token, kind.lane)
        tx = PendingTransaction(hash=None, kind=kind, token=token, owner=request.sender)
        handle = TransactionHandle(tx)

        try:
            tx.hash = await self.ledger.submit_transaction(request)
        except SignatureRejectedError as e:
            logger.info(f"User declined {kind.value} for {token}")
            self._fail(tx, key, UserDeclinedError(f"{kind.value} was rejected in the wallet", token=token))
            return handle
        except Exception as e:
            logger.error(f"Submitting {kind.value} for {token} failed: {e}")
            self._fail(tx, key, UnknownRemoteError(f"Could not submit {kind.value}: {e}", token=token))
            return handle

        self._transactions[tx.hash] = tx
        self._prune()
        logger.info(f"Submitted {kind.value} for {token}: {tx.hash}")
        handle._task = asyncio.create_task(self._track(tx, key))
        return handle

    def _prune(self) -> None:
        """Forget the oldest terminal transactions beyond ``max_tracked``."""
        excess = len(self._transactions) - self.max_tracked
        if excess <= 0:
            return
        stale = [h for h, tx in self._transactions.items() if tx.is_terminal][:excess]
        for tx_hash in stale:
            del self._transactions[tx_hash]

    def _fail(self, tx: PendingTransaction, key: LaneKey, error: Exception) -> None:
        tx.status = TxStatus.FAILED
        tx.error = error
        self.locks.release(key)

    async def _track(self, tx: PendingTransaction, key: LaneKey) -> PendingTransaction:
        """Poll for a receipt until confirmed, reverted or out of time."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.receipt_timeout
        tx.status = TxStatus.CONFIRMING

        try:
            while True:
                try:
                    receipt = await self.ledger.get_receipt(tx.hash)
                except Exception as e:
                    # Transient read error; the next poll re-checks the same hash
                    logger.warning(f"Receipt poll for {tx.hash} failed: {e}")
                    receipt = None

                if receipt is not None:
                    tx.block_number = receipt.block_number
                    if receipt.success:
                        tx.status = TxStatus.CONFIRMED
                        logger.info(f"{tx.kind.value} {tx.hash} confirmed in block {receipt.block_number}")
                    else:
                        tx.status = TxStatus.FAILED
                        tx.error = TransactionRevertedError(
                            f"{tx.kind.value} reverted on-chain", token=tx.token
                        )
                        logger.warning(f"{tx.kind.value} {tx.hash} reverted in block {receipt.block_number}")
                    return tx

                if loop.time() >= deadline:
                    tx.status = TxStatus.TIMED_OUT
                    tx.error = NetworkTimeoutError(
                        f"No receipt for {tx.hash} after {self.receipt_timeout:.0f}s", token=tx.token
                    )
                    logger.warning(f"{tx.kind.value} {tx.hash} timed out")
                    return tx

                await asyncio.sleep(self.poll_interval)
        finally:
            self.locks.release(key)
