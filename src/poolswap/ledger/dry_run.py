"""In-memory ledger simulating the two tokens and the liquidity pool.

Used in dry-run mode and by the test suite. State changes only happen when
a submitted transaction is "mined", i.e. when its receipt is first returned.
"""

import hashlib
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence

from poolswap.ledger.base import (
    ContractRevertError,
    LedgerClient,
    LedgerError,
    SignatureRejectedError,
)
from poolswap.models import (
    Direction,
    EventLog,
    ExchangeRate,
    PreparedRequest,
    Receipt,
    TokenPair,
)
from poolswap.pricing import compute_quote

logger = logging.getLogger(__name__)


@dataclass
class _MempoolEntry:
    request: PreparedRequest
    polls_remaining: int
    revert: bool = False
    dropped: bool = False


class DryRunLedger(LedgerClient):
    """
    Simulated ledger for local runs and tests.

    Provides:
    - ERC-20 balances and allowances per (token, owner)
    - Pool exchange rate with royalty on swap and redeem
    - Fault injection: failing reads, declined signatures, reverted or
      dropped transactions, delayed receipts
    - Per-method call counters
    """

    def __init__(
        self,
        pair: TokenPair,
        pool_address: str,
        exchange_rate: Optional[int] = 1,
        rate_scale: int = 1,
        royalty_bps: int = 200,
        swap_function: str = "swapUsdcForBltm",
        redeem_function: str = "redeemBltmForUsdc",
        receipt_delay: int = 0,
    ):
        self.pair = pair
        self.pool_address = pool_address
        self.rate_raw = exchange_rate
        self.rate_scale = rate_scale
        self.royalty_bps = royalty_bps
        self.receipt_delay = receipt_delay
        self._functions = {
            swap_function: Direction.SWAP,
            redeem_function: Direction.REDEEM,
        }

        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str, str], int] = {}
        self._mempool: dict[str, _MempoolEntry] = {}
        self._receipts: dict[str, Receipt] = {}
        self._events: list[EventLog] = []
        self._block = 1
        self._nonce = 0

        self.calls: Counter = Counter()
        self.submitted: list[PreparedRequest] = []

        # Fault injection
        self.failing: set[str] = set()
        self.decline_next = False
        self.revert_next = False
        self.drop_next = False

    @property
    def name(self) -> str:
        return "dry_run"

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def fund(self, token_address: str, owner: str, amount: int) -> None:
        """Set the balance of ``owner``."""
        self._balances[(token_address.lower(), owner.lower())] = amount

    def set_allowance(self, token_address: str, owner: str, spender: str, amount: int) -> None:
        self._allowances[(token_address.lower(), owner.lower(), spender.lower())] = amount

    def get_balance(self, token_address: str, owner: str) -> int:
        return self._balances.get((token_address.lower(), owner.lower()), 0)

    def get_allowance(self, token_address: str, owner: str, spender: str) -> int:
        return self._allowances.get(
            (token_address.lower(), owner.lower(), spender.lower()), 0
        )

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def _record(self, method: str) -> None:
        self.calls[method] += 1
        if method in self.failing:
            raise LedgerError(f"Simulated {method} failure")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def balance_of(self, token_address: str, owner: str) -> int:
        self._record("balance_of")
        return self.get_balance(token_address, owner)

    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        self._record("allowance")
        return self.get_allowance(token_address, owner, spender)

    async def exchange_rate(self) -> int:
        self._record("exchange_rate")
        if self.rate_raw is None:
            raise LedgerError("Pool has no exchange rate")
        return self.rate_raw

    async def block_number(self) -> int:
        self._record("block_number")
        return self._block

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _check(self, contract_address: str, function_name: str, args: Sequence, sender: str) -> None:
        """Raise ContractRevertError if the call would revert right now."""
        tokens = {token.address.lower(): token for token in self.pair}

        if contract_address.lower() in tokens:
            if function_name != "approve" or len(args) != 2:
                raise ContractRevertError(f"Unknown token function {function_name}")
            if int(args[1]) < 0:
                raise ContractRevertError("approve: negative value")
            return

        if contract_address.lower() != self.pool_address.lower():
            raise ContractRevertError(f"No contract at {contract_address}")

        direction = self._functions.get(function_name)
        if direction is None or len(args) != 1:
            raise ContractRevertError(f"Unknown pool function {function_name}")
        if not self.rate_raw:
            raise ContractRevertError("Exchange rate not set", reason="RATE")

        amount = int(args[0])
        from_token, _ = self.pair.tokens_for(direction)
        if amount <= 0:
            raise ContractRevertError("Amount must be positive", reason="AMOUNT")
        if self.get_balance(from_token.address, sender) < amount:
            raise ContractRevertError(
                "ERC20: transfer amount exceeds balance", reason="BALANCE"
            )
        if self.get_allowance(from_token.address, sender, self.pool_address) < amount:
            raise ContractRevertError("ERC20: insufficient allowance", reason="ALLOWANCE")

    async def simulate(
        self,
        contract_address: str,
        function_name: str,
        args: Sequence,
        sender: str,
    ) -> PreparedRequest:
        self._record("simulate")
        self._check(contract_address, function_name, args, sender)
        return PreparedRequest(
            contract_address=contract_address,
            function_name=function_name,
            args=tuple(args),
            sender=sender,
            payload={"from": sender, "to": contract_address, "function": function_name},
        )

    async def submit_transaction(self, request: PreparedRequest) -> str:
        self._record("submit_transaction")
        if self.decline_next:
            self.decline_next = False
            raise SignatureRejectedError("User rejected the request.")

        self._nonce += 1
        seed = f"{request.sender}:{request.function_name}:{request.args}:{self._nonce}"
        tx_hash = "0x" + hashlib.sha256(seed.encode()).hexdigest()

        self._mempool[tx_hash] = _MempoolEntry(
            request=request,
            polls_remaining=self.receipt_delay,
            revert=self.revert_next,
            dropped=self.drop_next,
        )
        self.revert_next = False
        self.drop_next = False
        self.submitted.append(request)

        logger.info(f"[DRY RUN] Submitted {request.function_name}{request.args} as {tx_hash[:10]}...")
        return tx_hash

    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        self._record("get_receipt")
        if tx_hash in self._receipts:
            return self._receipts[tx_hash]

        entry = self._mempool.get(tx_hash)
        if entry is None or entry.dropped:
            return None
        if entry.polls_remaining > 0:
            entry.polls_remaining -= 1
            return None

        del self._mempool[tx_hash]
        self._block += 1
        receipt = Receipt(tx_hash=tx_hash, success=self._mine(tx_hash, entry), block_number=self._block)
        self._receipts[tx_hash] = receipt
        return receipt

    def _mine(self, tx_hash: str, entry: _MempoolEntry) -> bool:
        """Apply a transaction. Returns False if it reverts."""
        request = entry.request
        if entry.revert:
            logger.info(f"[DRY RUN] {tx_hash[:10]}... reverted (injected)")
            return False
        try:
            self._check(request.contract_address, request.function_name, request.args, request.sender)
        except ContractRevertError as e:
            logger.info(f"[DRY RUN] {tx_hash[:10]}... reverted: {e}")
            return False

        if request.function_name == "approve":
            spender, value = request.args
            self.set_allowance(request.contract_address, request.sender, spender, int(value))
            return True

        direction = self._functions[request.function_name]
        amount = int(request.args[0])
        from_token, to_token = self.pair.tokens_for(direction)
        rate = ExchangeRate(numerator=self.rate_raw, denominator=self.rate_scale)
        quote = compute_quote(self.pair, direction, amount, rate, self.royalty_bps)

        owner = request.sender
        self.fund(from_token.address, owner, self.get_balance(from_token.address, owner) - amount)
        self.fund(to_token.address, owner, self.get_balance(to_token.address, owner) + quote.output_amount)
        self.set_allowance(
            from_token.address,
            owner,
            self.pool_address,
            self.get_allowance(from_token.address, owner, self.pool_address) - amount,
        )

        if direction is Direction.SWAP:
            event, usdc, bltm = "TokensSwapped", amount, quote.output_amount
        else:
            event, usdc, bltm = "TokensRedeemed", quote.output_amount, amount
        self._events.append(
            EventLog(
                event=event,
                tx_hash=tx_hash,
                log_index=0,
                block_number=self._block,
                args={"user": owner, "usdcAmount": usdc, "bltmAmount": bltm},
            )
        )
        return True

    async def get_events(self, event_name: str, from_block: int) -> list[EventLog]:
        self._record("get_events")
        return [e for e in self._events if e.event == event_name and e.block_number >= from_block]
