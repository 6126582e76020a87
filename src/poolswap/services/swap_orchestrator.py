"""Top-level swap/redeem state machine.

Flow per user action:
1. Validate the entered amount locally (no remote call on bad input)
2. Quote it through the RateOracle
3. Check the from-token balance
4. Check the allowance; offer an approval if it is short
5. Offer the swap/redeem once the allowance covers the amount
6. After a confirmed swap/redeem refresh both balances and reset

Every edit or direction switch starts a new context generation. Work that
was started under an older generation still runs to completion and its
cache effects apply, but its outcome never overwrites the newer context.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from poolswap.amounts import format_amount, validate_amount
from poolswap.contracts import ErrorInfo, SwapSnapshot, TokenInfo, TransactionInfo
from poolswap.errors import (
    InputValidationError,
    InsufficientBalanceError,
    SwapError,
    UnknownRemoteError,
)
from poolswap.models import (
    Direction,
    PendingTransaction,
    SwapQuote,
    Token,
    TokenPair,
    TxKind,
    TxStatus,
)
from poolswap.services.allowance_manager import AllowanceManager
from poolswap.services.balance_tracker import BalanceTracker
from poolswap.services.rate_oracle import RateOracle
from poolswap.services.transaction_coordinator import TransactionCoordinator

logger = logging.getLogger(__name__)


class SwapState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    INSUFFICIENT_INPUT = "insufficient_input"
    AWAITING_RATE = "awaiting_rate"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    NEEDS_APPROVAL = "needs_approval"
    APPROVING = "approving"
    READY = "ready"
    SWAPPING = "swapping"
    FAILED = "failed"


ACTIONABLE_STATES = (SwapState.NEEDS_APPROVAL, SwapState.READY, SwapState.FAILED)

_VERBS = {
    Direction.SWAP: ("Swap", "Swapping..."),
    Direction.REDEEM: ("Redeem", "Redeeming..."),
}


class SwapOrchestrator:
    """Coordinates quote, balance, allowance and transaction components.

    Single-flow: only one approval or swap/redeem runs at a time per
    orchestrator, guarded by ``_action_lock``.
    """

    def __init__(
        self,
        pair: TokenPair,
        owner: str,
        pool_address: str,
        oracle: RateOracle,
        balances: BalanceTracker,
        allowances: AllowanceManager,
        coordinator: TransactionCoordinator,
        swap_function: str = "swapUsdcForBltm",
        redeem_function: str = "redeemBltmForUsdc",
    ):
        self.pair = pair
        self.owner = owner
        self.pool_address = pool_address
        self.oracle = oracle
        self.balances = balances
        self.allowances = allowances
        self.coordinator = coordinator
        self._functions = {
            Direction.SWAP: swap_function,
            Direction.REDEEM: redeem_function,
        }

        self._direction = Direction.SWAP
        self._amount_text = ""
        self._amount: Optional[int] = None
        self._quote: Optional[SwapQuote] = None
        self._state = SwapState.IDLE
        self._last_error: Optional[SwapError] = None
        self._last_tx: Optional[PendingTransaction] = None
        self._generation = 0
        self._action_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SwapState:
        return self._state

    @property
    def direction(self) -> Direction:
        return self._direction

    @property
    def from_token(self) -> Token:
        return self.pair.tokens_for(self._direction)[0]

    @property
    def to_token(self) -> Token:
        return self.pair.tokens_for(self._direction)[1]

    @property
    def quote(self) -> Optional[SwapQuote]:
        return self._quote

    @property
    def amount(self) -> Optional[int]:
        return self._amount

    @property
    def last_error(self) -> Optional[SwapError]:
        return self._last_error

    @property
    def busy(self) -> bool:
        """True while an approval or swap/redeem is being driven."""
        return self._action_lock.locked()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def set_amount(self, value: str) -> SwapSnapshot:
        """Replace the entered amount and re-evaluate from scratch."""
        self._amount_text = value or ""
        self._last_error = None
        await self._evaluate(self._next_generation())
        return self.snapshot()

    async def set_max(self) -> SwapSnapshot:
        """Enter the full from-token balance."""
        token = self.from_token
        try:
            balance = await self.balances.load(token, self.owner)
        except UnknownRemoteError as e:
            self._last_error = e
            return self.snapshot()
        return await self.set_amount(format_amount(balance.amount, token.decimals))

    async def switch_direction(self) -> SwapSnapshot:
        """Reverse the pair, carrying the amount over at the fee-free rate."""
        carried = ""
        if self._amount:
            converted = self.oracle.convert(self._direction, self._amount)
            if converted:
                carried = format_amount(converted, self.to_token.decimals)

        self._direction = self._direction.reversed
        logger.info(f"Direction switched to {self.from_token.symbol} -> {self.to_token.symbol}")
        return await self.set_amount(carried)

    async def reset(self) -> SwapSnapshot:
        self._next_generation()
        self._amount_text = ""
        self._amount = None
        self._quote = None
        self._last_error = None
        self._state = SwapState.IDLE
        return self.snapshot()

    async def perform_action(self) -> SwapSnapshot:
        """Run the action the current state offers (approve, swap/redeem or retry)."""
        if self._action_lock.locked():
            logger.info("Action ignored: a transaction is still being processed")
            return self.snapshot()

        async with self._action_lock:
            state = self._state
            if state is SwapState.FAILED:
                # A retry is a fresh action: re-read everything before offering it again
                self._last_error = None
                await self._evaluate(self._generation, refresh=True)
            elif state is SwapState.NEEDS_APPROVAL:
                await self._run_approval()
            elif state is SwapState.READY:
                await self._run_transfer()
            else:
                logger.debug(f"No action available in state {state.value}")

        return self.snapshot()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _evaluate(self, generation: int, refresh: bool = False) -> None:
        """Recompute quote, balance and allowance sufficiency for the current input."""
        self._quote = None
        self._amount = None

        text = self._amount_text.strip()
        if not text:
            self._state = SwapState.IDLE
            return

        from_token = self.from_token
        try:
            amount = validate_amount(text, from_token)
        except InputValidationError as e:
            self._state = SwapState.INSUFFICIENT_INPUT
            self._last_error = e
            return

        self._amount = amount
        self._state = SwapState.VALIDATING

        await self.oracle.get_rate(refresh=refresh)
        if not self._is_current(generation):
            return

        quote = self.oracle.quote(self._direction, amount)
        if quote is None:
            self._state = SwapState.AWAITING_RATE
            return
        self._quote = quote

        try:
            if refresh:
                balance = await self.balances.refresh(from_token, self.owner)
            else:
                balance = await self.balances.load(from_token, self.owner)
            if not self._is_current(generation):
                return

            if amount > balance.amount:
                self._state = SwapState.INSUFFICIENT_BALANCE
                self._last_error = InsufficientBalanceError(
                    f"Balance {format_amount(balance.amount, from_token.decimals)} "
                    f"{from_token.symbol} is below {text}",
                    token=from_token.symbol,
                )
                return

            await self.allowances.check_allowance(from_token, self.owner, refresh=refresh)
        except UnknownRemoteError as e:
            if self._is_current(generation):
                self._state = SwapState.FAILED
                self._last_error = e
            return

        if not self._is_current(generation):
            return

        if self.allowances.needs_approval(from_token, amount):
            self._state = SwapState.NEEDS_APPROVAL
        else:
            self._state = SwapState.READY
        logger.debug(
            f"{amount} {from_token.symbol} -> {quote.output_amount} {self.to_token.symbol}: "
            f"{self._state.value}"
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _fail(self, generation: int, error: Optional[Exception]) -> None:
        if not self._is_current(generation):
            return
        self._state = SwapState.FAILED
        if isinstance(error, SwapError):
            self._last_error = error
        else:
            self._last_error = UnknownRemoteError(str(error) if error else "Transaction failed")

    async def _run_approval(self) -> None:
        generation = self._generation
        token = self.from_token
        amount = self._amount

        self._state = SwapState.APPROVING
        try:
            handle = await self.allowances.approve(token, self.owner, amount)
        except SwapError as e:
            self._fail(generation, e)
            return

        if self._is_current(generation):
            self._last_tx = handle.tx
        tx = await self.allowances.await_approval(token, handle)

        if not self._is_current(generation):
            logger.info(f"{token.symbol} approval finished after the input changed; re-evaluating")
            await self._evaluate(self._generation)
            return

        if tx.status is TxStatus.CONFIRMED:
            await self._evaluate(generation)
        else:
            self._fail(generation, tx.error)

    async def _run_transfer(self) -> None:
        generation = self._generation
        direction = self._direction
        from_token = self.from_token
        amount = self._amount

        # Never submit while the allowance does not cover the amount
        if self.allowances.needs_approval(from_token, amount):
            self._state = SwapState.NEEDS_APPROVAL
            return

        kind = TxKind.SWAP if direction is Direction.SWAP else TxKind.REDEEM
        self._state = SwapState.SWAPPING
        try:
            request = await self.coordinator.prepare(
                self.pool_address,
                self._functions[direction],
                (amount,),
                self.owner,
                token=from_token.symbol,
            )
            handle = await self.coordinator.submit(request, kind, from_token.symbol)
        except SwapError as e:
            self._fail(generation, e)
            return

        if self._is_current(generation):
            self._last_tx = handle.tx
        tx = await handle.wait()

        if tx.status is TxStatus.CONFIRMED:
            await self._apply_confirmed_transfer(from_token)

        if not self._is_current(generation):
            logger.info(f"{kind.value} finished after the input changed; re-evaluating")
            await self._evaluate(self._generation)
            return

        if tx.status is not TxStatus.CONFIRMED:
            self._fail(generation, tx.error)
            return

        logger.info(f"{kind.value} of {amount} {from_token.symbol} confirmed: {tx.hash}")
        self._next_generation()
        self._amount_text = ""
        self._amount = None
        self._quote = None
        self._state = SwapState.IDLE

    async def _apply_confirmed_transfer(self, spent: Token) -> None:
        """Refresh both balances once and drop the spent token's allowance."""
        self.allowances.invalidate(spent)
        for token in self.pair:
            try:
                await self.balances.refresh(token, self.owner)
            except UnknownRemoteError as e:
                logger.warning(f"Balance refresh after confirmation failed: {e}")

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def _action(self) -> tuple[str, bool]:
        verb, progress = _VERBS[self._direction]
        symbol = self.from_token.symbol
        labels = {
            SwapState.IDLE: ("Enter an amount", False),
            SwapState.INSUFFICIENT_INPUT: ("Enter an amount", False),
            SwapState.VALIDATING: ("Loading...", False),
            SwapState.AWAITING_RATE: ("Fetching rate...", False),
            SwapState.INSUFFICIENT_BALANCE: ("Insufficient Balance", False),
            SwapState.NEEDS_APPROVAL: (f"Approve {symbol}", True),
            SwapState.APPROVING: (f"Approving {symbol}...", False),
            SwapState.READY: (verb, True),
            SwapState.SWAPPING: (progress, False),
            SwapState.FAILED: ("Try Again", True),
        }
        label, enabled = labels[self._state]
        if enabled and self.busy and self._state in ACTIONABLE_STATES:
            return "Waiting for pending transaction...", False
        return label, enabled

    @staticmethod
    def _token_info(token: Token) -> TokenInfo:
        return TokenInfo(
            symbol=token.symbol,
            name=token.name,
            address=token.address,
            decimals=token.decimals,
        )

    def _balance_text(self, token: Token) -> Optional[str]:
        balance = self.balances.get_balance(token, self.owner)
        return format_amount(balance.amount, token.decimals) if balance else None

    def snapshot(self) -> SwapSnapshot:
        from_token, to_token = self.from_token, self.to_token
        label, enabled = self._action()
        rate = self.oracle.display_rate(self._direction)

        last_error = None
        if self._last_error is not None:
            last_error = ErrorInfo(
                type=type(self._last_error).__name__,
                label=self._last_error.label,
                message=str(self._last_error),
            )

        last_tx = None
        if self._last_tx is not None:
            last_tx = TransactionInfo(
                hash=self._last_tx.hash,
                kind=self._last_tx.kind.value,
                token=self._last_tx.token,
                status=self._last_tx.status.value,
                block_number=self._last_tx.block_number,
            )

        quote = self._quote
        return SwapSnapshot(
            state=self._state.value,
            direction=self._direction.value,
            from_token=self._token_info(from_token),
            to_token=self._token_info(to_token),
            from_amount=self._amount_text,
            computed_to_amount=format_amount(quote.output_amount, to_token.decimals) if quote else "",
            royalty_amount=format_amount(quote.royalty_amount, from_token.decimals) if quote else "",
            rate=f"{rate:f}" if rate is not None else None,
            from_balance=self._balance_text(from_token),
            to_balance=self._balance_text(to_token),
            insufficient_balance=self._state is SwapState.INSUFFICIENT_BALANCE,
            action_label=label,
            action_enabled=enabled,
            last_error=last_error,
            last_transaction=last_tx,
        )
