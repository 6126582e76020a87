"""Domain types shared by the swap components.

All amounts are plain ``int`` values in a token's smallest unit.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class Direction(str, Enum):
    """Swap direction relative to the pool's base token (A) and counter token (B)."""

    SWAP = "swap"  # A -> B (USDC -> BLTM)
    REDEEM = "redeem"  # B -> A (BLTM -> USDC)

    @property
    def reversed(self) -> "Direction":
        return Direction.REDEEM if self is Direction.SWAP else Direction.SWAP


class TxKind(str, Enum):
    APPROVE = "approve"
    SWAP = "swap"
    REDEEM = "redeem"

    @property
    def lane(self) -> str:
        """Approvals and transfers (swap/redeem) are tracked independently."""
        return "approve" if self is TxKind.APPROVE else "transfer"


class TxStatus(str, Enum):
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (TxStatus.CONFIRMED, TxStatus.FAILED, TxStatus.TIMED_OUT)


@dataclass(frozen=True)
class Token:
    """An ERC-20 token loaded from configuration."""

    symbol: str
    name: str
    address: str
    decimals: int

    @property
    def unit(self) -> int:
        """Smallest units per whole token."""
        return 10**self.decimals


@dataclass(frozen=True)
class TokenPair:
    """The two tokens traded by the pool."""

    base: Token  # A
    counter: Token  # B

    def tokens_for(self, direction: Direction) -> tuple[Token, Token]:
        """Return (from_token, to_token) for a direction."""
        if direction is Direction.SWAP:
            return self.base, self.counter
        return self.counter, self.base

    def __iter__(self):
        return iter((self.base, self.counter))


@dataclass(frozen=True)
class ExchangeRate:
    """Whole units of the counter token per whole unit of the base token."""

    numerator: int
    denominator: int = 1
    block_number: Optional[int] = None
    fetched_at: float = field(default_factory=time.time)

    def as_decimal(self) -> Decimal:
        return Decimal(self.numerator) / Decimal(self.denominator)


@dataclass(frozen=True)
class SwapQuote:
    """Non-binding preview of a swap or redeem."""

    direction: Direction
    input_amount: int
    royalty_amount: int
    net_input_amount: int
    output_amount: int
    rate: ExchangeRate


@dataclass
class Allowance:
    owner: str
    spender: str
    token: str
    current_amount: int
    last_checked_at: float = field(default_factory=time.time)


@dataclass
class Balance:
    token: str
    owner: str
    amount: int
    fetched_at: float = field(default_factory=time.time)


@dataclass
class PreparedRequest:
    """A state-changing call that passed pre-flight simulation."""

    contract_address: str
    function_name: str
    args: tuple
    sender: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    success: bool
    block_number: Optional[int] = None


@dataclass(frozen=True)
class EventLog:
    """A decoded contract event."""

    event: str
    tx_hash: str
    log_index: int
    block_number: int
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class PendingTransaction:
    """Lifecycle record of a submitted transaction. Never reused."""

    hash: Optional[str]
    kind: TxKind
    token: str
    owner: str
    submitted_at: float = field(default_factory=time.time)
    status: TxStatus = TxStatus.SUBMITTED
    error: Optional[Exception] = None
    block_number: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
