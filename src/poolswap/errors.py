"""Error taxonomy for the swap flow.

Each error carries a short ``label`` suitable for an action button or toast.
"""

from typing import Optional


class SwapError(Exception):
    """Base class for all swap flow errors."""

    label = "Something went wrong"

    def __init__(self, message: str, *, token: Optional[str] = None):
        self.token = token
        super().__init__(message)


class InputValidationError(SwapError):
    """Amount is non-numeric, zero, negative or too precise. Never reaches the network."""

    label = "Enter a valid amount"


class InsufficientBalanceError(SwapError):
    label = "Insufficient Balance"


class SimulationError(SwapError):
    """Pre-flight simulation reverted; the user is never asked to sign."""

    label = "Transaction would fail"


class UserDeclinedError(SwapError):
    """The wallet rejected the signature request. Terminal, never retried."""

    label = "Transaction rejected"


class NetworkTimeoutError(SwapError):
    """No receipt within the poll window. The user may retry manually."""

    label = "Transaction timed out"


class UnknownRemoteError(SwapError):
    """Any other ledger failure."""

    label = "Network error"


class TransactionRevertedError(UnknownRemoteError):
    """A mined receipt reported failed execution."""

    label = "Transaction failed"


class TransactionInFlightError(SwapError):
    """A transaction for the same account, token and lane is still pending."""

    label = "Transaction pending"
