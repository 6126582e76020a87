"""Abstract ledger interface consumed by the swap components."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from poolswap.models import EventLog, PreparedRequest, Receipt


class LedgerError(Exception):
    """Any failure reported by the ledger client."""


class ContractRevertError(LedgerError):
    """A call or simulation reverted."""

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class SignatureRejectedError(LedgerError):
    """The wallet refused to sign the transaction."""


class LedgerClient(ABC):
    """Read, simulate and write primitives of a token/pool ledger.

    Implementations raise ``LedgerError`` subclasses; they never return
    partial results.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Client name identifier."""
        pass

    @abstractmethod
    async def balance_of(self, token_address: str, owner: str) -> int:
        """Raw token balance of ``owner``."""
        pass

    @abstractmethod
    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        """Raw amount ``spender`` may transfer on behalf of ``owner``."""
        pass

    @abstractmethod
    async def exchange_rate(self) -> int:
        """Raw pool exchange rate (counter token per base token, unscaled)."""
        pass

    @abstractmethod
    async def block_number(self) -> int:
        pass

    @abstractmethod
    async def simulate(
        self,
        contract_address: str,
        function_name: str,
        args: Sequence,
        sender: str,
    ) -> PreparedRequest:
        """
        Dry-run a state-changing call.

        Args:
            contract_address: Contract to call
            function_name: ABI function name (e.g., "approve")
            args: Positional call arguments
            sender: Account the call is made from

        Returns:
            PreparedRequest ready for submission

        Raises:
            ContractRevertError: if the call would revert
        """
        pass

    @abstractmethod
    async def submit_transaction(self, request: PreparedRequest) -> str:
        """
        Ask the wallet to sign and broadcast a prepared request.

        Returns:
            Transaction hash

        Raises:
            SignatureRejectedError: if the wallet declined
        """
        pass

    @abstractmethod
    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        """Receipt for ``tx_hash`` or None while still pending."""
        pass

    @abstractmethod
    async def get_events(self, event_name: str, from_block: int) -> list[EventLog]:
        """Pool events named ``event_name`` since ``from_block``."""
        pass
