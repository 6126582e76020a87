"""Ledger clients for token and pool access.

Clients:
- Web3LedgerClient: JSON-RPC node via web3.py
- DryRunLedger: in-memory simulation for dry-run mode and tests
"""

from poolswap.ledger.base import (
    ContractRevertError,
    LedgerClient,
    LedgerError,
    SignatureRejectedError,
)
from poolswap.ledger.dry_run import DryRunLedger

__all__ = [
    # Base classes
    "LedgerClient",
    "LedgerError",
    "ContractRevertError",
    "SignatureRejectedError",
    # Clients
    "DryRunLedger",
]
