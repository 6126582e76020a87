"""Swap flow components.

- RateOracle: exchange rate and quotes (read-only)
- BalanceTracker: cached balances (read-only)
- AllowanceManager: allowance checks and approvals
- TransactionCoordinator: simulation, submission and receipt tracking
- SwapOrchestrator: the user-facing state machine
- TransactionHistory: mint/burn history from pool events
"""

from poolswap.services.allowance_manager import AllowanceManager, AllowanceState
from poolswap.services.balance_tracker import BalanceTracker
from poolswap.services.history import HistoryEntry, TransactionHistory
from poolswap.services.rate_oracle import RateOracle
from poolswap.services.swap_orchestrator import SwapOrchestrator, SwapState
from poolswap.services.transaction_coordinator import TransactionCoordinator, TransactionHandle

__all__ = [
    "AllowanceManager",
    "AllowanceState",
    "BalanceTracker",
    "HistoryEntry",
    "RateOracle",
    "SwapOrchestrator",
    "SwapState",
    "TransactionCoordinator",
    "TransactionHandle",
    "TransactionHistory",
]
