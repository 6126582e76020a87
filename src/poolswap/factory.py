"""Factory for wiring the ledger client and swap components from settings.

Creates a web3 client when dry-run is off, otherwise an in-memory ledger
seeded with demo funds.
"""

import logging
from typing import Optional

from poolswap.config import Settings, get_settings
from poolswap.ledger.base import LedgerClient
from poolswap.ledger.dry_run import DryRunLedger
from poolswap.services.allowance_manager import AllowanceManager
from poolswap.services.balance_tracker import BalanceTracker
from poolswap.services.history import TransactionHistory
from poolswap.services.rate_oracle import RateOracle
from poolswap.services.swap_orchestrator import SwapOrchestrator
from poolswap.services.transaction_coordinator import TransactionCoordinator

logger = logging.getLogger(__name__)

DRY_RUN_ACCOUNT = "0x00000000000000000000000000000000000d3a11"
DRY_RUN_EXCHANGE_RATE = 2
DRY_RUN_USDC_FUNDS = 1_000


def get_account(settings: Optional[Settings] = None) -> str:
    """The connected account, falling back to a demo account in dry-run mode."""
    settings = settings or get_settings()
    if settings.account_address:
        return settings.account_address
    if settings.dry_run:
        return DRY_RUN_ACCOUNT
    raise ValueError("ACCOUNT_ADDRESS must be set when DRY_RUN is disabled")


def create_dry_run_ledger(settings: Optional[Settings] = None) -> DryRunLedger:
    """In-memory ledger with demo USDC funds for the configured account."""
    settings = settings or get_settings()
    pair = settings.get_token_pair()
    ledger = DryRunLedger(
        pair=pair,
        pool_address=settings.pool_address,
        exchange_rate=DRY_RUN_EXCHANGE_RATE * settings.rate_scale,
        rate_scale=settings.rate_scale,
        royalty_bps=settings.royalty_bps,
        swap_function=settings.swap_function,
        redeem_function=settings.redeem_function,
    )
    ledger.fund(pair.base.address, get_account(settings), DRY_RUN_USDC_FUNDS * pair.base.unit)
    return ledger


def create_ledger(settings: Optional[Settings] = None) -> LedgerClient:
    """Create the ledger client for the current mode."""
    settings = settings or get_settings()

    if not settings.dry_run:
        from poolswap.ledger.web3_client import Web3LedgerClient

        logger.info(f"Using web3 ledger at {settings.get_safe_dict()['rpc_url']}")
        return Web3LedgerClient(
            rpc_url=settings.rpc_url,
            pool_address=settings.pool_address,
            swap_function=settings.swap_function,
            redeem_function=settings.redeem_function,
        )

    logger.warning("DRY_RUN enabled - using in-memory ledger, no real transactions")
    return create_dry_run_ledger(settings)


def create_orchestrator(
    ledger: LedgerClient,
    settings: Optional[Settings] = None,
    owner: Optional[str] = None,
) -> SwapOrchestrator:
    """Wire the five swap components around one ledger client."""
    settings = settings or get_settings()
    pair = settings.get_token_pair()
    owner = owner or get_account(settings)

    coordinator = TransactionCoordinator(
        ledger,
        poll_interval=settings.receipt_poll_interval,
        receipt_timeout=settings.receipt_timeout,
    )
    return SwapOrchestrator(
        pair=pair,
        owner=owner,
        pool_address=settings.pool_address,
        oracle=RateOracle(
            ledger,
            pair,
            royalty_bps=settings.royalty_bps,
            rate_scale=settings.rate_scale,
        ),
        balances=BalanceTracker(ledger),
        allowances=AllowanceManager(ledger, coordinator, spender=settings.pool_address),
        coordinator=coordinator,
        swap_function=settings.swap_function,
        redeem_function=settings.redeem_function,
    )


def create_history(ledger: LedgerClient, settings: Optional[Settings] = None) -> TransactionHistory:
    settings = settings or get_settings()
    return TransactionHistory(
        ledger,
        settings.get_token_pair(),
        from_block=0 if settings.dry_run else settings.history_from_block,
    )
