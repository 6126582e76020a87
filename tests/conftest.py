"""Pytest configuration and fixtures."""

import os

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DRY_RUN"] = "true"
os.environ["DEBUG"] = "true"

from poolswap.ledger.dry_run import DryRunLedger
from poolswap.models import Token, TokenPair
from poolswap.services import (
    AllowanceManager,
    BalanceTracker,
    RateOracle,
    SwapOrchestrator,
    TransactionCoordinator,
)

OWNER = "0x00000000000000000000000000000000000000aa"
POOL = "0x0000000000000000000000000000000000000b01"
USDC = Token(symbol="USDC", name="USD Coin", address="0x0000000000000000000000000000000000000a01", decimals=6)
BLTM = Token(symbol="BLTM", name="Blank Labs Token", address="0x0000000000000000000000000000000000000a02", decimals=6)

UNIT = 10**6


def units(whole: float) -> int:
    """Whole tokens to smallest units (test values are exact in binary)."""
    return int(whole * UNIT)


@pytest.fixture
def pair() -> TokenPair:
    return TokenPair(base=USDC, counter=BLTM)


@pytest.fixture
def ledger(pair) -> DryRunLedger:
    """Pool at 2 BLTM per USDC with a 2% royalty."""
    return DryRunLedger(pair=pair, pool_address=POOL, exchange_rate=2, royalty_bps=200)


@pytest.fixture
def coordinator(ledger) -> TransactionCoordinator:
    return TransactionCoordinator(ledger, poll_interval=0.001, receipt_timeout=0.2)


@pytest.fixture
def oracle(ledger, pair) -> RateOracle:
    return RateOracle(ledger, pair, royalty_bps=200)


@pytest.fixture
def balances(ledger) -> BalanceTracker:
    return BalanceTracker(ledger)


@pytest.fixture
def allowances(ledger, coordinator) -> AllowanceManager:
    return AllowanceManager(ledger, coordinator, spender=POOL)


@pytest.fixture
def orchestrator(pair, oracle, balances, allowances, coordinator) -> SwapOrchestrator:
    return SwapOrchestrator(
        pair=pair,
        owner=OWNER,
        pool_address=POOL,
        oracle=oracle,
        balances=balances,
        allowances=allowances,
        coordinator=coordinator,
    )
