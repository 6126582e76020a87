"""Poolswap - USDC/BLTM liquidity pool swap orchestrator."""

__version__ = "0.1.0"
