"""Application configuration using pydantic-settings.

Token, pool and RPC settings are loaded once at startup and treated as
immutable for the rest of the session.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from poolswap.models import Token, TokenPair


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    dry_run: bool = Field(
        default=True, description="Use the in-memory ledger instead of a real RPC node"
    )

    # ======================
    # Chain
    # ======================
    rpc_url: str = Field(default="https://sepolia.base.org", description="JSON-RPC endpoint")
    chain_id: int = Field(default=84532, description="Chain ID (Base Sepolia)")
    account_address: Optional[str] = Field(
        default=None, description="Connected wallet address (node-managed account)"
    )

    # ======================
    # Contracts
    # ======================
    pool_address: str = Field(
        default="0x0000000000000000000000000000000000000b01",
        description="Liquidity pool (spender) address",
    )
    usdc_address: str = Field(
        default="0x0000000000000000000000000000000000000a01",
        description="USDC token address",
    )
    bltm_address: str = Field(
        default="0x0000000000000000000000000000000000000a02",
        description="BLTM token address",
    )
    usdc_decimals: int = Field(default=6, ge=0, le=36, description="USDC decimals")
    bltm_decimals: int = Field(default=6, ge=0, le=36, description="BLTM decimals")
    swap_function: str = Field(default="swapUsdcForBltm", description="Pool swap function")
    redeem_function: str = Field(default="redeemBltmForUsdc", description="Pool redeem function")

    # ======================
    # Pricing
    # ======================
    royalty_bps: int = Field(
        default=200, ge=0, le=10000, description="Royalty in basis points (200 = 2.00%)"
    )
    rate_scale: int = Field(
        default=1, gt=0, description="Divisor applied to the raw on-chain exchange rate"
    )

    # ======================
    # Transactions
    # ======================
    receipt_poll_interval: float = Field(
        default=2.0, ge=0, description="Seconds between receipt polls"
    )
    receipt_timeout: float = Field(
        default=120.0, gt=0, description="Seconds to wait for a receipt before timing out"
    )
    history_from_block: int = Field(
        default=18315855, ge=0, description="First block scanned for pool events"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def usdc(self) -> Token:
        return Token(
            symbol="USDC",
            name="USD Coin",
            address=self.usdc_address,
            decimals=self.usdc_decimals,
        )

    @property
    def bltm(self) -> Token:
        return Token(
            symbol="BLTM",
            name="Blank Labs Token",
            address=self.bltm_address,
            decimals=self.bltm_decimals,
        )

    def get_token_pair(self) -> TokenPair:
        """Base token (A) is USDC, counter token (B) is BLTM."""
        return TokenPair(base=self.usdc, counter=self.bltm)

    def get_safe_dict(self) -> dict:
        """Return settings dict with the RPC URL redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "rpc_url": self._redact_url(self.rpc_url),
            "chain_id": self.chain_id,
            "account_configured": bool(self.account_address),
            "contracts": {
                "pool": self.pool_address,
                "USDC": {"address": self.usdc_address, "decimals": self.usdc_decimals},
                "BLTM": {"address": self.bltm_address, "decimals": self.bltm_decimals},
            },
            "pricing": {
                "royalty_bps": self.royalty_bps,
                "rate_scale": self.rate_scale,
            },
            "transactions": {
                "poll_interval": self.receipt_poll_interval,
                "timeout": self.receipt_timeout,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Hide API keys embedded in RPC URLs (e.g. .../v2/<key>)."""
        if "://" not in url:
            return url
        proto, rest = url.split("://", 1)
        if "@" in rest:
            creds, host = rest.rsplit("@", 1)
            if ":" in creds:
                user, _ = creds.split(":", 1)
                return f"{proto}://{user}:***@{host}"
        parts = rest.split("/")
        if len(parts) > 1 and len(parts[-1]) >= 20:
            parts[-1] = "***"
        return f"{proto}://{'/'.join(parts)}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
