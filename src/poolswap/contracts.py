"""State snapshot exposed to the presentation layer."""

from typing import Optional

from pydantic import BaseModel, Field


class TokenInfo(BaseModel):
    symbol: str
    name: str
    address: str
    decimals: int


class ErrorInfo(BaseModel):
    type: str = Field(..., description="Error class name (e.g., SimulationError)")
    label: str = Field(..., description="Short user-facing label")
    message: str = Field(..., description="Detailed message")


class TransactionInfo(BaseModel):
    hash: Optional[str] = Field(None, description="Transaction hash, if broadcast")
    kind: str = Field(..., description="approve, swap or redeem")
    token: str
    status: str = Field(..., description="submitted, confirming, confirmed, failed, timed_out")
    block_number: Optional[int] = None


class SwapSnapshot(BaseModel):
    """Everything a swap form needs to render itself."""

    state: str = Field(..., description="Orchestrator state")
    direction: str = Field(..., description="swap (USDC -> BLTM) or redeem (BLTM -> USDC)")
    from_token: TokenInfo
    to_token: TokenInfo
    from_amount: str = Field(default="", description="Amount as entered")
    computed_to_amount: str = Field(default="", description="Expected output net of royalty")
    royalty_amount: str = Field(default="", description="Royalty deducted from the input")
    rate: Optional[str] = Field(None, description="To-token units per from-token unit")
    from_balance: Optional[str] = None
    to_balance: Optional[str] = None
    insufficient_balance: bool = False
    action_label: str
    action_enabled: bool
    last_error: Optional[ErrorInfo] = None
    last_transaction: Optional[TransactionInfo] = None
