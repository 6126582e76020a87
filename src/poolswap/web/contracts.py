"""Request and response contracts for the HTTP layer."""

from typing import Optional

from pydantic import BaseModel, Field


class AmountRequest(BaseModel):
    """New from-amount as typed by the user."""

    value: str = Field(default="", max_length=100, description="Decimal amount, e.g. 12.5")


class HistoryEntryResponse(BaseModel):
    id: str = Field(..., description="<tx_hash>-<log_index>")
    action: str = Field(..., description="mint or burn")
    usdc_amount: str
    bltm_amount: str
    block_number: int
    tx_hash: str


class HistoryResponse(BaseModel):
    success: bool
    entries: list[HistoryEntryResponse] = Field(default_factory=list)
    total: int = 0
    error: Optional[str] = None
