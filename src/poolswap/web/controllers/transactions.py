"""Transaction history endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from poolswap.amounts import format_amount
from poolswap.services.history import TransactionHistory
from poolswap.web.contracts import HistoryEntryResponse, HistoryResponse

router = APIRouter(prefix="/transactions", tags=["transactions"])


def get_history(request: Request) -> TransactionHistory:
    return request.app.state.history


@router.get("/history", response_model=HistoryResponse)
async def get_history_entries(
    filter: str = "",
    sort_by: Optional[str] = None,
    descending: bool = False,
    refresh: bool = False,
    history: TransactionHistory = Depends(get_history),
) -> HistoryResponse:
    """Mint and burn events of the pool.

    Args:
        filter: Substring matched against action, amounts and block
        sort_by: block_number, action, usdc_amount or bltm_amount
        descending: Reverse the sort order
        refresh: Re-read events instead of using the loaded ones
    """
    await history.fetch(refresh=refresh)
    if history.is_error:
        return HistoryResponse(success=False, error="Failed to fetch transaction history")

    try:
        entries = history.query(filter, sort_by=sort_by, descending=descending)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    usdc, bltm = history.pair.base, history.pair.counter
    return HistoryResponse(
        success=True,
        entries=[
            HistoryEntryResponse(
                id=e.id,
                action=e.action,
                usdc_amount=format_amount(e.usdc_amount, usdc.decimals),
                bltm_amount=format_amount(e.bltm_amount, bltm.decimals),
                block_number=e.block_number,
                tx_hash=e.tx_hash,
            )
            for e in entries
        ],
        total=len(entries),
    )
