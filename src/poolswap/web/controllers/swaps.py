"""Swap form endpoints.

Each endpoint maps to one orchestrator entry point and returns the new
snapshot. Errors in the flow are reported inside the snapshot, not as HTTP
errors.
"""

from fastapi import APIRouter, Depends, Request

from poolswap.contracts import SwapSnapshot
from poolswap.services.swap_orchestrator import SwapOrchestrator
from poolswap.web.contracts import AmountRequest

router = APIRouter(prefix="/swap", tags=["swap"])


def get_orchestrator(request: Request) -> SwapOrchestrator:
    return request.app.state.orchestrator


@router.get("", response_model=SwapSnapshot)
async def get_state(orchestrator: SwapOrchestrator = Depends(get_orchestrator)) -> SwapSnapshot:
    """Current form state."""
    return orchestrator.snapshot()


@router.post("/amount", response_model=SwapSnapshot)
async def set_amount(
    body: AmountRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> SwapSnapshot:
    """Enter a new from-amount; quote, balance and allowance are re-checked."""
    return await orchestrator.set_amount(body.value)


@router.post("/max", response_model=SwapSnapshot)
async def set_max(orchestrator: SwapOrchestrator = Depends(get_orchestrator)) -> SwapSnapshot:
    return await orchestrator.set_max()


@router.post("/switch", response_model=SwapSnapshot)
async def switch_direction(
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> SwapSnapshot:
    """Reverse the pair (swap <-> redeem)."""
    return await orchestrator.switch_direction()


@router.post("/action", response_model=SwapSnapshot)
async def perform_action(
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> SwapSnapshot:
    """Run the offered action: approve, swap/redeem, or retry after a failure.

    Waits until the submitted transaction is terminal.
    """
    return await orchestrator.perform_action()


@router.post("/reset", response_model=SwapSnapshot)
async def reset(orchestrator: SwapOrchestrator = Depends(get_orchestrator)) -> SwapSnapshot:
    return await orchestrator.reset()
