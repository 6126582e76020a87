"""HTTP controllers for the swap form and transaction history."""

from poolswap.web.controllers.health import router as health_router
from poolswap.web.controllers.swaps import router as swaps_router
from poolswap.web.controllers.transactions import router as transactions_router

__all__ = [
    "health_router",
    "swaps_router",
    "transactions_router",
]
