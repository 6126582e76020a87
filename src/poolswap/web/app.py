"""FastAPI application factory."""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from poolswap import __version__
from poolswap.config import Settings, get_settings
from poolswap.factory import create_history, create_ledger, create_orchestrator
from poolswap.ledger.base import LedgerClient


def create_app(
    settings: Optional[Settings] = None,
    ledger: Optional[LedgerClient] = None,
    owner: Optional[str] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    One orchestrator (one swap session) is attached to the app state.
    """
    settings = settings or get_settings()
    ledger = ledger or create_ledger(settings)

    app = FastAPI(
        title="Poolswap API",
        description="USDC/BLTM liquidity pool swap orchestrator",
        version=__version__,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.orchestrator = create_orchestrator(ledger, settings, owner=owner)
    app.state.history = create_history(ledger, settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from poolswap.web.controllers import health_router, swaps_router, transactions_router

    app.include_router(health_router, tags=["Health"])
    app.include_router(swaps_router, prefix="/api/v1")
    app.include_router(transactions_router, prefix="/api/v1")

    return app
