"""Health check endpoints."""

from fastapi import APIRouter, Request

from poolswap import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "poolswap"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": "poolswap",
        "version": __version__,
        "ledger": request.app.state.ledger.name,
        "config": settings.get_safe_dict(),
    }
