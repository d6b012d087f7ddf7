"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_store
from api.models.responses import HealthResponse
from core.config import API_VERSION

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(store=Depends(get_store)):
    """200 while the workboard database is reachable, 503 otherwise."""
    # Stores without a local file (fakes, remote backends) count as available
    probe = getattr(store, "is_available", None)
    available = probe() if probe else True

    health = HealthResponse(
        status="healthy" if available else "unhealthy",
        version=API_VERSION,
        database_available=available,
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=None if available else "Database not available",
    )
    if available:
        return health
    return JSONResponse(status_code=503, content=health.model_dump())
