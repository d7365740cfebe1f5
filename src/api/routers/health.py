"""Health check endpoints."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_storage
from db.session import Storage

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    storage: Storage = Depends(get_storage),
) -> HealthResponse:
    """Check application and database health."""
    db_status = "healthy" if await storage.ping() else "unhealthy"
    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
    )
