"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_services
from services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    remote: str  # "enabled", "configured" (flag off) or "disabled"


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    services: Services = Depends(get_services),
) -> HealthResponse:
    """Check application and database health and report the remote integration mode."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    if services.blog.remote_enabled:
        remote = "enabled"
    elif services.remote.is_configured():
        remote = "configured"
    else:
        remote = "disabled"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        remote=remote,
    )
