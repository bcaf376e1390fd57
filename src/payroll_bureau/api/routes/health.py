"""Health endpoints: database reachability and the configured identity provider."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_bureau import __version__
from payroll_bureau.api.dependencies import DbSession, IdentityProviderDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status with its two external dependencies."""

    status: str
    version: str
    timestamp: datetime
    database: str
    identity_provider: str


async def _database_reachable(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, identity_provider: IdentityProviderDep) -> HealthResponse:
    """Report database reachability and which identity provider signs users up.

    A down database degrades the service but still answers 200 so the
    response can be read.
    """
    database_ok = await _database_reachable(db)
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database="healthy" if database_ok else "unhealthy",
        identity_provider=getattr(identity_provider, "provider_name", "unknown"),
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready only while the database answers; 503 otherwise."""
    if await _database_reachable(db):
        return {"status": "ready"}
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "unavailable"}
