"""Health check endpoints.

``/health/`` answers as long as the process is up; ``/health/ready`` also
needs the journal database to accept a query and returns 503 otherwise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy import text

from quorum import __version__
from quorum.logging import get_logger
from quorum.web.routes.common import get_session_factory

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


class LivenessResponse(BaseModel):
    status: str
    version: str


class ReadinessResponse(BaseModel):
    status: str
    database: str


async def _database_reachable(factory: async_sessionmaker[AsyncSession]) -> bool:
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("database_unreachable", error=str(exc), error_type=type(exc).__name__)
        return False
    return True


def create_health_router() -> APIRouter:
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=LivenessResponse)
    async def liveness() -> LivenessResponse:
        return LivenessResponse(status="ok", version=__version__)

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(
        response: Response,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ReadinessResponse:
        if await _database_reachable(session_factory):
            return ReadinessResponse(status="ok", database="connected")
        response.status_code = 503
        return ReadinessResponse(status="unhealthy", database="disconnected")

    return router
