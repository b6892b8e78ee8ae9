"""Health check endpoints for liveness/readiness probes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from promptbank import __version__
from promptbank.api.deps import DBSession
from promptbank.schemas.health import LivenessResponse, ReadinessResponse

logger = structlog.stdlib.get_logger()

router = APIRouter()


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
)
async def liveness() -> LivenessResponse:
    return LivenessResponse(version=__version__)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness(db: DBSession) -> ORJSONResponse:
    db_status = "disconnected"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        await logger.awarning("health.database_unreachable", error=str(e))

    overall = "ok" if db_status == "connected" else "degraded"

    return ORJSONResponse(
        status_code=200 if overall == "ok" else 503,
        content=ReadinessResponse(status=overall, database=db_status).model_dump(),
    )
