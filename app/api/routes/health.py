# app/api/routes/health.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str = Field(
        ...,
        description="`ok` when the database answers, `degraded` otherwise.",
        example="ok",
    )
    database: str = Field(..., description="`reachable` or `unreachable`.", example="reachable")
    app_name: str = Field(..., example="Clinic Scheduler")
    environment: str = Field(..., example="local")
    timestamp_utc: datetime = Field(..., example="2025-01-01T10:30:00Z")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service and database health",
    description=(
        "Run `SELECT 1` against the configured database and report whether it "
        "answered. The endpoint itself always responds 200 so that monitors can "
        "tell a degraded database apart from a dead process."
    ),
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    settings = get_settings()
    try:
        await db.execute(text("SELECT 1"))
        database = "reachable"
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        database = "unreachable"

    return HealthResponse(
        status="ok" if database == "reachable" else "degraded",
        database=database,
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
