# app/api/routes/internal.py
import logging

from fastapi import APIRouter, Depends
from http import HTTPStatus
from pydantic import BaseModel, Field

from app.api.dependencies.internal_auth import verify_internal_api_key
from app.services.read_model_cache import ReadModelCache, get_read_model_cache

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


class CacheInvalidationResult(BaseModel):
    invalidated_entries: int = Field(
        ...,
        description="Number of cached read models that were dropped.",
        example=3,
    )


@router.post(
    "/cache/invalidate",
    response_model=CacheInvalidationResult,
    status_code=HTTPStatus.OK,
    summary="Mark every cached read model stale",
    description=(
        "Drop all cached read models (financial summaries, ...). They are "
        "recomputed from the database on their next read.\n\n"
        "Intended for operators after manual database fixes, and protected "
        "via the `X-Internal-Api-Key` header when configured."
    ),
    responses={
        200: {
            "description": "Cache cleared.",
            "content": {
                "application/json": {
                    "example": {"invalidated_entries": 3},
                }
            },
        },
        401: {
            "description": "Missing or invalid internal API key (if configured).",
        },
    },
)
async def invalidate_read_models(
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> CacheInvalidationResult:
    removed = cache.clear()
    logger.info("Read model cache cleared by operator (%d entries)", removed)
    return CacheInvalidationResult(invalidated_entries=removed)
