# app/api/routes/reports.py
from datetime import date as date_type

from fastapi import APIRouter, Depends, HTTPException, Query
from http import HTTPStatus
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.financial_report import FinancialSummary
from app.services.financial_summary import read_financial_summary
from app.services.read_model_cache import ReadModelCache, get_read_model_cache

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


@router.get(
    "/financial",
    response_model=FinancialSummary,
    status_code=HTTPStatus.OK,
    summary="Get the financial summary for a date range",
    description=(
        "Return clinic-wide and per-therapist session totals for appointments "
        "dated within the given window.\n\n"
        "The range is **inclusive** of both `from_date` and `to_date`.\n\n"
        "For each therapist, the report includes:\n"
        "- Number of sessions and how many were cancelled\n"
        "- Gross value (cancelled sessions excluded)\n"
        "- Paid and pending values\n\n"
        "Results are served from the read-model cache and recomputed after any "
        "change to appointments or sessions."
    ),
    responses={
        200: {
            "description": "Financial summary successfully computed.",
            "content": {
                "application/json": {
                    "example": {
                        "start_date": "2025-01-01",
                        "end_date": "2025-01-31",
                        "session_count": 8,
                        "cancelled_count": 1,
                        "gross_value": 1050.0,
                        "paid_value": 600.0,
                        "pending_value": 450.0,
                        "therapists": [
                            {
                                "therapist_id": 1,
                                "therapist_name": "Dr. Paulo Lima",
                                "session_count": 8,
                                "cancelled_count": 1,
                                "gross_value": 1050.0,
                                "paid_value": 600.0,
                                "pending_value": 450.0,
                            }
                        ],
                    }
                }
            },
        },
        400: {
            "description": "to_date is before from_date.",
        },
        422: {
            "description": "Validation error (e.g. missing or invalid dates).",
        },
    },
)
async def get_financial_report(
    from_date: date_type = Query(
        ...,
        description="Start date (inclusive) of the reporting window (YYYY-MM-DD).",
        example="2025-01-01",
    ),
    to_date: date_type = Query(
        ...,
        description=(
            "End date (inclusive) of the reporting window (YYYY-MM-DD). "
            "Must be greater than or equal to from_date."
        ),
        example="2025-01-31",
    ),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> FinancialSummary:
    """
    Therapists without sessions in the range do not appear in the breakdown.
    """
    try:
        return await read_financial_summary(db, cache, start_date=from_date, end_date=to_date)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=str(exc),
        )
