# app/api/routes/sessions.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.therapy_session import TherapySession
from app.schemas.therapy_session import (
    BulkPaymentStatusUpdate,
    BulkPayoutUpdate,
    BulkUpdateResult,
    PaymentStatus,
    PaymentStatusUpdate,
    PayoutStatus,
    TherapySessionRead,
)
from app.services.errors import PersistenceFailure
from app.services.read_model_cache import (
    ReadModelCache,
    get_read_model_cache,
    invalidate_financial_views,
)
from app.services.session_billing import bulk_set_payment_status, bulk_set_payout

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get(
    "",
    response_model=list[TherapySessionRead],
    summary="List session records",
    description=(
        "Return the billing records derived from appointments, ordered by id.\n\n"
        "Filters are optional and combined with AND."
    ),
)
async def list_sessions(
    therapist_id: int | None = Query(default=None, ge=1, example=1),
    patient_id: int | None = Query(default=None, ge=1, example=1),
    payment_status: PaymentStatus | None = Query(default=None, example="Pending"),
    payout_status: PayoutStatus | None = Query(default=None, example="Pending"),
    db: AsyncSession = Depends(get_db),
) -> list[TherapySessionRead]:
    conditions = []
    if therapist_id is not None:
        conditions.append(TherapySession.therapist_id == therapist_id)
    if patient_id is not None:
        conditions.append(TherapySession.patient_id == patient_id)
    if payment_status is not None:
        conditions.append(TherapySession.payment_status == payment_status.value)
    if payout_status is not None:
        conditions.append(TherapySession.payout_status == payout_status.value)

    stmt = select(TherapySession)
    if conditions:
        stmt = stmt.where(and_(*conditions))

    result = await db.execute(stmt.order_by(TherapySession.id.asc()))
    sessions = result.scalars().all()

    return [TherapySessionRead.model_validate(s) for s in sessions]


@router.patch(
    "/{session_id}/payment",
    response_model=TherapySessionRead,
    summary="Set the payment status of a session",
    description=(
        "Mark a session as Pending, Paid or Cancelled.\n\n"
        "Financial reports are recomputed on their next read."
    ),
    responses={
        200: {
            "description": "Payment status updated.",
        },
        404: {
            "description": "No session exists with the given ID.",
        },
    },
)
async def update_payment_status(
    payload: PaymentStatusUpdate,
    session_id: int = Path(..., ge=1, example=3),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> TherapySessionRead:
    session = await db.get(TherapySession, session_id)
    if session is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Session with id {session_id} not found.",
        )

    session.payment_status = payload.payment_status.value
    await db.commit()
    await db.refresh(session)
    invalidate_financial_views(cache)

    return TherapySessionRead.model_validate(session)


@router.patch(
    "/payment",
    response_model=BulkUpdateResult,
    summary="Set the payment status of several sessions",
    description=(
        "Apply one payment status to every listed session in a single "
        "transaction. Unknown ids are skipped and not counted."
    ),
    responses={
        200: {
            "description": "Sessions updated.",
            "content": {"application/json": {"example": {"updated_count": 3}}},
        },
        500: {
            "description": "Database error; no session was changed.",
        },
    },
)
async def bulk_update_payment_status(
    payload: BulkPaymentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> BulkUpdateResult:
    try:
        updated = await bulk_set_payment_status(
            db, payload.session_ids, payload.payment_status, cache
        )
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))
    return BulkUpdateResult(updated_count=updated)


@router.patch(
    "/payout",
    response_model=BulkUpdateResult,
    summary="Record therapist payouts for several sessions",
    description=(
        "Mark the therapist payout of every listed session as Pending or Paid.\n\n"
        "When `payout_value` is given it replaces the tenure-based payout "
        "(45% of the session value in the therapist's first year, 50% after) "
        "for those sessions."
    ),
    responses={
        200: {
            "description": "Sessions updated.",
        },
        500: {
            "description": "Database error; no session was changed.",
        },
    },
)
async def bulk_update_payout(
    payload: BulkPayoutUpdate,
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> BulkUpdateResult:
    try:
        updated = await bulk_set_payout(
            db,
            payload.session_ids,
            payload.payout_status,
            payload.payout_value,
            cache,
        )
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))
    return BulkUpdateResult(updated_count=updated)
