# app/services/session_billing.py
from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Any, Dict, Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.therapist import Therapist
from app.models.therapy_session import TherapySession
from app.schemas.therapy_session import PaymentStatus, PayoutStatus
from app.services.read_model_cache import ReadModelCache, invalidate_financial_views
from app.services.transaction import run_atomic

logger = logging.getLogger(__name__)

JUNIOR_PAYOUT_RATE = 0.45
SENIOR_PAYOUT_RATE = 0.50
SENIORITY_MONTHS = 12


def payout_rate(therapist: Therapist | None, as_of: date_type) -> float:
    """
    Share of the session value owed to the therapist: 45% during the first
    year at the clinic, 50% afterwards. Unknown start dates get the lower rate.
    """
    start = getattr(therapist, "start_date", None)
    if start is None:
        return JUNIOR_PAYOUT_RATE
    months = (as_of.year - start.year) * 12 + (as_of.month - start.month)
    return SENIOR_PAYOUT_RATE if months >= SENIORITY_MONTHS else JUNIOR_PAYOUT_RATE


def payout_for(session: TherapySession, therapist: Therapist | None, as_of: date_type) -> float:
    """
    Amount owed to the therapist for one session. An explicit payout_value
    wins over the tenure-based rate.
    """
    if session.payout_value is not None:
        return float(session.payout_value)
    return round((session.value or 0.0) * payout_rate(therapist, as_of), 2)


async def _bulk_update(
    db: AsyncSession,
    session_ids: Iterable[int],
    values: Dict[str, Any],
    cache: ReadModelCache | None,
    *,
    operation: str,
) -> int:
    ids = sorted(set(session_ids))
    if not ids:
        return 0

    async def _work() -> int:
        result = await db.execute(
            update(TherapySession)
            .where(TherapySession.id.in_(ids))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    updated = await run_atomic(db, _work, operation=operation)
    if updated:
        invalidate_financial_views(cache)
    logger.info("%s: %d of %d session(s) updated", operation, updated, len(ids))
    return updated


async def bulk_set_payment_status(
    db: AsyncSession,
    session_ids: Iterable[int],
    payment_status: PaymentStatus | str,
    cache: ReadModelCache | None = None,
) -> int:
    """
    Set the payment status of many sessions in one transaction. Unknown ids
    are skipped; the number of sessions actually updated is returned.
    """
    status = PaymentStatus(payment_status).value
    return await _bulk_update(
        db,
        session_ids,
        {"payment_status": status},
        cache,
        operation=f"bulk payment status {status}",
    )


async def bulk_set_payout(
    db: AsyncSession,
    session_ids: Iterable[int],
    payout_status: PayoutStatus | str,
    payout_value: float | None = None,
    cache: ReadModelCache | None = None,
) -> int:
    """
    Mark the therapist payout of many sessions as Pending or Paid, optionally
    fixing a custom payout value on all of them.
    """
    status = PayoutStatus(payout_status).value
    values: Dict[str, Any] = {"payout_status": status}
    if payout_value is not None:
        values["payout_value"] = payout_value
    return await _bulk_update(
        db,
        session_ids,
        values,
        cache,
        operation=f"bulk payout status {status}",
    )
