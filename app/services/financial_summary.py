# app/services/financial_summary.py
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date as date_type
from typing import Dict, List

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment
from app.models.therapist import Therapist
from app.models.therapy_session import TherapySession
from app.schemas.financial_report import FinancialSummary, TherapistFinancialSummary
from app.schemas.therapy_session import PaymentStatus, PayoutStatus
from app.services.financial_transactions import sum_transactions
from app.services.read_model_cache import FINANCIAL_SUMMARY_KEY, ReadModelCache
from app.services.session_billing import payout_for

logger = logging.getLogger(__name__)


async def compute_financial_summary(
    db: AsyncSession,
    start_date: date_type,
    end_date: date_type,
) -> FinancialSummary:
    """
    Compute clinic-wide and per-therapist financial totals.

    Steps
    -----
    1) Fetch every TherapySession whose appointment date is within
       [start_date, end_date], together with its therapist.
    2) Group them by therapist.
    3) For each therapist:
        - session_count = all sessions in the window
        - cancelled_count = sessions with payment status Cancelled
        - gross_value = sum of values of non-cancelled sessions
        - paid_value / pending_value = split of gross_value by payment status
        - payout_paid / payout_pending = therapist share of non-cancelled
          sessions, split by payout status (tenure measured at end_date)
    4) Sum the per-therapist totals into the clinic-wide figures.
    5) Add the manual income and expense transactions dated in the window
       and derive the balance.
    """
    if end_date < start_date:
        raise ValueError("end_date must be greater than or equal to start_date")

    stmt = (
        select(TherapySession, Therapist)
        .join(Appointment, TherapySession.appointment_id == Appointment.id)
        .join(Therapist, TherapySession.therapist_id == Therapist.id)
        .where(
            and_(
                Appointment.date >= start_date,
                Appointment.date <= end_date,
            )
        )
        .order_by(Therapist.id, Appointment.date)
    )

    result = await db.execute(stmt)
    rows: List[tuple[TherapySession, Therapist]] = list(result.all())

    sessions_by_therapist: Dict[int, Dict[str, object]] = defaultdict(
        lambda: {
            "therapist": None,
            "sessions": [],
        }
    )

    for session, therapist in rows:
        data = sessions_by_therapist[therapist.id]
        data["therapist"] = therapist
        data["sessions"].append(session)

    summaries: list[TherapistFinancialSummary] = []

    for therapist_id, data in sessions_by_therapist.items():
        therapist: Therapist = data["therapist"]  # type: ignore[assignment]
        sessions: List[TherapySession] = data["sessions"]  # type: ignore[assignment]

        cancelled = 0
        paid_value = 0.0
        pending_value = 0.0
        payout_paid = 0.0
        payout_pending = 0.0

        for session in sessions:
            if session.payment_status == PaymentStatus.CANCELLED.value:
                cancelled += 1
                continue

            payout = payout_for(session, therapist, end_date)
            if session.payout_status == PayoutStatus.PAID.value:
                payout_paid += payout
            else:
                payout_pending += payout

            if session.payment_status == PaymentStatus.PAID.value:
                paid_value += session.value or 0.0
            else:
                pending_value += session.value or 0.0

        summaries.append(
            TherapistFinancialSummary(
                therapist_id=therapist.id,
                therapist_name=therapist.name,
                session_count=len(sessions),
                cancelled_count=cancelled,
                gross_value=round(paid_value + pending_value, 2),
                paid_value=round(paid_value, 2),
                pending_value=round(pending_value, 2),
                payout_paid=round(payout_paid, 2),
                payout_pending=round(payout_pending, 2),
            )
        )

    manual_income, manual_expenses, transaction_count = await sum_transactions(
        db, start_date, end_date
    )
    paid_total = round(sum(s.paid_value for s in summaries), 2)
    payouts_total = round(sum(s.payout_paid for s in summaries), 2)
    total_income = round(paid_total + manual_income, 2)
    total_expenses = round(payouts_total + manual_expenses, 2)

    return FinancialSummary(
        start_date=start_date,
        end_date=end_date,
        session_count=sum(s.session_count for s in summaries),
        cancelled_count=sum(s.cancelled_count for s in summaries),
        gross_value=round(sum(s.gross_value for s in summaries), 2),
        paid_value=paid_total,
        pending_value=round(sum(s.pending_value for s in summaries), 2),
        therapist_payouts=payouts_total,
        manual_income=manual_income,
        manual_expenses=manual_expenses,
        transaction_count=transaction_count,
        total_income=total_income,
        total_expenses=total_expenses,
        balance=round(total_income - total_expenses, 2),
        therapists=summaries,
    )


async def read_financial_summary(
    db: AsyncSession,
    cache: ReadModelCache,
    start_date: date_type,
    end_date: date_type,
) -> FinancialSummary:
    """
    Cached variant of `compute_financial_summary`, keyed by the date window.

    Writers drop these entries through `invalidate_financial_views` after
    every committed change to appointments or sessions.
    """
    if end_date < start_date:
        raise ValueError("end_date must be greater than or equal to start_date")

    key = f"{FINANCIAL_SUMMARY_KEY}:{start_date.isoformat()}:{end_date.isoformat()}"

    async def _load() -> FinancialSummary:
        logger.debug("Recomputing financial summary for %s", key)
        return await compute_financial_summary(db, start_date, end_date)

    return await cache.read(key, _load)
