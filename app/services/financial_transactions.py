# app/services/financial_transactions.py
from __future__ import annotations

import calendar
import logging
import re
from datetime import date as date_type
from typing import List, Tuple

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.financial_transaction import FinancialTransaction
from app.schemas.financial_transaction import (
    PERIOD_PATTERN,
    FinancialTransactionCreate,
    FinancialTransactionRead,
    FinancialTransactionUpdate,
    TransactionKind,
    TransactionMonthSummary,
)
from app.services.appointment_service import nullable_columns, patch_changes
from app.services.errors import TransactionNotFound, ValidationFailure
from app.services.read_model_cache import ReadModelCache, invalidate_financial_views
from app.services.transaction import run_atomic

logger = logging.getLogger(__name__)


def month_bounds(period: str) -> Tuple[date_type, date_type]:
    """
    First and last day of a YYYY-MM period.
    """
    if not re.match(PERIOD_PATTERN, period or ""):
        raise ValidationFailure("Invalid period format. Use YYYY-MM.")
    year, month = (int(part) for part in period.split("-"))
    return date_type(year, month, 1), date_type(year, month, calendar.monthrange(year, month)[1])


async def _get_or_raise(db: AsyncSession, transaction_id: int) -> FinancialTransaction:
    transaction = await db.get(FinancialTransaction, transaction_id)
    if transaction is None:
        raise TransactionNotFound(transaction_id)
    return transaction


async def create_transaction(
    db: AsyncSession,
    payload: FinancialTransactionCreate,
    cache: ReadModelCache | None = None,
) -> FinancialTransactionRead:
    async def _work() -> FinancialTransaction:
        transaction = FinancialTransaction(**payload.model_dump())
        db.add(transaction)
        await db.flush()
        return transaction

    transaction = await run_atomic(db, _work, operation="create transaction")
    invalidate_financial_views(cache)
    logger.info(
        "Recorded %s transaction id=%s (%s, %.2f)",
        transaction.kind,
        transaction.id,
        transaction.category,
        transaction.value,
    )
    return FinancialTransactionRead.model_validate(transaction)


async def get_transaction(db: AsyncSession, transaction_id: int) -> FinancialTransactionRead:
    return FinancialTransactionRead.model_validate(await _get_or_raise(db, transaction_id))


async def list_transactions(
    db: AsyncSession,
    *,
    period: str | None = None,
    kind: TransactionKind | None = None,
    category: str | None = None,
    start_date: date_type | None = None,
    end_date: date_type | None = None,
) -> List[FinancialTransactionRead]:
    """
    List manual entries, newest first. Filters are combined with AND.
    """
    conditions = []
    if period is not None:
        first, last = month_bounds(period)
        conditions.append(FinancialTransaction.date.between(first, last))
    if kind is not None:
        conditions.append(FinancialTransaction.kind == TransactionKind(kind).value)
    if category is not None:
        conditions.append(FinancialTransaction.category == category)
    if start_date is not None:
        conditions.append(FinancialTransaction.date >= start_date)
    if end_date is not None:
        conditions.append(FinancialTransaction.date <= end_date)

    stmt = select(FinancialTransaction)
    if conditions:
        stmt = stmt.where(and_(*conditions))
    stmt = stmt.order_by(
        FinancialTransaction.date.desc(),
        FinancialTransaction.created_at.desc(),
        FinancialTransaction.id.desc(),
    )

    result = await db.execute(stmt)
    return [FinancialTransactionRead.model_validate(t) for t in result.scalars().all()]


async def update_transaction(
    db: AsyncSession,
    transaction_id: int,
    payload: FinancialTransactionUpdate,
    cache: ReadModelCache | None = None,
) -> FinancialTransactionRead:
    changes = patch_changes(payload, nullable_columns(FinancialTransaction))
    if not changes:
        raise ValidationFailure("No valid field provided for update.")

    async def _work() -> FinancialTransaction:
        transaction = await _get_or_raise(db, transaction_id)
        for field, value in changes.items():
            setattr(transaction, field, value)
        await db.flush()
        return transaction

    transaction = await run_atomic(db, _work, operation=f"update transaction {transaction_id}")
    invalidate_financial_views(cache)
    await db.refresh(transaction)
    return FinancialTransactionRead.model_validate(transaction)


async def delete_transaction(
    db: AsyncSession,
    transaction_id: int,
    cache: ReadModelCache | None = None,
) -> None:
    async def _work() -> None:
        transaction = await _get_or_raise(db, transaction_id)
        await db.delete(transaction)
        await db.flush()

    await run_atomic(db, _work, operation=f"delete transaction {transaction_id}")
    invalidate_financial_views(cache)
    logger.info("Deleted transaction id=%s", transaction_id)


async def list_categories(db: AsyncSession) -> List[str]:
    result = await db.execute(
        select(FinancialTransaction.category)
        .distinct()
        .order_by(FinancialTransaction.category)
    )
    return list(result.scalars().all())


async def sum_transactions(
    db: AsyncSession,
    start_date: date_type,
    end_date: date_type,
) -> Tuple[float, float, int]:
    """
    Return (income, expenses, count) of manual entries dated in the window.
    """
    stmt = select(
        func.coalesce(
            func.sum(
                case(
                    (FinancialTransaction.kind == TransactionKind.INCOME.value, FinancialTransaction.value),
                    else_=0.0,
                )
            ),
            0.0,
        ),
        func.coalesce(
            func.sum(
                case(
                    (FinancialTransaction.kind == TransactionKind.EXPENSE.value, FinancialTransaction.value),
                    else_=0.0,
                )
            ),
            0.0,
        ),
        func.count(FinancialTransaction.id),
    ).where(FinancialTransaction.date.between(start_date, end_date))

    income, expenses, count = (await db.execute(stmt)).one()
    return round(float(income), 2), round(float(expenses), 2), int(count)


async def summarize_month(db: AsyncSession, period: str) -> TransactionMonthSummary:
    first, last = month_bounds(period)
    income, expenses, count = await sum_transactions(db, first, last)
    return TransactionMonthSummary(
        period=period,
        income=income,
        expenses=expenses,
        transaction_count=count,
    )
