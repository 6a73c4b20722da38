# app/api/routes/transactions.py
from http import HTTPStatus
from datetime import date as date_type

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.financial_transaction import (
    PERIOD_PATTERN,
    FinancialTransactionCreate,
    FinancialTransactionRead,
    FinancialTransactionUpdate,
    TransactionCategories,
    TransactionKind,
    TransactionMonthSummary,
)
from app.services import financial_transactions
from app.services.errors import PersistenceFailure, TransactionNotFound, ValidationFailure
from app.services.read_model_cache import ReadModelCache, get_read_model_cache

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post(
    "",
    response_model=FinancialTransactionRead,
    status_code=HTTPStatus.CREATED,
    summary="Record a manual income or expense",
    description=(
        "Register a financial entry that does not come from a session "
        "(rent, materials, extra revenue, ...).\n\n"
        "`value` must be positive; the `kind` decides whether it adds to or "
        "subtracts from the clinic balance in `/reports/financial`."
    ),
    responses={
        201: {
            "description": "Transaction recorded.",
            "content": {
                "application/json": {
                    "example": {
                        "id": 1,
                        "kind": "Expense",
                        "category": "Rent",
                        "description": "Clinic rent for January",
                        "value": 2500.0,
                        "date": "2025-01-05",
                        "notes": None,
                        "created_at": "2025-01-05T10:00:00Z",
                        "updated_at": "2025-01-05T10:00:00Z",
                    }
                }
            },
        },
        500: {
            "description": "Database error; nothing was written.",
        },
    },
)
async def create_transaction(
    payload: FinancialTransactionCreate,
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> FinancialTransactionRead:
    try:
        return await financial_transactions.create_transaction(db, payload, cache)
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get(
    "",
    response_model=list[FinancialTransactionRead],
    summary="List manual transactions",
    description=(
        "Return transactions newest first.\n\n"
        "- `period` (YYYY-MM) restricts to one calendar month.\n"
        "- `start_date` / `end_date` bound the transaction date (inclusive).\n"
        "- `kind` and `category` match exactly.\n\n"
        "All filters are optional and combined with AND."
    ),
    responses={
        400: {
            "description": "Malformed period.",
        },
    },
)
async def list_transactions(
    period: str | None = Query(default=None, example="2025-01"),
    kind: TransactionKind | None = Query(default=None, example="Expense"),
    category: str | None = Query(default=None, example="Rent"),
    start_date: date_type | None = Query(default=None),
    end_date: date_type | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> list[FinancialTransactionRead]:
    try:
        return await financial_transactions.list_transactions(
            db,
            period=period,
            kind=kind,
            category=category,
            start_date=start_date,
            end_date=end_date,
        )
    except ValidationFailure as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))


@router.get(
    "/categories",
    response_model=TransactionCategories,
    summary="List the categories in use",
)
async def list_categories(db: AsyncSession = Depends(get_db)) -> TransactionCategories:
    categories = await financial_transactions.list_categories(db)
    return TransactionCategories(categories=categories, total=len(categories))


@router.get(
    "/summary",
    response_model=TransactionMonthSummary,
    summary="Monthly totals of manual transactions",
    description=(
        "Sum income and expense transactions of one calendar month.\n\n"
        "Session revenue and therapist payouts are not included here; see "
        "`/reports/financial` for the full picture."
    ),
)
async def summarize_month(
    period: str = Query(..., pattern=PERIOD_PATTERN, example="2025-01"),
    db: AsyncSession = Depends(get_db),
) -> TransactionMonthSummary:
    return await financial_transactions.summarize_month(db, period)


@router.get(
    "/{transaction_id}",
    response_model=FinancialTransactionRead,
    summary="Get a transaction by ID",
    responses={
        404: {
            "description": "No transaction exists with the given ID.",
        },
    },
)
async def get_transaction(
    transaction_id: int = Path(..., ge=1, example=1),
    db: AsyncSession = Depends(get_db),
) -> FinancialTransactionRead:
    try:
        return await financial_transactions.get_transaction(db, transaction_id)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))


@router.patch(
    "/{transaction_id}",
    response_model=FinancialTransactionRead,
    summary="Edit a transaction",
    description="Fields omitted from the body are left untouched; `notes` can be cleared with null.",
    responses={
        400: {
            "description": "The body contains no field to update.",
        },
        404: {
            "description": "No transaction exists with the given ID.",
        },
    },
)
async def update_transaction(
    payload: FinancialTransactionUpdate,
    transaction_id: int = Path(..., ge=1, example=1),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> FinancialTransactionRead:
    try:
        return await financial_transactions.update_transaction(db, transaction_id, payload, cache)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except ValidationFailure as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))


@router.delete(
    "/{transaction_id}",
    status_code=HTTPStatus.NO_CONTENT,
    summary="Delete a transaction",
    responses={
        404: {
            "description": "No transaction exists with the given ID.",
        },
    },
)
async def delete_transaction(
    transaction_id: int = Path(..., ge=1, example=1),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> Response:
    try:
        await financial_transactions.delete_transaction(db, transaction_id, cache)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))

    return Response(status_code=HTTPStatus.NO_CONTENT)
