# app/schemas/financial_transaction.py
from __future__ import annotations

from datetime import date as date_type, datetime
from enum import Enum

from pydantic import BaseModel, Field

PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class TransactionKind(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"


class FinancialTransactionBase(BaseModel):
    kind: TransactionKind = Field(..., example="Expense")
    category: str = Field(..., min_length=1, max_length=100, example="Rent")
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        example="Clinic rent for January",
    )
    value: float = Field(..., gt=0, le=999_999_999.99, example=2500.0)
    date: date_type = Field(..., example="2025-01-05")
    notes: str | None = Field(default=None, max_length=1000)

    class Config:
        use_enum_values = True


class FinancialTransactionCreate(FinancialTransactionBase):
    """
    Payload for recording a manual income or expense.
    """


class FinancialTransactionUpdate(BaseModel):
    """
    Partial update; at least one field must be provided.
    """

    kind: TransactionKind | None = Field(default=None)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    value: float | None = Field(default=None, gt=0, le=999_999_999.99)
    date: date_type | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=1000)

    class Config:
        use_enum_values = True


class FinancialTransactionRead(FinancialTransactionBase):
    id: int = Field(..., example=1)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class TransactionCategories(BaseModel):
    categories: list[str] = Field(
        ...,
        description="Distinct categories already used, alphabetically.",
        example=["Materials", "Rent"],
    )
    total: int = Field(..., example=2)


class TransactionMonthSummary(BaseModel):
    """
    Totals of manual entries for one calendar month.
    """

    period: str = Field(..., description="Month in YYYY-MM format.", example="2025-01")
    income: float = Field(..., example=300.0)
    expenses: float = Field(..., example=2500.0)
    transaction_count: int = Field(..., example=3)
