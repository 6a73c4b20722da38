# app/schemas/financial_report.py
from datetime import date
from pydantic import BaseModel, Field


class TherapistFinancialSummary(BaseModel):
    """
    Per-therapist totals over a given date range.
    """

    therapist_id: int = Field(..., example=1)
    therapist_name: str = Field(..., example="Dr. Paulo Lima")

    session_count: int = Field(
        ...,
        description="Sessions whose appointment date falls in the range.",
        example=8,
    )
    cancelled_count: int = Field(
        ...,
        description="Sessions with payment status Cancelled.",
        example=1,
    )
    gross_value: float = Field(
        ...,
        description="Sum of session values, excluding cancelled sessions.",
        example=1050.0,
    )
    paid_value: float = Field(..., example=600.0)
    pending_value: float = Field(..., example=450.0)
    payout_paid: float = Field(
        0.0,
        description="Payouts already transferred to the therapist for non-cancelled sessions.",
        example=270.0,
    )
    payout_pending: float = Field(
        0.0,
        description="Payouts still owed to the therapist for non-cancelled sessions.",
        example=202.5,
    )


class FinancialSummary(BaseModel):
    """
    Clinic-wide financial read model for an inclusive date range.
    """

    start_date: date = Field(..., description="Start date (inclusive) of the window.")
    end_date: date = Field(..., description="End date (inclusive) of the window.")

    session_count: int
    cancelled_count: int
    gross_value: float
    paid_value: float
    pending_value: float

    therapist_payouts: float = Field(0.0, description="Sum of paid therapist payouts.")
    manual_income: float = Field(0.0, description="Income transactions dated in the window.")
    manual_expenses: float = Field(0.0, description="Expense transactions dated in the window.")
    transaction_count: int = 0
    total_income: float = Field(0.0, description="paid_value + manual_income.")
    total_expenses: float = Field(0.0, description="therapist_payouts + manual_expenses.")
    balance: float = Field(0.0, description="total_income - total_expenses.")

    therapists: list[TherapistFinancialSummary] = Field(
        ...,
        description="Per-therapist breakdown, ordered by therapist id.",
    )
