# app/schemas/therapy_session.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SessionType(str, Enum):
    """
    Billing category of a session, derived from the appointment type.
    """

    TREATMENT = "Treatment"
    GUIDANCE = "Guidance"
    SCHOOL_VISIT = "School Visit"
    SUPERVISION = "Supervision"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class PayoutStatus(str, Enum):
    """
    Whether the therapist has received their share of the session value.
    """

    PENDING = "Pending"
    PAID = "Paid"


class TherapySessionRead(BaseModel):
    """
    Public representation of a session record.
    """

    id: int = Field(..., example=3)
    appointment_id: int = Field(
        ...,
        description="Appointment this session was derived from.",
        example=10,
    )
    therapist_id: int
    patient_id: int
    type: SessionType
    value: float
    payment_status: PaymentStatus
    payout_value: float | None = Field(
        None,
        description="Custom payout for the therapist; null means the tenure-based rate applies.",
        example=None,
    )
    payout_status: PayoutStatus = Field(PayoutStatus.PENDING, example="Pending")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class PaymentStatusUpdate(BaseModel):
    """
    Body of PATCH /sessions/{id}/payment.
    """

    payment_status: PaymentStatus = Field(..., example="Paid")


class BulkPaymentStatusUpdate(BaseModel):
    """
    Body of PATCH /sessions/payment.
    """

    session_ids: list[int] = Field(..., min_length=1, example=[3, 4, 5])
    payment_status: PaymentStatus = Field(..., example="Paid")


class BulkPayoutUpdate(BaseModel):
    """
    Body of PATCH /sessions/payout.
    """

    session_ids: list[int] = Field(..., min_length=1, example=[3, 4, 5])
    payout_status: PayoutStatus = Field(..., example="Paid")
    payout_value: float | None = Field(
        default=None,
        ge=0,
        description="Custom payout applied to every listed session; omitted keeps the current value.",
    )


class BulkUpdateResult(BaseModel):
    updated_count: int = Field(
        ...,
        description="Sessions actually updated; unknown ids are skipped.",
        example=3,
    )
