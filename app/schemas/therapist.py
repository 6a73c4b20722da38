# app/schemas/therapist.py

from __future__ import annotations

from datetime import date as date_type, datetime

from pydantic import BaseModel, Field


class TherapistBase(BaseModel):
    """
    Shared fields used by TherapistCreate and TherapistRead.
    """
    name: str = Field(..., min_length=1, example="Dr. Paulo Lima")
    email: str = Field(
        ...,
        description="Unique contact email; also used to detect duplicates.",
        example="paulo@clinic.example",
    )
    phone: str | None = Field(default=None)
    pix_key: str | None = Field(
        default=None,
        description="Instant-payment key used for therapist payouts.",
    )
    start_date: date_type | None = Field(default=None, example="2024-02-01")
    is_active: bool = Field(default=True)


class TherapistCreate(TherapistBase):
    pass


class TherapistUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None)
    phone: str | None = Field(default=None)
    pix_key: str | None = Field(default=None)
    start_date: date_type | None = Field(default=None)
    is_active: bool | None = Field(default=None)


class TherapistRead(TherapistBase):
    id: int = Field(..., example=1)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
