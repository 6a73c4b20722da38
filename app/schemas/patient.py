# app/schemas/patient.py

from __future__ import annotations

from datetime import date as date_type, datetime

from pydantic import BaseModel, Field


class PatientBase(BaseModel):
    """
    Shared fields used by PatientCreate and PatientRead.
    """
    name: str = Field(..., min_length=1, example="Ana Souza")
    birth_date: date_type | None = Field(default=None, example="2016-03-21")
    guardian_name: str | None = Field(default=None, example="Maria Souza")
    guardian_phone: str | None = Field(default=None, example="+55 11 99999-0000")
    guardian_email: str | None = Field(default=None, example="maria@example.com")
    origin: str | None = Field(
        default=None,
        description="How the patient found the clinic (referral, website, ...).",
    )
    is_active: bool = Field(default=True)


class PatientCreate(PatientBase):
    pass


class PatientUpdate(BaseModel):
    """
    All fields are optional; only provided fields are updated.
    """
    name: str | None = Field(default=None, min_length=1)
    birth_date: date_type | None = Field(default=None)
    guardian_name: str | None = Field(default=None)
    guardian_phone: str | None = Field(default=None)
    guardian_email: str | None = Field(default=None)
    origin: str | None = Field(default=None)
    is_active: bool | None = Field(default=None)


class PatientRead(PatientBase):
    id: int = Field(..., example=1)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
