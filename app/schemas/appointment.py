# app/schemas/appointment.py
from __future__ import annotations

from datetime import date as date_type, datetime
from enum import Enum

from pydantic import BaseModel, Field

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"


class AppointmentStatus(str, Enum):
    """
    Lifecycle state of an appointment.
    """

    CONFIRMED = "Confirmed"
    RESCHEDULED = "Rescheduled"
    CANCELLED = "Cancelled"


class AppointmentLocation(str, Enum):
    GREEN_ROOM = "Green Room"
    BLUE_ROOM = "Blue Room"
    ROOM_321 = "Room 321"
    NO_ROOM = "No Room Needed"


class AppointmentModality(str, Enum):
    IN_PERSON = "In Person"
    ONLINE = "Online"


class AppointmentType(str, Enum):
    SESSION = "Session"
    PARENTAL_GUIDANCE = "Parental Guidance"
    SCHOOL_VISIT = "School Visit"
    SUPERVISION = "Supervision"
    OTHER = "Other"


# --------------------------------------------------------------------------
# Editable field set shared by single and recurrence-wide writes
# --------------------------------------------------------------------------

class AppointmentFields(BaseModel):
    """
    Fields copied from a template onto every occurrence of a recurrence.
    """

    time: str = Field(
        ...,
        pattern=TIME_PATTERN,
        description="Local time of the appointment (HH:MM).",
        example="14:00",
    )
    location: AppointmentLocation = Field(
        ...,
        description="Room booked for the appointment.",
        example="Green Room",
    )
    modality: AppointmentModality = Field(
        ...,
        description="Whether the appointment happens in person or online.",
        example="In Person",
    )
    type: AppointmentType = Field(
        ...,
        description="Kind of appointment; drives the type of the derived session.",
        example="Session",
    )
    value: float = Field(
        ...,
        ge=0,
        description="Price charged for the appointment.",
        example=150.0,
    )
    status: AppointmentStatus = Field(
        default=AppointmentStatus.CONFIRMED,
        description="Confirmed / Rescheduled / Cancelled.",
    )
    notes: str | None = Field(default=None, description="Free-form notes.")
    session_occurred: bool = Field(
        default=False,
        description="Whether the session actually took place. Always false when cancelled.",
    )
    missed: bool = Field(
        default=False,
        description="Whether the patient missed the appointment. Always false when cancelled.",
    )

    class Config:
        use_enum_values = True


# --------------------------------------------------------------------------
# Create schema (POST /appointments, recurrence template)
# --------------------------------------------------------------------------

class AppointmentCreate(AppointmentFields):
    """
    Schema for creating a single appointment or a recurrence template.
    """

    patient_id: int = Field(..., ge=1, example=1)
    therapist_id: int = Field(..., ge=1, example=1)
    date: date_type = Field(
        ...,
        description="Calendar date of the appointment (first date for a recurrence).",
        example="2025-01-06",
    )


# --------------------------------------------------------------------------
# Update schemas
# --------------------------------------------------------------------------

class AppointmentPatch(BaseModel):
    """
    Partial update applicable to every occurrence of a recurrence.

    Dates are intentionally absent: a recurrence-wide edit moves occurrences
    only through `weekday_shift`.
    """

    time: str | None = Field(default=None, pattern=TIME_PATTERN)
    location: AppointmentLocation | None = Field(default=None)
    modality: AppointmentModality | None = Field(default=None)
    type: AppointmentType | None = Field(default=None)
    value: float | None = Field(default=None, ge=0)
    status: AppointmentStatus | None = Field(default=None)
    notes: str | None = Field(default=None)
    session_occurred: bool | None = Field(default=None)
    missed: bool | None = Field(default=None)

    class Config:
        use_enum_values = True


class AppointmentUpdate(AppointmentPatch):
    """
    Partial update of a single occurrence (PATCH /appointments/{id}).
    """

    date: date_type | None = Field(default=None)


# --------------------------------------------------------------------------
# Read schema
# --------------------------------------------------------------------------

class AppointmentRead(BaseModel):
    """
    Public representation of an appointment.
    """

    id: int = Field(..., example=10)
    recurrence_id: str | None = Field(
        None,
        description="Identifier shared by all occurrences of the same recurrence.",
        example="5f0c9a5e-8f7e-4d8b-9a55-2b1c0c2f3e11",
    )
    patient_id: int
    therapist_id: int
    date: date_type
    time: str
    location: AppointmentLocation
    modality: AppointmentModality
    type: AppointmentType
    value: float
    status: AppointmentStatus
    notes: str | None = None
    session_occurred: bool
    missed: bool
    session_id: int | None = Field(
        None,
        description="Identifier of the linked session, when loaded.",
    )
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
