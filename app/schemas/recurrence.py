# app/schemas/recurrence.py
from __future__ import annotations

from datetime import date as date_type
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.core.config import get_settings
from app.schemas.appointment import AppointmentCreate, AppointmentPatch, AppointmentRead
from app.services.recurrence_planner import Periodicity

WeekdayNumber = Annotated[int, Field(ge=0, le=6)]


class RecurrencePreviewRequest(BaseModel):
    """
    Input of POST /recurrences/preview.

    Weekdays use 0 = Sunday ... 6 = Saturday.
    """

    start_date: date_type = Field(..., example="2025-01-06")
    end_date: date_type = Field(..., example="2025-02-03")
    weekdays: list[WeekdayNumber] = Field(default_factory=list, example=[1])
    periodicity: Periodicity = Field(..., example="Weekly")


class RecurrencePreview(BaseModel):
    """
    Planned occurrences for a recurring request. Nothing is persisted.
    """

    count: int = Field(..., description="Number of appointments that would be created.", example=5)
    total_matches: int = Field(
        ...,
        description="Number of matching dates before the occurrence cap was applied.",
        example=5,
    )
    was_capped: bool = Field(
        ...,
        description="True when the range produced more dates than the cap allows.",
        example=False,
    )
    dates: list[date_type] = Field(default_factory=list)


class RecurrenceCreate(BaseModel):
    """
    Input of POST /recurrences.

    `template.date` is the first candidate date; `end_date` is inclusive.
    """

    template: AppointmentCreate
    end_date: date_type = Field(..., example="2025-03-31")
    weekdays: list[WeekdayNumber] = Field(..., example=[1, 3])
    periodicity: Periodicity = Field(..., example="Weekly")
    recurrence_id: UUID | None = Field(
        default=None,
        description="Optional client-generated identifier; generated server-side when omitted.",
    )

    @model_validator(mode="after")
    def _check_schedule(self) -> "RecurrenceCreate":
        if self.periodicity == Periodicity.DO_NOT_REPEAT:
            raise ValueError("periodicity must be Weekly or Biweekly for a recurrence")
        if not self.weekdays:
            raise ValueError("at least one weekday is required for a recurrence")
        if self.end_date <= self.template.date:
            raise ValueError("end_date must be after the first appointment date")

        max_span = get_settings().MAX_RECURRENCE_SPAN_DAYS
        if (self.end_date - self.template.date).days > max_span:
            raise ValueError(f"a recurrence may not span more than {max_span} days")
        return self


class RecurrenceUpdate(AppointmentPatch):
    """
    Input of PATCH /recurrences/{recurrence_id}: a patch applied to every
    occurrence, optionally moving the whole series to another weekday.
    """

    weekday_shift: WeekdayNumber | None = Field(
        default=None,
        description="Move each occurrence to this weekday within its own week (0 = Sunday).",
        example=3,
    )


class RecurrenceCreated(BaseModel):
    recurrence_id: str
    created_count: int
    was_capped: bool
    appointments: list[AppointmentRead]


class RecurrenceMutationResult(BaseModel):
    recurrence_id: str
    affected_count: int = Field(
        ...,
        description="Number of appointments updated or deleted.",
    )
